"""
Store interfaces consumed by the engine.

The record store exposes a blocking, synchronous API; RecordStoreClient
wraps it so every call is awaitable and runs off the event loop. The
document store is async end to end.
"""

import asyncio
from abc import ABC, abstractmethod
from functools import partial
from typing import Any, Callable, List, Optional

from mirror.schemas.documents import Document
from mirror.types import Record

Observer = Callable[[Any, str, str], None]


class RecordStore(ABC):
    """Authoritative, synchronous credential store."""

    @abstractmethod
    def find_records(
        self,
        origin: str,
        form_target: Optional[str] = None,
        realm: Optional[str] = None
    ) -> List[Record]:
        """Return records matching (origin, form_target, realm)."""

    @abstractmethod
    def add_record(self, record: Record) -> None:
        """Store a new record."""

    @abstractmethod
    def modify_record(self, existing: Record, updated: Record) -> None:
        """Replace ``existing`` with ``updated``."""

    @abstractmethod
    def remove_record(self, record: Record) -> None:
        """Remove a stored record."""

    @abstractmethod
    def list_all_records(self) -> List[Record]:
        """Return every stored record."""

    @abstractmethod
    def add_observer(self, observer: Observer) -> None:
        """Register ``observer(subject, topic, data)`` for change notifications."""

    @abstractmethod
    def remove_observer(self, observer: Observer) -> None:
        """Unregister a change observer."""


class DocumentStore(ABC):
    """Versioned document store with optimistic revisions."""

    @abstractmethod
    async def get(self, doc_id: str) -> Optional[Document]:
        """Return the stored document, or None if not found."""

    @abstractmethod
    async def put(self, doc: Document) -> Document:
        """
        Write a document.

        Without a rev the write is an insert; with a rev it is an update that
        fails with StaleRevisionError if the rev is not current.

        Returns:
            The stored document carrying its new rev
        """

    @abstractmethod
    async def remove(self, doc: Document) -> None:
        """Remove a document at the given rev."""


class RecordStoreClient:
    """
    Awaitable facade over a synchronous RecordStore.

    Each call runs in the loop's default executor so a slow store never
    blocks other scheduled work.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    async def _run(self, func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    async def find_records(
        self,
        origin: str,
        form_target: Optional[str] = None,
        realm: Optional[str] = None
    ) -> List[Record]:
        return await self._run(self.store.find_records, origin, form_target, realm)

    async def add_record(self, record: Record) -> None:
        await self._run(self.store.add_record, record)

    async def modify_record(self, existing: Record, updated: Record) -> None:
        await self._run(self.store.modify_record, existing, updated)

    async def remove_record(self, record: Record) -> None:
        await self._run(self.store.remove_record, record)

    async def list_all_records(self) -> List[Record]:
        return await self._run(self.store.list_all_records)
