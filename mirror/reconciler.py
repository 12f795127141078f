"""
Reconciler: per-id state transitions between the record store and the
document store.

For every (operation, record) it looks up the current document by derived
id and decides to insert, update with the existing rev, delete, or do
nothing. Lookup and write for one id run under that id's lock, so the next
event for the same id always sees the rev written by the previous one.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

from common.logging_config import get_logger
from mirror.mapper import from_document, records_match, to_document
from mirror.stores import DocumentStore
from mirror.types import ChangeOperation, Record, ReconcileOutcome, SyncAction

logger = get_logger(__name__)


class Reconciler:
    """
    Decides and applies the document-store write for one observed change.

    Attributes:
        document_store: Mirror target
    """

    def __init__(self, document_store: DocumentStore):
        self.document_store = document_store
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @asynccontextmanager
    async def _id_lock(self, doc_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(doc_id)
        if lock is None:
            lock = self._locks[doc_id] = asyncio.Lock()
        self._lock_users[doc_id] = self._lock_users.get(doc_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[doc_id] -= 1
            if not self._lock_users[doc_id]:
                del self._lock_users[doc_id]
                del self._locks[doc_id]

    async def reconcile(self, operation: ChangeOperation, record: Record) -> ReconcileOutcome:
        """
        Reconcile one record against the document store.

        Args:
            operation: Observed operation
            record: Canonical record the operation applies to

        Returns:
            ReconcileOutcome describing the write performed (if any)

        Raises:
            StaleRevisionError: If the store rejects the write's rev
        """
        new_doc = to_document(record)

        async with self._id_lock(new_doc.id):
            existing = await self.document_store.get(new_doc.id)

            if operation == ChangeOperation.REMOVED:
                if existing is None:
                    logger.debug(f"Removal of {new_doc.id} with no document, nothing to do")
                    return ReconcileOutcome(new_doc.id, operation, SyncAction.UNCHANGED)

                await self.document_store.remove(existing)
                logger.info(f"Deleted document {new_doc.id} [rev={existing.rev}]")
                return ReconcileOutcome(new_doc.id, operation, SyncAction.DELETED, rev=existing.rev)

            if existing is None:
                stored = await self.document_store.put(new_doc)
                logger.info(f"Inserted document {stored.id} [rev={stored.rev}, operation={operation.value}]")
                return ReconcileOutcome(stored.id, operation, SyncAction.INSERTED, rev=stored.rev)

            if records_match(record, from_document(existing)):
                logger.debug(f"Document {existing.id} already current [rev={existing.rev}]")
                return ReconcileOutcome(existing.id, operation, SyncAction.UNCHANGED, rev=existing.rev)

            stored = await self.document_store.put(new_doc.with_rev(existing.rev))
            logger.info(
                f"Updated document {stored.id} [rev={existing.rev} -> {stored.rev}, "
                f"operation={operation.value}]"
            )
            return ReconcileOutcome(stored.id, operation, SyncAction.UPDATED, rev=stored.rev)

    async def reconcile_safely(self, operation: ChangeOperation, record: Record) -> ReconcileOutcome:
        """
        Reconcile, turning any failure into a FAILED outcome.

        Used by the bulk drivers so one bad item does not abort a pass.
        """
        try:
            return await self.reconcile(operation, record)
        except Exception as e:
            doc_id = _safe_id(record)
            logger.error(f"Failed to reconcile {doc_id} [operation={operation.value}]: {e}", exc_info=True)
            return ReconcileOutcome(doc_id, operation, SyncAction.FAILED, error=str(e))


def _safe_id(record) -> str:
    try:
        return to_document(record).id
    except Exception:
        return repr(record)
