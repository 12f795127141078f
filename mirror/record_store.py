"""In-memory record store with change notifications."""

import threading
from typing import List, Optional

from common.constants import STORAGE_CHANGED_TOPIC
from common.logging_config import get_logger
from mirror.exceptions import MirrorException
from mirror.stores import Observer, RecordStore
from mirror.types import ChangeOperation, Record

logger = get_logger(__name__)


class RecordNotFoundError(MirrorException):
    """
    Raised when modifying or removing a record that is not stored.
    """
    pass


class InMemoryRecordStore(RecordStore):
    """
    Thread-safe, list-backed RecordStore.

    Mutations notify observers synchronously, outside the store lock, with
    ``(subject, STORAGE_CHANGED_TOPIC, tag)``. A ``modified`` subject is the
    ``(old, new)`` pair.
    """

    def __init__(self, records: Optional[List[Record]] = None):
        self._records: List[Record] = list(records or [])
        self._observers: List[Observer] = []
        self.lock = threading.Lock()

    def find_records(
        self,
        origin: str,
        form_target: Optional[str] = None,
        realm: Optional[str] = None
    ) -> List[Record]:
        with self.lock:
            return [
                r for r in self._records
                if r.origin == origin and r.form_target == form_target and r.realm == realm
            ]

    def add_record(self, record: Record) -> None:
        with self.lock:
            self._records.append(record)
        logger.debug(f"Added record [origin={record.origin}, principal={record.principal}]")
        self._notify(record, ChangeOperation.ADDED)

    def modify_record(self, existing: Record, updated: Record) -> None:
        with self.lock:
            index = self._index_of(existing)
            self._records[index] = updated
        logger.debug(f"Modified record [origin={updated.origin}, principal={updated.principal}]")
        self._notify((existing, updated), ChangeOperation.MODIFIED)

    def remove_record(self, record: Record) -> None:
        with self.lock:
            del self._records[self._index_of(record)]
        logger.debug(f"Removed record [origin={record.origin}, principal={record.principal}]")
        self._notify(record, ChangeOperation.REMOVED)

    def list_all_records(self) -> List[Record]:
        with self.lock:
            return list(self._records)

    def add_observer(self, observer: Observer) -> None:
        with self.lock:
            self._observers.append(observer)

    def remove_observer(self, observer: Observer) -> None:
        with self.lock:
            if observer in self._observers:
                self._observers.remove(observer)

    def __len__(self) -> int:
        with self.lock:
            return len(self._records)

    def _index_of(self, record: Record) -> int:
        try:
            return self._records.index(record)
        except ValueError:
            raise RecordNotFoundError(
                f"Record not stored [origin={record.origin}, principal={record.principal}]"
            ) from None

    def _notify(self, subject, operation: ChangeOperation) -> None:
        with self.lock:
            observers = list(self._observers)
        for observer in observers:
            observer(subject, STORAGE_CHANGED_TOPIC, operation.value)
