"""
Record mirror: keeps a versioned document store mirroring an authoritative
credential store, and replicates remote document changes back.

Classes:
    RecordMirror: Facade wiring stores, listener and drivers
    Reconciler: Per-id insert/update/delete/no-op decisions
    BulkSyncDriver: Full resynchronization pass
    InboundReplicationDriver: Remote changes -> record store
"""

__version__ = "1.0.0"

from mirror.adapter import RecordMirror
from mirror.bulk_sync import BulkSyncDriver
from mirror.classifier import ClassifiedChange, classify
from mirror.document_store import SqliteDocumentStore
from mirror.identity import derive_id, split_id
from mirror.inbound import InboundReplicationDriver
from mirror.listener import ChangeListener
from mirror.mapper import from_document, records_match, to_document
from mirror.periodic_sync import PeriodicSyncManager
from mirror.reconciler import Reconciler
from mirror.record_store import InMemoryRecordStore
from mirror.schemas.documents import Document, RemoteChange
from mirror.stores import DocumentStore, RecordStore, RecordStoreClient
from mirror.types import ChangeOperation, Record, ReconcileOutcome, SyncAction, SyncReport

__all__ = [
    "__version__",
    "RecordMirror",
    "BulkSyncDriver",
    "ClassifiedChange",
    "classify",
    "SqliteDocumentStore",
    "derive_id",
    "split_id",
    "InboundReplicationDriver",
    "ChangeListener",
    "from_document",
    "records_match",
    "to_document",
    "PeriodicSyncManager",
    "Reconciler",
    "InMemoryRecordStore",
    "Document",
    "RemoteChange",
    "DocumentStore",
    "RecordStore",
    "RecordStoreClient",
    "ChangeOperation",
    "Record",
    "ReconcileOutcome",
    "SyncAction",
    "SyncReport",
]
