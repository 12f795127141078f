"""
Mirror facade.

Wires the record store and document store into the reconciliation engine:
live notifications, full sync, inbound replication and an optional
periodic resync.
"""

from typing import Iterable, Optional

from common.logging_config import get_logger
from mirror.bulk_sync import BulkSyncDriver
from mirror.inbound import ChangeInput, InboundReplicationDriver
from mirror.listener import ChangeListener
from mirror.periodic_sync import PeriodicSyncManager
from mirror.reconciler import Reconciler
from mirror.stores import DocumentStore, RecordStore, RecordStoreClient
from mirror.types import SyncReport

logger = get_logger(__name__)


class RecordMirror:
    """
    Keeps a document store mirroring a record store.

    Attributes:
        record_store: Authoritative record store
        document_store: Mirror target
        reconciler: Shared Reconciler (per-id serialization spans every path)
    """

    def __init__(
        self,
        record_store: RecordStore,
        document_store: DocumentStore,
        full_sync_interval: Optional[int] = None,
        queue_maxsize: Optional[int] = None
    ):
        """
        Initialize the mirror.

        Args:
            record_store: Authoritative record store
            document_store: Versioned document store
            full_sync_interval: Seconds between background full syncs; None disables them
            queue_maxsize: Bound of the notification queue
        """
        self.record_store = record_store
        self.document_store = document_store
        self.records = RecordStoreClient(record_store)
        self.reconciler = Reconciler(document_store)
        self.listener = ChangeListener(record_store, self.reconciler, queue_maxsize=queue_maxsize)
        self.bulk_sync = BulkSyncDriver(self.records, self.reconciler)
        self.inbound = InboundReplicationDriver(self.records, write_guard=self.listener.suppressed)
        self.periodic: Optional[PeriodicSyncManager] = None
        if full_sync_interval:
            self.periodic = PeriodicSyncManager(self.bulk_sync, full_sync_interval)

    async def start(self):
        """Start listening to changes (and the periodic resync, if configured)."""
        await self.listener.start()
        if self.periodic:
            await self.periodic.start()
        logger.info("Record mirror started")

    async def stop(self):
        """Stop listening to changes."""
        if self.periodic:
            await self.periodic.stop()
        await self.listener.stop()
        logger.info("Record mirror stopped")

    async def sync(self) -> SyncReport:
        """Force a full synchronization of all records with the document store."""
        return await self.bulk_sync.run()

    async def changes(self, changes: Iterable[ChangeInput]) -> SyncReport:
        """Apply changes detected during replication. The changes must include the doc."""
        return await self.inbound.run(changes)

    async def flush(self):
        """Wait until every observed notification has been reconciled."""
        await self.listener.drain()
