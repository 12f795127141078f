"""
Inbound replication driver.

Applies a batch of remote document changes to the record store. The
document already carries its id, so there is no derived-id ambiguity here;
the record store is written with "modify" semantics: update the first
matching record, remove any extra matches, insert when nothing matches.
"""

import asyncio
import time
from contextlib import nullcontext
from typing import Any, AsyncIterator, Callable, ContextManager, Iterable, Optional, Union

from common.logging_config import get_logger
from mirror.exceptions import MalformedRecordError
from mirror.mapper import RecordKey, from_document, key_from_document, record_key, records_match
from mirror.schemas.documents import Document, RemoteChange
from mirror.stores import RecordStoreClient
from mirror.types import ChangeOperation, ReconcileOutcome, SyncAction, SyncReport

logger = get_logger(__name__)

ChangeInput = Union[RemoteChange, dict]
WriteGuard = Callable[[RecordKey], ContextManager[None]]


class InboundReplicationDriver:
    """
    Remote change feed -> record store.

    Attributes:
        records: Awaitable record-store client
        write_guard: Wraps each record-store write for a record key; the
            facade passes the listener's suppression so replicated writes
            are not mirrored back into the document store
    """

    def __init__(self, records: RecordStoreClient, write_guard: Optional[WriteGuard] = None):
        self.records = records
        self.write_guard = write_guard or _unguarded

    async def apply_changes(self, changes: Iterable[ChangeInput]) -> AsyncIterator[ReconcileOutcome]:
        """
        Apply changes in order, yielding one outcome per change.

        A failing change is reported as FAILED and the batch continues.
        Control returns to the event loop between changes.
        """
        for raw in changes:
            outcome = await self._apply_safely(raw)
            yield outcome
            await asyncio.sleep(0)

    async def run(self, changes: Iterable[ChangeInput]) -> SyncReport:
        """Apply a whole batch and return the aggregate report."""
        report = SyncReport(direction="inbound", started_at=time.time())

        async for outcome in self.apply_changes(changes):
            report.record(outcome)

        report.finalize()
        logger.info(
            f"Inbound batch: {report.inserted} inserted, {report.updated} updated, "
            f"{report.deleted} deleted, {report.unchanged} unchanged, "
            f"{report.duplicates_removed} duplicates removed, {report.failed} failed "
            f"in {report.duration_ms:.1f}ms"
        )
        return report

    async def _apply_safely(self, raw: ChangeInput) -> ReconcileOutcome:
        change_id = _change_id(raw)
        try:
            change = raw if isinstance(raw, RemoteChange) else RemoteChange.model_validate(raw)
            if change.deleted:
                return await self._apply_deletion(change)
            return await self._apply_update(change)
        except Exception as e:
            logger.error(f"Failed to apply remote change {change_id}: {e}", exc_info=True)
            operation = ChangeOperation.REMOVED if _is_deleted(raw) else ChangeOperation.MODIFIED
            return ReconcileOutcome(change_id, operation, SyncAction.FAILED, error=str(e))

    async def _apply_deletion(self, change: RemoteChange) -> ReconcileOutcome:
        doc = change.doc or Document(id=change.id)
        origin, form_target, realm = key_from_document(doc)

        matches = await self.records.find_records(origin, form_target, realm)
        with self.write_guard((origin, form_target, realm)):
            for record in matches:
                await self.records.remove_record(record)

        if not matches:
            logger.debug(f"Remote deletion of {change.id} matched no records")
            return ReconcileOutcome(change.id, ChangeOperation.REMOVED, SyncAction.UNCHANGED)

        logger.info(f"Removed {len(matches)} record(s) for remote deletion of {change.id}")
        return ReconcileOutcome(
            change.id,
            ChangeOperation.REMOVED,
            SyncAction.DELETED,
            rev=doc.rev,
            duplicates_removed=len(matches) - 1,
        )

    async def _apply_update(self, change: RemoteChange) -> ReconcileOutcome:
        if change.doc is None:
            raise MalformedRecordError(f"Remote change {change.id} does not include its document")

        record = from_document(change.doc)
        rev = change.doc.rev

        key = record_key(record)
        matches = await self.records.find_records(*key)

        if not matches:
            with self.write_guard(key):
                await self.records.add_record(record)
            logger.info(f"Inserted record for remote document {change.id} [rev={rev}]")
            return ReconcileOutcome(change.id, ChangeOperation.MODIFIED, SyncAction.INSERTED, rev=rev)

        first, extras = matches[0], matches[1:]

        with self.write_guard(key):
            if records_match(first, record):
                action = SyncAction.UNCHANGED
            else:
                await self.records.modify_record(first, record)
                action = SyncAction.UPDATED

            # collapse duplicates onto the first match
            for extra in extras:
                await self.records.remove_record(extra)

        if extras:
            logger.warning(f"Removed {len(extras)} duplicate record(s) for remote document {change.id}")
        if action == SyncAction.UPDATED:
            logger.info(f"Updated record for remote document {change.id} [rev={rev}]")

        return ReconcileOutcome(
            change.id,
            ChangeOperation.MODIFIED,
            action,
            rev=rev,
            duplicates_removed=len(extras),
        )


def _change_id(raw: Any) -> str:
    if isinstance(raw, RemoteChange):
        return raw.id
    if isinstance(raw, dict):
        return str(raw.get("id", "<missing id>"))
    return repr(raw)


def _is_deleted(raw: Any) -> bool:
    if isinstance(raw, RemoteChange):
        return raw.deleted
    return isinstance(raw, dict) and bool(raw.get("deleted"))


def _unguarded(key: RecordKey) -> ContextManager[None]:
    return nullcontext()
