"""Tests for inbound replication of remote document changes."""

from contextlib import contextmanager
from unittest.mock import AsyncMock

import pytest

from mirror.adapter import RecordMirror
from mirror.inbound import InboundReplicationDriver
from mirror.mapper import to_document
from mirror.schemas.documents import RemoteChange
from mirror.types import ChangeOperation, Record, SyncAction


@pytest.fixture
def driver(records):
    """
    InboundReplicationDriver writing to the record store fixture.
    """
    return InboundReplicationDriver(records)


@pytest.fixture
def moo_login():
    return Record.http("www.moo.com", "www.moo.com", "foo", "bar")


def change_for(record, deleted=False, rev="1-abc"):
    doc = to_document(record).with_rev(rev)
    return {"id": doc.id, "deleted": deleted, "doc": doc.to_json_dict()}


async def document_revs(document_store):
    return {doc.id: doc.rev for doc in await document_store.all_documents()}


class TestInboundDeletions:
    """deleted changes remove matching records."""

    @pytest.mark.asyncio
    async def test_deletion_removes_record_without_document_write(
        self, record_store, document_store, moo_login, foo_login
    ):
        record_store.add_record(moo_login)
        record_store.add_record(foo_login)
        mirror = RecordMirror(record_store, document_store)
        await mirror.sync()
        revs_before = await document_revs(document_store)

        await mirror.start()
        try:
            report = await mirror.changes([change_for(moo_login, deleted=True)])
            await mirror.flush()
        finally:
            await mirror.stop()

        assert report.deleted == 1
        assert record_store.list_all_records() == [foo_login]
        assert await document_store.count() == 2
        assert await document_revs(document_store) == revs_before
        assert mirror.listener.processed == 0
        assert mirror.listener.suppressed_count == 1

    @pytest.mark.asyncio
    async def test_deletion_removes_every_match(self, record_store, driver, moo_login):
        record_store.add_record(moo_login)
        record_store.add_record(Record.http("www.moo.com", "www.moo.com", "other", "x"))

        outcomes = [o async for o in driver.apply_changes([change_for(moo_login, deleted=True)])]

        assert outcomes[0].action == SyncAction.DELETED
        assert outcomes[0].operation == ChangeOperation.REMOVED
        assert outcomes[0].duplicates_removed == 1
        assert len(record_store) == 0

    @pytest.mark.asyncio
    async def test_deletion_without_match_is_noop(self, driver, moo_login):
        outcomes = [o async for o in driver.apply_changes([change_for(moo_login, deleted=True)])]

        assert outcomes[0].action == SyncAction.UNCHANGED

    @pytest.mark.asyncio
    async def test_deletion_stub_without_body(self, record_store, driver, moo_login):
        record_store.add_record(moo_login)
        stub = {"id": "www.moo.com|http|www.moo.com", "deleted": True,
                "doc": {"_id": "www.moo.com|http|www.moo.com", "_rev": "2-x"}}

        report = await driver.run([stub])

        assert report.deleted == 1
        assert len(record_store) == 0


class TestInboundUpdates:
    """Non-deleted changes write with modify semantics."""

    @pytest.mark.asyncio
    async def test_insert_when_no_match(self, record_store, driver, form_login):
        report = await driver.run([change_for(form_login)])

        assert report.inserted == 1
        assert record_store.list_all_records() == [form_login]

    @pytest.mark.asyncio
    async def test_update_first_match(self, record_store, driver, foo_login):
        record_store.add_record(foo_login)
        remote = Record.http("www.foo.com", "www.foo.com", "foo", "from-remote")

        report = await driver.run([change_for(remote, rev="5-abc")])

        assert report.updated == 1
        assert record_store.list_all_records() == [remote]

    @pytest.mark.asyncio
    async def test_extra_matches_removed(self, record_store, driver, foo_login):
        record_store.add_record(foo_login)
        record_store.add_record(Record.http("www.foo.com", "www.foo.com", "dup", "1"))
        record_store.add_record(Record.http("www.foo.com", "www.foo.com", "dup", "2"))
        remote = Record.http("www.foo.com", "www.foo.com", "foo", "final")

        report = await driver.run([change_for(remote)])

        assert report.updated == 1
        assert report.duplicates_removed == 2
        assert record_store.list_all_records() == [remote]

    @pytest.mark.asyncio
    async def test_matching_record_left_alone(self, record_store, driver, foo_login):
        record_store.add_record(foo_login)
        observer_calls = []
        record_store.add_observer(lambda *args: observer_calls.append(args))

        report = await driver.run([change_for(foo_login)])

        assert report.unchanged == 1
        assert observer_calls == []

    @pytest.mark.asyncio
    async def test_accepts_remote_change_models(self, record_store, driver, foo_login):
        change = RemoteChange.model_validate(change_for(foo_login))

        outcomes = [o async for o in driver.apply_changes([change])]

        assert outcomes[0].action == SyncAction.INSERTED
        assert outcomes[0].rev == "1-abc"

    @pytest.mark.asyncio
    async def test_writes_run_under_write_guard(self, record_store, records, foo_login, form_login):
        guarded = []

        @contextmanager
        def guard(key):
            guarded.append(key)
            yield

        record_store.add_record(foo_login)
        driver = InboundReplicationDriver(records, write_guard=guard)

        await driver.run([
            change_for(Record.http("www.foo.com", "www.foo.com", "foo", "new")),
            change_for(form_login),
        ])

        assert guarded == [
            ("www.foo.com", None, "www.foo.com"),
            (form_login.origin, form_login.form_target, None),
        ]

    @pytest.mark.asyncio
    async def test_started_mirror_does_not_echo_updates(self, record_store, document_store, foo_login):
        record_store.add_record(foo_login)
        record_store.add_record(Record.http("www.foo.com", "www.foo.com", "dup", "1"))
        mirror = RecordMirror(record_store, document_store)
        await mirror.sync()
        revs_before = await document_revs(document_store)
        remote = Record.http("www.foo.com", "www.foo.com", "foo", "from-remote")

        await mirror.start()
        try:
            report = await mirror.changes([change_for(remote, rev="7-abc")])
            await mirror.flush()
        finally:
            await mirror.stop()

        assert report.updated == 1
        assert report.duplicates_removed == 1
        assert record_store.list_all_records() == [remote]
        assert await document_revs(document_store) == revs_before
        assert mirror.listener.processed == 0
        assert mirror.listener.suppressed_count == 2


class TestInboundFailures:
    """One bad change does not abort the batch."""

    @pytest.mark.asyncio
    async def test_bad_changes_reported_and_batch_continues(self, record_store, driver, foo_login):
        batch = [
            {"deleted": False},
            {"id": "x|http|y", "doc": None},
            {"id": "h|http|r", "doc": {"_id": "h|http|r", "hostname": "h"}},
            change_for(foo_login),
        ]

        report = await driver.run(batch)

        assert report.failed == 3
        assert report.inserted == 1
        assert report.failed_ids == ["<missing id>", "x|http|y", "h|http|r"]
        assert record_store.list_all_records() == [foo_login]

    @pytest.mark.asyncio
    async def test_record_store_error_becomes_failed_outcome(self, foo_login):
        records = AsyncMock()
        records.find_records.side_effect = RuntimeError("locked")

        outcomes = [o async for o in InboundReplicationDriver(records).apply_changes([change_for(foo_login, deleted=True)])]

        assert outcomes[0].action == SyncAction.FAILED
        assert outcomes[0].operation == ChangeOperation.REMOVED
        assert "locked" in outcomes[0].error
