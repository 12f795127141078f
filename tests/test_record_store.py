"""Unit tests for the in-memory record store."""

import pytest

from common.constants import STORAGE_CHANGED_TOPIC
from mirror.record_store import InMemoryRecordStore, RecordNotFoundError
from mirror.types import Record


@pytest.fixture
def notifications(record_store):
    """
    Collect every notification the record store fixture emits.
    """
    seen = []
    record_store.add_observer(lambda subject, topic, data: seen.append((subject, topic, data)))
    return seen


class TestInMemoryRecordStore:
    """Test lookups and mutations."""

    def test_find_matches_on_key(self, record_store, foo_login, form_login):
        record_store.add_record(foo_login)
        record_store.add_record(form_login)

        assert record_store.find_records("www.foo.com", None, "www.foo.com") == [foo_login]
        assert record_store.find_records("www.foo.com", "www.foo.com", None) == []
        assert record_store.find_records(form_login.origin, form_login.form_target) == [form_login]

    def test_modify_replaces_in_place(self, record_store, foo_login, form_login):
        record_store.add_record(foo_login)
        record_store.add_record(form_login)
        rotated = Record.http("www.foo.com", "www.foo.com", "foo", "new")

        record_store.modify_record(foo_login, rotated)

        assert record_store.list_all_records() == [rotated, form_login]

    def test_remove_unknown_record(self, record_store, foo_login):
        with pytest.raises(RecordNotFoundError):
            record_store.remove_record(foo_login)

    def test_list_returns_copy(self, foo_login):
        store = InMemoryRecordStore([foo_login])

        store.list_all_records().clear()

        assert len(store) == 1


class TestNotifications:
    """Test observer fan-out."""

    def test_add_notification(self, record_store, notifications, foo_login):
        record_store.add_record(foo_login)

        assert notifications == [(foo_login, STORAGE_CHANGED_TOPIC, "added")]

    def test_modify_notification_carries_pair(self, record_store, notifications, foo_login):
        record_store.add_record(foo_login)
        rotated = Record.http("www.foo.com", "www.foo.com", "foo", "new")

        record_store.modify_record(foo_login, rotated)

        assert notifications[-1] == ((foo_login, rotated), STORAGE_CHANGED_TOPIC, "modified")

    def test_remove_notification(self, record_store, notifications, foo_login):
        record_store.add_record(foo_login)
        record_store.remove_record(foo_login)

        assert notifications[-1] == (foo_login, STORAGE_CHANGED_TOPIC, "removed")

    def test_removed_observer_not_called(self, record_store, foo_login):
        seen = []

        def observer(*args):
            seen.append(args)

        record_store.add_observer(observer)
        record_store.remove_observer(observer)
        record_store.add_record(foo_login)

        assert seen == []
