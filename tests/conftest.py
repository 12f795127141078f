"""Shared pytest fixtures for all tests."""

import pytest

from mirror.document_store import SqliteDocumentStore
from mirror.reconciler import Reconciler
from mirror.record_store import InMemoryRecordStore
from mirror.stores import RecordStoreClient
from mirror.types import Record


@pytest.fixture
def document_store(tmp_path):
    """
    Create a SQLite document store in a temporary directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Empty SqliteDocumentStore
    """
    return SqliteDocumentStore(str(tmp_path / "mirror.db"))


@pytest.fixture
def record_store():
    """
    Create an empty in-memory record store.
    """
    return InMemoryRecordStore()


@pytest.fixture
def records(record_store):
    """
    Awaitable client over the record store fixture.
    """
    return RecordStoreClient(record_store)


@pytest.fixture
def reconciler(document_store):
    """
    Reconciler writing to the document store fixture.
    """
    return Reconciler(document_store)


@pytest.fixture
def foo_login():
    """
    Realm-based record for www.foo.com.
    """
    return Record.http("www.foo.com", "www.foo.com", "foo", "bar")


@pytest.fixture
def form_login():
    """
    Form-based record with field names.
    """
    return Record.form(
        origin="https://example.com",
        form_target="https://example.com/login",
        principal="alice",
        secret="s3cret",
        principal_field="user",
        secret_field="pass",
    )
