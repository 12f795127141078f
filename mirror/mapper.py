"""
Record <-> Document mapping.

``from_document(to_document(r))`` matches ``r`` under :func:`records_match`
for every valid record.
"""

from typing import Optional, Tuple

from mirror.exceptions import MalformedRecordError
from mirror.identity import derive_id, split_id
from mirror.schemas.documents import Document
from mirror.types import Record, RecordKind

RecordKey = Tuple[str, Optional[str], Optional[str]]


def to_document(record: Record) -> Document:
    """
    Convert a record to a document without a revision.

    Args:
        record: Source record

    Returns:
        Document carrying the derived id and the fields of the record's kind
    """
    doc = Document(
        id=derive_id(record),
        origin=record.origin,
        principal=record.principal,
        secret=record.secret,
    )

    if record.kind == RecordKind.FORM:
        doc.form_target = record.form_target
        doc.principal_field = record.principal_field
        doc.secret_field = record.secret_field
    else:
        doc.realm = record.realm

    return doc


def from_document(doc: Document) -> Record:
    """
    Rebuild a record from a document.

    A document with a form target becomes a form record (missing field names
    default to empty); anything else becomes an http-realm record with empty
    field names.

    Raises:
        MalformedRecordError: If the document lacks an origin or a discriminator
    """
    if doc.origin is None:
        raise MalformedRecordError(f"Document {doc.id} has no hostname")

    if doc.form_target:
        return Record.form(
            origin=doc.origin,
            form_target=doc.form_target,
            principal=doc.principal or "",
            secret=doc.secret or "",
            principal_field=doc.principal_field or "",
            secret_field=doc.secret_field or "",
        )

    return Record.http(
        origin=doc.origin,
        realm=doc.realm,
        principal=doc.principal or "",
        secret=doc.secret or "",
    )


def record_key(record: Record) -> RecordKey:
    """Lookup key used by the record store: (origin, form_target, realm)."""
    return record.origin, record.form_target, record.realm


def key_from_document(doc: Document) -> RecordKey:
    """
    Record key for a document, falling back to its id for bodiless
    deletion stubs.
    """
    if doc.origin is not None and (doc.form_target or doc.realm):
        return record_key(from_document(doc))

    origin, kind, value = split_id(doc.id)
    if kind == RecordKind.FORM:
        return origin, value, None
    return origin, None, value


def records_match(a: Record, b: Record) -> bool:
    """
    Equivalence test used by the record store.

    Exact match on origin, discriminator, principal and secret; field names
    are compared for form records only.
    """
    if (
        a.origin != b.origin
        or a.form_target != b.form_target
        or a.realm != b.realm
        or a.principal != b.principal
        or a.secret != b.secret
    ):
        return False

    if a.kind == RecordKind.FORM:
        return a.principal_field == b.principal_field and a.secret_field == b.secret_field

    return True
