"""
Derived document ids.

The id joins a record to its document: ``origin|kind|discriminator``.
Principal and secret are payload on that entity and never enter the id.
"""

from typing import Tuple

from common.constants import ID_SEPARATOR
from mirror.exceptions import MalformedRecordError
from mirror.types import Record, RecordKind


def derive_id(record: Record) -> str:
    """
    Compute the document id for a record.

    Args:
        record: Record satisfying the discriminator invariant

    Returns:
        Deterministic id string
    """
    return ID_SEPARATOR.join([record.origin, record.kind.value, record.discriminator])


def split_id(doc_id: str) -> Tuple[str, RecordKind, str]:
    """
    Parse a derived id back into (origin, kind, discriminator).

    The discriminator is the remainder after the second separator, so form
    targets containing the separator survive.

    Raises:
        MalformedRecordError: If the id does not have three parts or names
            an unknown kind
    """
    parts = doc_id.split(ID_SEPARATOR, 2)
    if len(parts) != 3 or not parts[0] or not parts[2]:
        raise MalformedRecordError(f"Not a derived record id: {doc_id!r}")

    origin, kind, value = parts
    try:
        return origin, RecordKind(kind), value
    except ValueError:
        raise MalformedRecordError(f"Unknown record kind {kind!r} in id {doc_id!r}") from None
