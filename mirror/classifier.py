"""
Change classification for record-store notifications.

Turns a raw ``(subject, data)`` notification into a ``ClassifiedChange``.
Malformed notifications raise; they are never coerced into an operation.
"""

from dataclasses import dataclass
from typing import Any

from mirror.exceptions import MalformedNotificationError
from mirror.types import ChangeOperation, Record


@dataclass(frozen=True)
class ClassifiedChange:
    """Canonical change: the logical operation and the record it applies to."""
    operation: ChangeOperation
    record: Record


def parse_operation(data: Any) -> ChangeOperation:
    """
    Map a notification tag to a ChangeOperation.

    Raises:
        MalformedNotificationError: If the tag is not a known operation
    """
    if isinstance(data, ChangeOperation):
        return data
    try:
        return ChangeOperation(data)
    except ValueError:
        raise MalformedNotificationError(f"Unknown operation tag: {data!r}") from None


def classify(subject: Any, data: Any) -> ClassifiedChange:
    """
    Classify a notification.

    Args:
        subject: The record, or an (old, new) pair for ``modified``
        data: Operation tag

    Returns:
        ClassifiedChange with the record the operation applies to

    Raises:
        MalformedNotificationError: On an unknown tag or a subject of the
            wrong shape
    """
    operation = parse_operation(data)

    if operation == ChangeOperation.MODIFIED:
        if not isinstance(subject, (tuple, list)) or len(subject) != 2:
            raise MalformedNotificationError(
                f"'modified' notification needs an (old, new) pair, got {type(subject).__name__}"
            )
        record = subject[1]
    else:
        record = subject

    if not isinstance(record, Record):
        raise MalformedNotificationError(
            f"'{operation.value}' notification subject is {type(record).__name__}, not a Record"
        )

    return ClassifiedChange(operation=operation, record=record)
