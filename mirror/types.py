"""Domain type definitions (Record, ChangeOperation, outcomes, reports)."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from mirror.exceptions import MalformedRecordError


class RecordKind(str, Enum):
    """Which discriminator a record carries."""
    FORM = "form"
    HTTP = "http"


class ChangeOperation(str, Enum):
    """Logical operation observed on a record."""
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"
    OBSERVED_FULL = "observedFull"


class SyncAction(str, Enum):
    """What a reconciliation or replication step did to its target store."""
    INSERTED = "inserted"
    UPDATED = "updated"
    DELETED = "deleted"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass(frozen=True)
class Record:
    """
    A credential in the authoritative record store.

    Exactly one of form_target and realm is set. Field names only carry
    meaning for form records; realm records keep them empty.
    """
    origin: str
    principal: str
    secret: str = field(repr=False)
    form_target: Optional[str] = None
    realm: Optional[str] = None
    principal_field: str = ""
    secret_field: str = ""

    def __post_init__(self):
        if not isinstance(self.origin, str) or not self.origin:
            raise MalformedRecordError("Record origin must be a non-empty string")
        # empty string and None both mean "not set"
        if self.form_target == "":
            object.__setattr__(self, "form_target", None)
        if self.realm == "":
            object.__setattr__(self, "realm", None)
        if self.form_target and self.realm:
            raise MalformedRecordError(
                f"Record for {self.origin} has both form target and realm"
            )
        if not self.form_target and not self.realm:
            raise MalformedRecordError(
                f"Record for {self.origin} has neither form target nor realm"
            )

    @property
    def kind(self) -> RecordKind:
        return RecordKind.FORM if self.form_target else RecordKind.HTTP

    @property
    def discriminator(self) -> str:
        return self.form_target if self.form_target else self.realm

    @classmethod
    def form(
        cls,
        origin: str,
        form_target: str,
        principal: str,
        secret: str,
        principal_field: str = "",
        secret_field: str = ""
    ) -> "Record":
        """Build a form-based record."""
        return cls(
            origin=origin,
            principal=principal,
            secret=secret,
            form_target=form_target,
            principal_field=principal_field,
            secret_field=secret_field,
        )

    @classmethod
    def http(cls, origin: str, realm: str, principal: str, secret: str) -> "Record":
        """Build an http-realm record (no field names)."""
        return cls(origin=origin, principal=principal, secret=secret, realm=realm)


@dataclass
class ReconcileOutcome:
    """Result of processing one record or remote change."""
    doc_id: str
    operation: ChangeOperation
    action: SyncAction
    rev: Optional[str] = None
    duplicates_removed: int = 0
    error: Optional[str] = None

    @property
    def wrote(self) -> bool:
        return self.action in (SyncAction.INSERTED, SyncAction.UPDATED, SyncAction.DELETED)


@dataclass
class SyncReport:
    """Aggregate result of a bulk pass (full sync or inbound batch)."""

    direction: str = "unknown"  # "outbound" or "inbound"
    success: bool = True

    inserted: int = 0
    updated: int = 0
    deleted: int = 0
    unchanged: int = 0
    failed: int = 0
    duplicates_removed: int = 0

    started_at: float = 0.0
    completed_at: float = 0.0
    duration_ms: float = 0.0

    errors: List[str] = field(default_factory=list)
    failed_ids: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.inserted + self.updated + self.deleted + self.unchanged + self.failed

    @property
    def writes(self) -> int:
        return self.inserted + self.updated + self.deleted

    def record(self, outcome: ReconcileOutcome) -> None:
        """Fold one outcome into the counters."""
        if outcome.action == SyncAction.INSERTED:
            self.inserted += 1
        elif outcome.action == SyncAction.UPDATED:
            self.updated += 1
        elif outcome.action == SyncAction.DELETED:
            self.deleted += 1
        elif outcome.action == SyncAction.UNCHANGED:
            self.unchanged += 1
        else:
            self.failed += 1
            self.success = False
            self.failed_ids.append(outcome.doc_id)
            self.errors.append(f"{outcome.doc_id}: {outcome.error}")

        self.duplicates_removed += outcome.duplicates_removed

    def finalize(self) -> "SyncReport":
        self.completed_at = time.time()
        self.duration_ms = (self.completed_at - self.started_at) * 1000
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to dictionary."""
        return {
            "direction": self.direction,
            "success": self.success,
            "inserted": self.inserted,
            "updated": self.updated,
            "deleted": self.deleted,
            "unchanged": self.unchanged,
            "failed": self.failed,
            "duplicates_removed": self.duplicates_removed,
            "duration_ms": self.duration_ms,
            "failed_ids": self.failed_ids,
            "errors": self.errors,
        }
