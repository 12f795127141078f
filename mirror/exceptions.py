"""Custom exception classes for the mirror engine."""


class MirrorException(Exception):
    """
    Base exception class for all mirror-related errors.
    """
    pass


class MalformedRecordError(MirrorException):
    """
    Raised when a record or derived id violates the discriminator invariant
    (exactly one of form target and realm).
    """
    pass


class MalformedNotificationError(MirrorException):
    """
    Raised when a record-store notification carries an unknown operation tag
    or a subject of the wrong shape.
    """
    pass


class StaleRevisionError(MirrorException):
    """
    Raised when the document store rejects a write because the supplied
    revision is not the current one.
    """

    def __init__(self, doc_id: str, expected_rev, actual_rev):
        self.doc_id = doc_id
        self.expected_rev = expected_rev
        self.actual_rev = actual_rev
        super().__init__(
            f"Stale revision for document {doc_id}: "
            f"got {expected_rev!r}, current is {actual_rev!r}"
        )


class DocumentNotFoundError(MirrorException):
    """
    Raised when removing a document that is not stored.
    """
    pass
