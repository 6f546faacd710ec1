"""
Treasury errors

Every failure the ledger and the funding workflow report to callers.
Callers can tell "definitely not applied" apart from "unknown, re-read"
through StoreUnavailable.outcome_unknown.
"""


class TreasuryError(Exception):
    """Base class"""

    pass


class ValidationError(TreasuryError):
    """Input rejected before any write (missing title, bad amount, ...)"""

    pass


class InvalidTransition(TreasuryError):
    """State change not legal from the current state"""

    def __init__(self, from_state: str, to_state: str, reason: str | None = None):
        self.from_state = from_state
        self.to_state = to_state
        message = f"Cannot transition from {from_state} to {to_state}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class NotFound(TreasuryError):
    """Referenced record does not exist"""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} not found: {record_id}")


class ConcurrentModification(TreasuryError):
    """Write lost a race against another writer

    The caller should re-fetch and retry, never overwrite blindly.
    """

    def __init__(self, record_id: str, expected_version: int, actual_version: int | None = None):
        self.record_id = record_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"{record_id} changed concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )


class StoreUnavailable(TreasuryError):
    """Backend failure

    Attributes:
        outcome_unknown: False -> rolled back, nothing was applied.
            True -> COMMIT failed, the caller must re-read to find out.
    """

    def __init__(self, message: str, outcome_unknown: bool = False):
        self.outcome_unknown = outcome_unknown
        super().__init__(message)


class DuplicateLinkedEntry(TreasuryError):
    """A second ledger entry for the same funding request"""

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Ledger already holds an entry linked to request {request_id}")


class PermissionDenied(TreasuryError):
    """Actor's role does not allow the operation"""

    pass
