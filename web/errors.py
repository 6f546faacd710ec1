"""
Treasury error -> HTTP status mapping
"""

from fastapi import HTTPException

from core.errors import (
    ConcurrentModification,
    DuplicateLinkedEntry,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    StoreUnavailable,
    TreasuryError,
    ValidationError,
)

STATUS_CODES: dict[type[TreasuryError], int] = {
    ValidationError: 400,
    PermissionDenied: 403,
    NotFound: 404,
    InvalidTransition: 409,
    ConcurrentModification: 409,
    DuplicateLinkedEntry: 409,
    StoreUnavailable: 503,
}


def to_http_exception(error: TreasuryError) -> HTTPException:
    """HTTPException for a treasury error

    StoreUnavailable with an unknown outcome says so in the detail, so the
    client knows to re-read before retrying.
    """
    status_code = 500
    for error_type, code in STATUS_CODES.items():
        if isinstance(error, error_type):
            status_code = code
            break

    detail: str | dict[str, object] = str(error)
    if isinstance(error, StoreUnavailable):
        detail = {"message": str(error), "outcome_unknown": error.outcome_unknown}

    return HTTPException(status_code=status_code, detail=detail)
