"""web/errors.py tests"""

import pytest

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
from web.errors import to_http_exception


class TestToHttpException:
    """Treasury error -> HTTP status"""

    @pytest.mark.parametrize(
        ("error", "status_code"),
        [
            (ValidationError("bad"), 400),
            (PermissionDenied("no"), 403),
            (NotFound("ProjectRequest", "pr-1"), 404),
            (InvalidTransition("DRAFT", "ACTIVE"), 409),
            (ConcurrentModification("pr-1", 1, 2), 409),
            (DuplicateLinkedEntry("pr-1"), 409),
            (StoreUnavailable("down"), 503),
            (TreasuryError("other"), 500),
        ],
    )
    def test_status_codes(self, error: TreasuryError, status_code: int) -> None:
        assert to_http_exception(error).status_code == status_code

    def test_outcome_unknown_in_detail(self) -> None:
        exc = to_http_exception(StoreUnavailable("commit failed", outcome_unknown=True))

        assert exc.detail == {"message": "commit failed", "outcome_unknown": True}

    def test_plain_detail(self) -> None:
        exc = to_http_exception(NotFound("LedgerEntry", "tx-1"))

        assert exc.detail == "LedgerEntry not found: tx-1"
