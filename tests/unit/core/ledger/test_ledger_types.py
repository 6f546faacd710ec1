"""core/ledger/types.py tests"""

from datetime import date
from decimal import Decimal

import pytest

from core.ledger.types import LedgerEntry, Period, TransactionKind, new_entry_id


class TestTransactionKind:
    """TransactionKind tests"""

    def test_values(self) -> None:
        assert TransactionKind.INCOME.value == "INCOME"
        assert TransactionKind.EXPENSE == "EXPENSE"

    @pytest.mark.parametrize("raw", ["INCOME", "income", " Income "])
    def test_parse_income(self, raw: str) -> None:
        assert TransactionKind.parse(raw) == TransactionKind.INCOME

    @pytest.mark.parametrize("raw", ["EXPENSE", "expense", "refund", "", None])
    def test_parse_everything_else_is_expense(self, raw) -> None:
        assert TransactionKind.parse(raw) == TransactionKind.EXPENSE


class TestLedgerEntry:
    """LedgerEntry tests"""

    def test_create_assigns_id_and_date(self) -> None:
        entry = LedgerEntry.create(Decimal("100"), "income", description="Fees")

        assert entry.entry_id.startswith("tx-")
        assert entry.kind == TransactionKind.INCOME
        assert isinstance(entry.entry_date, date)
        assert entry.linked_request_id is None

    def test_signed_amount(self) -> None:
        income = LedgerEntry.create(Decimal("10"), TransactionKind.INCOME)
        expense = LedgerEntry.create(Decimal("10"), TransactionKind.EXPENSE)

        assert income.signed_amount == Decimal("10")
        assert expense.signed_amount == Decimal("-10")

    def test_immutable(self) -> None:
        entry = LedgerEntry.create(Decimal("10"), TransactionKind.INCOME)

        with pytest.raises(AttributeError):
            entry.amount = Decimal("20")  # type: ignore[misc]

    def test_from_row_normalises_legacy_values(self) -> None:
        row = {
            "entry_id": "tx-legacy",
            "amount": "12.50",
            "kind": "expense",
            "description": None,
            "entry_date": "2026-10-01T00:00:00",
            "linked_request_id": "pr-1",
            "created_by": None,
            "created_at": "2026-10-01 08:00:00",
        }

        entry = LedgerEntry.from_row(row)

        assert entry.amount == Decimal("12.50")
        assert entry.kind == TransactionKind.EXPENSE
        assert entry.description == ""
        assert entry.entry_date == date(2026, 10, 1)
        assert entry.created_at is not None and entry.created_at.tzinfo is not None

    def test_ids_unique(self) -> None:
        assert len({new_entry_id() for _ in range(100)}) == 100


class TestPeriod:
    """Period tests"""

    def test_month_bounds(self) -> None:
        period = Period.month(2026, 12)

        assert period.start == date(2026, 12, 1)
        assert period.end == date(2026, 12, 31)

    def test_leap_february(self) -> None:
        assert Period.month(2028, 2).end == date(2028, 2, 29)

    def test_contains_is_inclusive(self) -> None:
        period = Period(date(2026, 10, 1), date(2026, 10, 31))

        assert period.contains(date(2026, 10, 1))
        assert period.contains(date(2026, 10, 31))
        assert not period.contains(date(2026, 11, 1))

    def test_end_before_start(self) -> None:
        with pytest.raises(ValueError):
            Period(date(2026, 10, 2), date(2026, 10, 1))

    def test_current_month(self) -> None:
        period = Period.current_month(date(2026, 10, 19))

        assert period == Period.month(2026, 10)
