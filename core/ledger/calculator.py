"""
Balance calculator

Pure folds over ledger entries. Nothing here touches storage; callers pass
in whatever sequence they have read.

Fallback rules for malformed records:
- unknown or missing kind -> EXPENSE
- missing or non-numeric amount -> 0
- negative amount -> magnitude
"""

from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Sequence

from core.ledger.types import (
    BalanceSummary,
    DailyFlow,
    LedgerEntry,
    LedgerReport,
    Period,
    TransactionKind,
)

ZERO = Decimal("0")


def _magnitude(raw: Any) -> Decimal:
    if raw is None or isinstance(raw, bool):
        return ZERO
    try:
        value = raw if isinstance(raw, Decimal) else Decimal(str(raw))
    except (InvalidOperation, ValueError):
        return ZERO
    if not value.is_finite():
        return ZERO
    return abs(value)


def _entry_day(entry: Any) -> date | None:
    day = getattr(entry, "entry_date", None)
    return day if isinstance(day, date) else None


def compute(
    entries: Iterable[LedgerEntry],
    period: Period | None = None,
) -> BalanceSummary:
    """Fold entries into a balance summary

    Single pass; the input is never mutated and order does not matter.

    Args:
        entries: Ledger entries
        period: Window for period_income/period_expense (default: current month)

    Returns:
        BalanceSummary

    Example:
    ```python
    summary = compute([income_1000, expense_400])
    assert summary.balance == Decimal("600")
    ```
    """
    period = period or Period.current_month()

    total_income = ZERO
    total_expense = ZERO
    period_income = ZERO
    period_expense = ZERO
    count = 0

    for entry in entries:
        count += 1
        amount = _magnitude(getattr(entry, "amount", None))
        kind = TransactionKind.parse(getattr(entry, "kind", None))
        day = _entry_day(entry)
        in_period = day is not None and period.contains(day)

        if kind == TransactionKind.INCOME:
            total_income += amount
            if in_period:
                period_income += amount
        else:
            total_expense += amount
            if in_period:
                period_expense += amount

    return BalanceSummary(
        balance=total_income - total_expense,
        total_income=total_income,
        total_expense=total_expense,
        period_income=period_income,
        period_expense=period_expense,
        entry_count=count,
    )


def build_monthly_report(
    entries: Iterable[LedgerEntry],
    year: int,
    month: int,
) -> LedgerReport:
    """Entries of one calendar month with totals (report generator input)"""
    period = Period.month(year, month)
    selected = sorted(
        (e for e in entries if (d := _entry_day(e)) is not None and period.contains(d)),
        key=lambda e: (e.entry_date, e.entry_id),
    )

    income = ZERO
    expense = ZERO
    for entry in selected:
        amount = _magnitude(entry.amount)
        if TransactionKind.parse(entry.kind) == TransactionKind.INCOME:
            income += amount
        else:
            expense += amount

    return LedgerReport(
        period=period,
        entries=tuple(selected),
        total_income=income,
        total_expense=expense,
    )


def daily_flows(
    entries: Sequence[LedgerEntry],
    days: int,
    today: date,
) -> list[DailyFlow]:
    """Per-day income/expense for the last `days` days (oldest first)

    Days without entries are present with zero values.
    """
    if days <= 0:
        raise ValueError(f"days must be positive, got {days}")

    first = today - timedelta(days=days - 1)
    income: dict[date, Decimal] = {}
    expense: dict[date, Decimal] = {}

    for entry in entries:
        day = _entry_day(entry)
        if day is None or day < first or day > today:
            continue
        amount = _magnitude(getattr(entry, "amount", None))
        if TransactionKind.parse(getattr(entry, "kind", None)) == TransactionKind.INCOME:
            income[day] = income.get(day, ZERO) + amount
        else:
            expense[day] = expense.get(day, ZERO) + amount

    return [
        DailyFlow(
            day=first + timedelta(days=offset),
            income=income.get(first + timedelta(days=offset), ZERO),
            expense=expense.get(first + timedelta(days=offset), ZERO),
        )
        for offset in range(days)
    ]
