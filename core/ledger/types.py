"""
Ledger types

Income/expense entries and the derived figures computed from them.
Amounts are always Decimal; storage keeps them as TEXT.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from core.utils.timezone import local_today, parse_utc


class TransactionKind(str, Enum):
    """Ledger entry direction"""

    INCOME = "INCOME"
    EXPENSE = "EXPENSE"

    @classmethod
    def parse(cls, raw: "str | TransactionKind | None") -> "TransactionKind":
        """Normalise a stored kind

        Older records use lowercase ('income', 'expense'). Anything that is
        not recognisably income counts as EXPENSE so malformed data can never
        inflate the balance.
        """
        if isinstance(raw, TransactionKind):
            return raw
        if isinstance(raw, str) and raw.strip().upper() == cls.INCOME.value:
            return cls.INCOME
        return cls.EXPENSE


def new_entry_id() -> str:
    """Ledger entry ID (tx-<12 hex>)"""
    return f"tx-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class LedgerEntry:
    """Ledger entry (immutable once posted)

    Attributes:
        entry_id: Entry ID
        amount: Non-negative magnitude
        kind: INCOME or EXPENSE
        description: Free text
        entry_date: Calendar date of the movement
        linked_request_id: Funding request this expense pays for (approval only)
        created_by: Actor that posted the entry
        created_at: Insert time (UTC)
    """

    entry_id: str
    amount: Decimal
    kind: TransactionKind
    description: str
    entry_date: date
    linked_request_id: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None

    @property
    def signed_amount(self) -> Decimal:
        """+amount for income, -amount for expense"""
        if self.kind == TransactionKind.INCOME:
            return self.amount
        return -self.amount

    @classmethod
    def create(
        cls,
        amount: Decimal,
        kind: "TransactionKind | str",
        description: str = "",
        entry_date: date | None = None,
        linked_request_id: str | None = None,
        created_by: str | None = None,
    ) -> "LedgerEntry":
        """New entry with a fresh ID (dated today when no date is given)"""
        return cls(
            entry_id=new_entry_id(),
            amount=amount,
            kind=TransactionKind.parse(kind),
            description=description,
            entry_date=entry_date or local_today(),
            linked_request_id=linked_request_id,
            created_by=created_by,
        )

    @classmethod
    def from_row(cls, row: Any) -> "LedgerEntry":
        """Build from a DB row"""
        return cls(
            entry_id=row["entry_id"],
            amount=Decimal(str(row["amount"])),
            kind=TransactionKind.parse(row["kind"]),
            description=row["description"] or "",
            entry_date=date.fromisoformat(row["entry_date"][:10]),
            linked_request_id=row["linked_request_id"],
            created_by=row["created_by"],
            created_at=parse_utc(row["created_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "amount": str(self.amount),
            "kind": self.kind.value,
            "description": self.description,
            "entry_date": self.entry_date.isoformat(),
            "linked_request_id": self.linked_request_id,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class Period:
    """Inclusive date range"""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"Period end {self.end} is before start {self.start}")

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @classmethod
    def month(cls, year: int, month: int) -> "Period":
        """Calendar month"""
        if not 1 <= month <= 12:
            raise ValueError(f"month must be 1-12, got {month}")
        start = date(year, month, 1)
        if month == 12:
            next_start = date(year + 1, 1, 1)
        else:
            next_start = date(year, month + 1, 1)
        return cls(start=start, end=date.fromordinal(next_start.toordinal() - 1))

    @classmethod
    def current_month(cls, today: date | None = None) -> "Period":
        today = today or local_today()
        return cls.month(today.year, today.month)


@dataclass(frozen=True)
class BalanceSummary:
    """Result of folding the ledger

    balance covers every entry; period_* only the entries inside the period.
    """

    balance: Decimal = Decimal("0")
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    period_income: Decimal = Decimal("0")
    period_expense: Decimal = Decimal("0")
    entry_count: int = 0

    @property
    def period_net(self) -> Decimal:
        return self.period_income - self.period_expense


@dataclass(frozen=True)
class DailyFlow:
    """Income/expense for one day (dashboard chart)"""

    day: date
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")


@dataclass(frozen=True)
class LedgerReport:
    """Date-filtered ledger snapshot for report rendering"""

    period: Period
    entries: tuple[LedgerEntry, ...] = field(default_factory=tuple)
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")

    @property
    def net_balance(self) -> Decimal:
        return self.total_income - self.total_expense
