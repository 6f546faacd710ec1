"""
Ledger

Single running balance per organisation, derived from simple
income/expense entries.

Usage:
```python
from core.ledger import LedgerStore, compute

store = LedgerStore(db)
summary = compute(await store.list_entries())
print(summary.balance)
```
"""

from core.ledger.calculator import build_monthly_report, compute, daily_flows
from core.ledger.store import LedgerStore, validate_entry
from core.ledger.types import (
    BalanceSummary,
    DailyFlow,
    LedgerEntry,
    LedgerReport,
    Period,
    TransactionKind,
    new_entry_id,
)

__all__ = [
    # Store
    "LedgerStore",
    "validate_entry",
    # Calculations
    "compute",
    "build_monthly_report",
    "daily_flows",
    # Types
    "TransactionKind",
    "LedgerEntry",
    "BalanceSummary",
    "Period",
    "DailyFlow",
    "LedgerReport",
    "new_entry_id",
]
