#!/usr/bin/env python3
"""Ledger / funding request consistency check"""

import asyncio
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import get_settings
from core.funding.audit import audit_linkage
from core.funding.repository import ProjectRequestRepository
from core.ledger.calculator import compute
from core.ledger.store import LedgerStore


async def main() -> int:
    db_path = Path(sys.argv[1]) if len(sys.argv) > 1 else get_settings().db_path

    async with SQLiteAdapter(db_path, readonly=True) as db:
        ledger = LedgerStore(db)
        requests = ProjectRequestRepository(db)

        entries = await ledger.list_entries()
        summary = compute(entries)
        print(f"DB Path: {db_path}")
        print(f"Entries: {summary.entry_count}")
        print(f"Income: {summary.total_income}  Expense: {summary.total_expense}")
        print(f"Balance: {summary.balance}")

        violations = await audit_linkage(ledger, requests)
        if not violations:
            print("\nLinkage: OK")
            return 0

        print(f"\nLinkage problems ({len(violations)}):")
        for v in violations:
            print(f"  - {v.request_id}: {v.problem} ({v.detail})")
        return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
