"""
Ledger store

Owns the ledger_entries table. Entries are append-only: there is no
update path, and removal is limited to manual (unlinked) entries.
Linked entries are written only by the approval service, through
insert_entry() inside its own transaction.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import aiosqlite

from core.errors import DuplicateLinkedEntry, NotFound, ValidationError
from core.ledger.types import LedgerEntry
from core.permissions import require_super_admin
from core.storage.guard import store_errors
from core.types import Actor
from core.utils.change_feed import ChangeFeed
from core.utils.timezone import now_utc

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)

_SELECT = """
    SELECT entry_id, amount, kind, description, entry_date,
           linked_request_id, created_by, created_at
    FROM ledger_entries
"""
_ORDER = " ORDER BY entry_date ASC, created_at ASC, entry_id ASC"


def validate_entry(entry: LedgerEntry) -> None:
    """Reject malformed entries before any write

    Raises:
        ValidationError: missing id, non-positive or non-finite amount,
            missing date
    """
    if not entry.entry_id:
        raise ValidationError("entry_id is required")
    if not isinstance(entry.amount, Decimal) or not entry.amount.is_finite():
        raise ValidationError(f"amount must be a finite decimal, got {entry.amount!r}")
    if entry.amount <= 0:
        raise ValidationError(f"amount must be positive, got {entry.amount}")
    if not isinstance(entry.entry_date, date):
        raise ValidationError("entry_date is required")


class LedgerStore:
    """Ledger store

    Args:
        db: SQLite adapter

    Attributes:
        changes: Feed announcing committed appends/removals
            (the approval service publishes its linked entries here too)

    Example:
    ```python
    store = LedgerStore(adapter)
    entry = LedgerEntry.create(
        amount=Decimal("1000"),
        kind=TransactionKind.INCOME,
        description="Membership fees",
    )
    await store.append(entry, treasurer)
    entries = await store.list_entries()
    ```
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db
        self.changes = ChangeFeed("ledger")

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def append(self, entry: LedgerEntry, actor: Actor) -> LedgerEntry:
        """Post a manual income/expense entry

        Args:
            entry: New entry (must not be linked to a request)
            actor: Acting user (SUPER_ADMIN)

        Returns:
            The stored entry

        Raises:
            PermissionDenied: actor is not SUPER_ADMIN
            ValidationError: invalid entry or linked entry
            StoreUnavailable: store failure
        """
        require_super_admin(actor, "post ledger entries")
        if entry.linked_request_id:
            raise ValidationError(
                "Linked entries are created by approving the request, not directly"
            )
        validate_entry(entry)

        async with store_errors("ledger.append", entry_id=entry.entry_id):
            async with self.db.transaction() as conn:
                stored = await self.insert_entry(conn, entry, created_by=actor.actor_id)

        logger.info(
            f"Ledger entry appended: {stored.entry_id} {stored.kind.value} {stored.amount}",
            extra={"entry_id": stored.entry_id, "actor_id": actor.actor_id},
        )
        await self.changes.publish(
            "appended",
            stored.entry_id,
            {"kind": stored.kind.value, "amount": str(stored.amount)},
        )
        return stored

    async def remove(self, entry_id: str, actor: Actor) -> None:
        """Remove a manual entry

        Linked entries stay: the request that produced them has no way back
        out of the funded states.

        Raises:
            PermissionDenied: actor is not SUPER_ADMIN
            NotFound: no such entry
            ValidationError: entry is linked to a request
            StoreUnavailable: store failure
        """
        require_super_admin(actor, "remove ledger entries")

        async with store_errors("ledger.remove", entry_id=entry_id):
            async with self.db.transaction() as conn:
                cursor = await conn.execute(
                    "SELECT linked_request_id FROM ledger_entries WHERE entry_id = ?",
                    (entry_id,),
                )
                row = await cursor.fetchone()
                if row is None:
                    raise NotFound("LedgerEntry", entry_id)
                if row["linked_request_id"]:
                    raise ValidationError(
                        f"{entry_id} is linked to request {row['linked_request_id']} "
                        "and cannot be removed"
                    )
                await conn.execute(
                    "DELETE FROM ledger_entries WHERE entry_id = ? AND linked_request_id IS NULL",
                    (entry_id,),
                )

        logger.info(
            f"Ledger entry removed: {entry_id}",
            extra={"entry_id": entry_id, "actor_id": actor.actor_id},
        )
        await self.changes.publish("removed", entry_id)

    async def insert_entry(
        self,
        conn: aiosqlite.Connection,
        entry: LedgerEntry,
        created_by: str | None = None,
    ) -> LedgerEntry:
        """INSERT one entry on an open transaction (no commit)

        Args:
            conn: Connection from SQLiteAdapter.transaction()
            entry: Entry to write
            created_by: Overrides entry.created_by when given

        Returns:
            The entry as stored (created_at filled in)

        Raises:
            DuplicateLinkedEntry: request already has a linked entry
            ValidationError: entry_id already used
        """
        stored = LedgerEntry(
            entry_id=entry.entry_id,
            amount=entry.amount,
            kind=entry.kind,
            description=entry.description,
            entry_date=entry.entry_date,
            linked_request_id=entry.linked_request_id,
            created_by=created_by or entry.created_by,
            created_at=entry.created_at or now_utc(),
        )
        try:
            await conn.execute(
                """
                INSERT INTO ledger_entries (
                    entry_id, amount, kind, description, entry_date,
                    linked_request_id, created_by, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    stored.entry_id,
                    str(stored.amount),
                    stored.kind.value,
                    stored.description,
                    stored.entry_date.isoformat(),
                    stored.linked_request_id,
                    stored.created_by,
                    stored.created_at.isoformat() if stored.created_at else None,
                ),
            )
        except aiosqlite.IntegrityError as e:
            if stored.linked_request_id and "linked_request_id" in str(e):
                raise DuplicateLinkedEntry(stored.linked_request_id) from e
            raise ValidationError(f"Duplicate ledger entry id: {stored.entry_id}") from e

        return stored

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get(self, entry_id: str) -> LedgerEntry | None:
        row = await self._fetchone(f"{_SELECT} WHERE entry_id = ?", (entry_id,))
        return LedgerEntry.from_row(row) if row else None

    async def get_linked(self, request_id: str) -> LedgerEntry | None:
        """Entry posted when the request was approved, if any"""
        row = await self._fetchone(
            f"{_SELECT} WHERE linked_request_id = ?",
            (request_id,),
        )
        return LedgerEntry.from_row(row) if row else None

    async def list_entries(self) -> list[LedgerEntry]:
        """All entries, oldest first"""
        rows = await self._fetchall(f"{_SELECT}{_ORDER}")
        return [LedgerEntry.from_row(row) for row in rows]

    async def list_between(self, start: date, end: date) -> list[LedgerEntry]:
        """Entries dated within [start, end], oldest first"""
        if end < start:
            raise ValidationError(f"end {end} is before start {start}")
        rows = await self._fetchall(
            f"{_SELECT} WHERE entry_date BETWEEN ? AND ?{_ORDER}",
            (start.isoformat(), end.isoformat()),
        )
        return [LedgerEntry.from_row(row) for row in rows]

    async def count_linked(self, request_id: str) -> int:
        row = await self._fetchone(
            "SELECT COUNT(*) AS n FROM ledger_entries WHERE linked_request_id = ?",
            (request_id,),
        )
        return int(row["n"]) if row else 0

    async def _fetchone(self, sql: str, params: tuple[Any, ...] = ()) -> Any:
        async with store_errors("ledger.read"):
            async with self.db.consistent_read():
                return await self.db.fetchone(sql, params)

    async def _fetchall(self, sql: str, params: tuple[Any, ...] = ()) -> list[Any]:
        async with store_errors("ledger.read"):
            async with self.db.consistent_read():
                return await self.db.fetchall(sql, params)
