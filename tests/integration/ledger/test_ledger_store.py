"""LedgerStore integration tests"""

from datetime import date
from decimal import Decimal

import pytest

from core.errors import DuplicateLinkedEntry, NotFound, PermissionDenied, ValidationError
from core.ledger.calculator import compute
from core.ledger.store import LedgerStore
from core.ledger.types import LedgerEntry, TransactionKind
from core.types import Actor
from core.utils.change_feed import ChangeEvent


def _income(amount: str, day: date = date(2026, 10, 1)) -> LedgerEntry:
    return LedgerEntry.create(Decimal(amount), TransactionKind.INCOME, "Fees", entry_date=day)


class TestAppend:
    """LedgerStore.append"""

    @pytest.mark.asyncio
    async def test_append_and_list(self, ledger: LedgerStore, treasurer: Actor) -> None:
        stored = await ledger.append(_income("1000"), treasurer)

        entries = await ledger.list_entries()
        assert [e.entry_id for e in entries] == [stored.entry_id]
        assert entries[0].amount == Decimal("1000")
        assert entries[0].created_by == treasurer.actor_id
        assert entries[0].created_at is not None

    @pytest.mark.asyncio
    async def test_append_publishes_after_commit(self, ledger: LedgerStore, treasurer: Actor) -> None:
        seen: list[tuple[str, int]] = []

        async def on_change(event: ChangeEvent) -> None:
            # the write is already visible to readers
            seen.append((event.action, len(await ledger.list_entries())))

        ledger.changes.subscribe(on_change)
        await ledger.append(_income("10"), treasurer)

        assert seen == [("appended", 1)]

    @pytest.mark.asyncio
    async def test_requires_super_admin(self, ledger: LedgerStore, member_admin: Actor) -> None:
        with pytest.raises(PermissionDenied):
            await ledger.append(_income("10"), member_admin)

        assert await ledger.list_entries() == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["0", "-5"])
    async def test_rejects_non_positive(self, ledger: LedgerStore, treasurer: Actor, amount: str) -> None:
        with pytest.raises(ValidationError, match="positive"):
            await ledger.append(_income(amount), treasurer)

    @pytest.mark.asyncio
    async def test_rejects_linked_entry(self, ledger: LedgerStore, treasurer: Actor) -> None:
        entry = LedgerEntry.create(
            Decimal("250"),
            TransactionKind.EXPENSE,
            linked_request_id="pr-1",
        )

        with pytest.raises(ValidationError, match="approving the request"):
            await ledger.append(entry, treasurer)

    @pytest.mark.asyncio
    async def test_duplicate_id(self, ledger: LedgerStore, treasurer: Actor) -> None:
        entry = _income("10")
        await ledger.append(entry, treasurer)

        with pytest.raises(ValidationError, match="Duplicate"):
            await ledger.append(entry, treasurer)


class TestInsertEntry:
    """LedgerStore.insert_entry (approval path)"""

    @pytest.mark.asyncio
    async def test_second_linked_entry_refused(self, ledger: LedgerStore) -> None:
        first = LedgerEntry.create(Decimal("250"), TransactionKind.EXPENSE, linked_request_id="pr-1")
        second = LedgerEntry.create(Decimal("250"), TransactionKind.EXPENSE, linked_request_id="pr-1")

        async with ledger.db.transaction() as conn:
            await ledger.insert_entry(conn, first)

        with pytest.raises(DuplicateLinkedEntry):
            async with ledger.db.transaction() as conn:
                await ledger.insert_entry(conn, second)

        assert await ledger.count_linked("pr-1") == 1
        linked = await ledger.get_linked("pr-1")
        assert linked is not None and linked.entry_id == first.entry_id


class TestRemove:
    """LedgerStore.remove"""

    @pytest.mark.asyncio
    async def test_remove_manual_entry(self, ledger: LedgerStore, treasurer: Actor) -> None:
        stored = await ledger.append(_income("10"), treasurer)
        actions: list[str] = []

        async def on_change(event: ChangeEvent) -> None:
            actions.append(event.action)

        ledger.changes.subscribe(on_change)
        await ledger.remove(stored.entry_id, treasurer)

        assert await ledger.get(stored.entry_id) is None
        assert actions == ["removed"]

    @pytest.mark.asyncio
    async def test_remove_unknown(self, ledger: LedgerStore, treasurer: Actor) -> None:
        with pytest.raises(NotFound):
            await ledger.remove("tx-missing", treasurer)

    @pytest.mark.asyncio
    async def test_linked_entry_stays(self, ledger: LedgerStore, treasurer: Actor) -> None:
        linked = LedgerEntry.create(Decimal("250"), TransactionKind.EXPENSE, linked_request_id="pr-1")
        async with ledger.db.transaction() as conn:
            await ledger.insert_entry(conn, linked)

        with pytest.raises(ValidationError, match="linked"):
            await ledger.remove(linked.entry_id, treasurer)

        assert await ledger.get(linked.entry_id) is not None

    @pytest.mark.asyncio
    async def test_requires_super_admin(self, ledger: LedgerStore, treasurer: Actor, member_admin: Actor) -> None:
        stored = await ledger.append(_income("10"), treasurer)

        with pytest.raises(PermissionDenied):
            await ledger.remove(stored.entry_id, member_admin)


class TestReads:
    """Ordering and date filters"""

    @pytest.mark.asyncio
    async def test_oldest_first(self, ledger: LedgerStore, treasurer: Actor) -> None:
        late = await ledger.append(_income("1", date(2026, 10, 9)), treasurer)
        early = await ledger.append(_income("2", date(2026, 10, 2)), treasurer)

        entries = await ledger.list_entries()

        assert [e.entry_id for e in entries] == [early.entry_id, late.entry_id]

    @pytest.mark.asyncio
    async def test_list_between(self, ledger: LedgerStore, treasurer: Actor) -> None:
        await ledger.append(_income("1", date(2026, 9, 30)), treasurer)
        inside = await ledger.append(_income("2", date(2026, 10, 1)), treasurer)
        await ledger.append(_income("3", date(2026, 11, 1)), treasurer)

        entries = await ledger.list_between(date(2026, 10, 1), date(2026, 10, 31))

        assert [e.entry_id for e in entries] == [inside.entry_id]

    @pytest.mark.asyncio
    async def test_list_between_inverted(self, ledger: LedgerStore) -> None:
        with pytest.raises(ValidationError):
            await ledger.list_between(date(2026, 10, 2), date(2026, 10, 1))

    @pytest.mark.asyncio
    async def test_balance_from_store(self, ledger: LedgerStore, treasurer: Actor) -> None:
        await ledger.append(_income("1000"), treasurer)
        await ledger.append(
            LedgerEntry.create(Decimal("400"), TransactionKind.EXPENSE, "Hall rent"),
            treasurer,
        )

        assert compute(await ledger.list_entries()).balance == Decimal("600")
