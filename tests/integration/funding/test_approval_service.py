"""
ApprovalService integration tests

Approval writes the status change and the linked expense together; every
other transition leaves the ledger alone.
"""

from decimal import Decimal
from pathlib import Path

import aiosqlite
import pytest

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from adapters.mock.notifier import MockNotifier
from core.errors import (
    ConcurrentModification,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    StoreUnavailable,
)
from core.funding.repository import ProjectRequestRepository
from core.funding.service import ApprovalService
from core.funding.types import RequestStatus
from core.ledger.calculator import compute
from core.ledger.store import LedgerStore
from core.ledger.types import LedgerEntry, TransactionKind
from core.types import Actor


async def _fund(ledger: LedgerStore, treasurer: Actor, amount: str = "1000") -> None:
    await ledger.append(
        LedgerEntry.create(Decimal(amount), TransactionKind.INCOME, "Membership fees"),
        treasurer,
    )


async def _balance(ledger: LedgerStore) -> Decimal:
    return compute(await ledger.list_entries()).balance


class TestApprove:
    """ApprovalService.approve"""

    @pytest.mark.asyncio
    async def test_approve_posts_linked_expense(
        self,
        service: ApprovalService,
        ledger: LedgerStore,
        treasurer: Actor,
        member_admin: Actor,
    ) -> None:
        await _fund(ledger, treasurer)
        request = await service.create_request(member_admin, "Beach clean-up", "250")

        outcome = await service.approve(request.request_id, treasurer)

        assert outcome.request.status == RequestStatus.ACTIVE
        assert outcome.request.approved_by == treasurer.actor_id
        assert outcome.request.approved_at is not None
        assert outcome.request.version == request.version + 1
        assert outcome.already_applied is False
        assert outcome.insufficient_funds is False
        assert outcome.balance_before == Decimal("1000")

        entry = outcome.entry
        assert entry is not None
        assert entry.amount == Decimal("250")
        assert entry.kind == TransactionKind.EXPENSE
        assert entry.linked_request_id == request.request_id
        assert await ledger.count_linked(request.request_id) == 1
        assert await _balance(ledger) == Decimal("750")

    @pytest.mark.asyncio
    async def test_second_approve_is_noop(
        self,
        service: ApprovalService,
        ledger: LedgerStore,
        treasurer: Actor,
        member_admin: Actor,
    ) -> None:
        await _fund(ledger, treasurer)
        request = await service.create_request(member_admin, "Beach clean-up", "250")
        first = await service.approve(request.request_id, treasurer)

        again = await service.approve(request.request_id, treasurer)

        assert again.already_applied is True
        assert again.request.status == RequestStatus.ACTIVE
        assert again.request.version == first.request.version
        assert again.entry == first.entry
        assert await ledger.count_linked(request.request_id) == 1
        assert await _balance(ledger) == Decimal("750")

    @pytest.mark.asyncio
    async def test_approve_completed_is_noop(
        self,
        service: ApprovalService,
        ledger: LedgerStore,
        treasurer: Actor,
        member_admin: Actor,
    ) -> None:
        request = await service.create_request(member_admin, "Trees", "90")
        await service.approve(request.request_id, treasurer)
        await service.mark_complete(request.request_id, member_admin)
        await service.verify_completion(request.request_id, treasurer)

        again = await service.approve(request.request_id, treasurer)

        assert again.already_applied is True
        assert again.request.status == RequestStatus.COMPLETED
        assert await ledger.count_linked(request.request_id) == 1

    @pytest.mark.asyncio
    async def test_approve_draft_invalid(
        self,
        service: ApprovalService,
        ledger: LedgerStore,
        requests: ProjectRequestRepository,
        treasurer: Actor,
        member_admin: Actor,
    ) -> None:
        draft = await service.create_request(member_admin, "Trees", "90", submit=False)

        with pytest.raises(InvalidTransition):
            await service.approve(draft.request_id, treasurer)

        assert (await requests.require(draft.request_id)) == draft
        assert await ledger.list_entries() == []

    @pytest.mark.asyncio
    async def test_approve_rejected_invalid(
        self,
        service: ApprovalService,
        ledger: LedgerStore,
        treasurer: Actor,
        member_admin: Actor,
    ) -> None:
        request = await service.create_request(member_admin, "Trees", "90")
        await service.reject(request.request_id, treasurer)

        with pytest.raises(InvalidTransition):
            await service.approve(request.request_id, treasurer)

        assert await ledger.count_linked(request.request_id) == 0

    @pytest.mark.asyncio
    async def test_approve_requires_super_admin(
        self,
        service: ApprovalService,
        ledger: LedgerStore,
        requests: ProjectRequestRepository,
        member_admin: Actor,
    ) -> None:
        request = await service.create_request(member_admin, "Trees", "90")

        with pytest.raises(PermissionDenied):
            await service.approve(request.request_id, member_admin)

        assert (await requests.require(request.request_id)).status == RequestStatus.PENDING
        assert await ledger.list_entries() == []

    @pytest.mark.asyncio
    async def test_approve_unknown(self, service: ApprovalService, treasurer: Actor) -> None:
        with pytest.raises(NotFound):
            await service.approve("pr-missing", treasurer)

    @pytest.mark.asyncio
    async def test_insufficient_funds_is_advisory(
        self,
        service: ApprovalService,
        ledger: LedgerStore,
        notifier: MockNotifier,
        treasurer: Actor,
        member_admin: Actor,
    ) -> None:
        await _fund(ledger, treasurer, "100")
        request = await service.create_request(member_admin, "Hall", "250")

        outcome = await service.approve(request.request_id, treasurer)

        assert outcome.request.status == RequestStatus.ACTIVE
        assert outcome.insufficient_funds is True
        assert outcome.balance_before == Decimal("100")
        assert await _balance(ledger) == Decimal("-150")
        assert len(notifier.get_warnings()) == 1

    @pytest.mark.asyncio
    async def test_legacy_pending_row_is_approvable(
        self,
        service: ApprovalService,
        requests: ProjectRequestRepository,
        ledger: LedgerStore,
        db: SQLiteAdapter,
        treasurer: Actor,
    ) -> None:
        await db.execute(
            """
            INSERT INTO project_requests (
                request_id, title, estimated_cost, request_date, status,
                requester_id, requester_name, created_at, updated_at
            )
            VALUES ('pr-legacy', 'Old benches', '120', '2025-03-01', 'pending',
                    'u-admin', 'Old Admin', '2025-03-01T00:00:00+00:00',
                    '2025-03-01T00:00:00+00:00')
            """
        )
        await db.commit()
        await init_schema(db)

        assert [r.request_id for r in await requests.list_by_status(RequestStatus.PENDING)] == [
            "pr-legacy"
        ]

        outcome = await service.approve("pr-legacy", treasurer)

        assert outcome.already_applied is False
        assert outcome.request.status == RequestStatus.ACTIVE
        assert await ledger.count_linked("pr-legacy") == 1


class TestApproveFailure:
    """Injected store failures"""

    @pytest.mark.asyncio
    async def test_ledger_insert_failure_leaves_request_pending(
        self,
        service: ApprovalService,
        ledger: LedgerStore,
        requests: ProjectRequestRepository,
        treasurer: Actor,
        member_admin: Actor,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        request = await service.create_request(member_admin, "Trees", "90")

        async def broken_insert(conn, entry, created_by=None):
            raise aiosqlite.OperationalError("disk I/O error")

        monkeypatch.setattr(ledger, "insert_entry", broken_insert)

        with pytest.raises(StoreUnavailable) as exc_info:
            await service.approve(request.request_id, treasurer)

        assert exc_info.value.outcome_unknown is False
        monkeypatch.undo()

        current = await requests.require(request.request_id)
        assert current.status == RequestStatus.PENDING
        assert current.version == request.version
        assert current.approved_at is None
        assert await ledger.list_entries() == []

        # the request can still be approved once the store recovers
        outcome = await service.approve(request.request_id, treasurer)
        assert outcome.request.status == RequestStatus.ACTIVE
        assert await ledger.count_linked(request.request_id) == 1

    @pytest.mark.asyncio
    async def test_vanished_row_rolls_back(
        self,
        service: ApprovalService,
        ledger: LedgerStore,
        requests: ProjectRequestRepository,
        treasurer: Actor,
        member_admin: Actor,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Row unreadable after the claim: NotFound, nothing committed"""
        request = await service.create_request(member_admin, "Trees", "90")

        original_fetch = requests.fetch_for_update
        # reads that still see the row before it goes missing
        visible = {"reads": 0}

        async def missing_after_write(conn, request_id):
            if visible["reads"] > 0:
                visible["reads"] -= 1
                return await original_fetch(conn, request_id)
            return None

        monkeypatch.setattr(requests, "fetch_for_update", missing_after_write)

        with pytest.raises(NotFound):
            await service.approve(request.request_id, treasurer)

        visible["reads"] = 1
        with pytest.raises(NotFound):
            await service.reject(request.request_id, treasurer)

        monkeypatch.undo()
        assert visible["reads"] == 0
        current = await requests.require(request.request_id)
        assert current.status == RequestStatus.PENDING
        assert current.version == request.version
        assert await ledger.list_entries() == []

    @pytest.mark.asyncio
    async def test_lost_race_to_reject(
        self,
        service: ApprovalService,
        requests: ProjectRequestRepository,
        ledger: LedgerStore,
        treasurer: Actor,
        member_admin: Actor,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Request rejected between the approver's read and write"""
        request = await service.create_request(member_admin, "Trees", "90")
        original_require = requests.require

        async def stale_require(request_id: str):
            stale = await original_require(request_id)
            await requests.update_status(request_id, RequestStatus.REJECTED)
            return stale

        monkeypatch.setattr(requests, "require", stale_require)

        with pytest.raises(ConcurrentModification):
            await service.approve(request.request_id, treasurer)

        monkeypatch.undo()
        assert (await requests.require(request.request_id)).status == RequestStatus.REJECTED
        assert await ledger.list_entries() == []

    @pytest.mark.asyncio
    async def test_reject_lost_race_to_approve(
        self,
        service: ApprovalService,
        requests: ProjectRequestRepository,
        ledger: LedgerStore,
        treasurer: Actor,
        member_admin: Actor,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Request approved between the rejecter's read and write"""
        await _fund(ledger, treasurer)
        request = await service.create_request(member_admin, "Trees", "90")
        original_require = requests.require

        async def stale_require(request_id: str):
            stale = await original_require(request_id)
            monkeypatch.undo()
            await service.approve(request_id, treasurer)
            return stale

        monkeypatch.setattr(requests, "require", stale_require)

        with pytest.raises(ConcurrentModification):
            await service.reject(request.request_id, treasurer)

        stored = await requests.require(request.request_id)
        assert stored.status == RequestStatus.ACTIVE
        assert await ledger.count_linked(request.request_id) == 1


class TestLifecycle:
    """Full workflow"""

    @pytest.mark.asyncio
    async def test_complete_and_verify_add_no_entries(
        self,
        service: ApprovalService,
        ledger: LedgerStore,
        treasurer: Actor,
        member_admin: Actor,
    ) -> None:
        await _fund(ledger, treasurer)
        request = await service.create_request(member_admin, "Beach clean-up", "250")
        await service.approve(request.request_id, treasurer)
        entries_after_approve = await ledger.list_entries()

        pending = await service.mark_complete(request.request_id, member_admin)
        done = await service.verify_completion(request.request_id, treasurer)

        assert pending.status == RequestStatus.PENDING_COMPLETION
        assert done.status == RequestStatus.COMPLETED
        assert done.completed_at is not None
        assert await ledger.list_entries() == entries_after_approve

    @pytest.mark.asyncio
    async def test_draft_submit(
        self,
        service: ApprovalService,
        member_admin: Actor,
    ) -> None:
        draft = await service.create_request(member_admin, "Trees", "90", submit=False)

        submitted = await service.submit(draft.request_id, member_admin)

        assert submitted.status == RequestStatus.PENDING
        assert submitted.submitted_at is not None

    @pytest.mark.asyncio
    async def test_repeat_transitions_are_noops(
        self,
        service: ApprovalService,
        treasurer: Actor,
        member_admin: Actor,
    ) -> None:
        request = await service.create_request(member_admin, "Trees", "90")
        rejected = await service.reject(request.request_id, treasurer)

        again = await service.reject(request.request_id, treasurer)

        assert again.status == RequestStatus.REJECTED
        assert again.version == rejected.version

    @pytest.mark.asyncio
    async def test_reject_then_complete_invalid(
        self,
        service: ApprovalService,
        treasurer: Actor,
        member_admin: Actor,
    ) -> None:
        request = await service.create_request(member_admin, "Trees", "90")
        await service.reject(request.request_id, treasurer)

        with pytest.raises(InvalidTransition):
            await service.mark_complete(request.request_id, member_admin)

    @pytest.mark.asyncio
    async def test_notifications(
        self,
        service: ApprovalService,
        ledger: LedgerStore,
        notifier: MockNotifier,
        treasurer: Actor,
        member_admin: Actor,
    ) -> None:
        await _fund(ledger, treasurer)
        request = await service.create_request(member_admin, "Trees", "90")
        await service.approve(request.request_id, treasurer)

        assert [n.extra["event"] for n in notifier.notifications] == ["submit", "approve"]
        assert notifier.last_notification.extra["status"] == "ACTIVE"

    @pytest.mark.asyncio
    async def test_broken_notifier_does_not_block(
        self,
        ledger: LedgerStore,
        requests: ProjectRequestRepository,
        treasurer: Actor,
        member_admin: Actor,
    ) -> None:
        service = ApprovalService(ledger, requests, MockNotifier(should_raise=True))
        request = await service.create_request(member_admin, "Trees", "90")

        outcome = await service.approve(request.request_id, treasurer)

        assert outcome.request.status == RequestStatus.ACTIVE


class TestPermissions:
    """Role checks per transition"""

    @pytest.mark.asyncio
    async def test_other_admin_cannot_submit(
        self,
        service: ApprovalService,
        member_admin: Actor,
        other_admin: Actor,
    ) -> None:
        draft = await service.create_request(member_admin, "Trees", "90", submit=False)

        with pytest.raises(PermissionDenied):
            await service.submit(draft.request_id, other_admin)

    @pytest.mark.asyncio
    async def test_super_admin_can_submit_for_requester(
        self,
        service: ApprovalService,
        treasurer: Actor,
        member_admin: Actor,
    ) -> None:
        draft = await service.create_request(member_admin, "Trees", "90", submit=False)

        submitted = await service.submit(draft.request_id, treasurer)

        assert submitted.status == RequestStatus.PENDING

    @pytest.mark.asyncio
    async def test_requester_cannot_reject_or_verify(
        self,
        service: ApprovalService,
        treasurer: Actor,
        member_admin: Actor,
    ) -> None:
        request = await service.create_request(member_admin, "Trees", "90")

        with pytest.raises(PermissionDenied):
            await service.reject(request.request_id, member_admin)

        await service.approve(request.request_id, treasurer)
        await service.mark_complete(request.request_id, member_admin)

        with pytest.raises(PermissionDenied):
            await service.verify_completion(request.request_id, member_admin)

    def test_stores_must_share_adapter(self, ledger: LedgerStore, temp_dir: Path) -> None:
        other = ProjectRequestRepository(SQLiteAdapter(temp_dir / "other.db"))

        with pytest.raises(ValueError, match="share one adapter"):
            ApprovalService(ledger, other)
