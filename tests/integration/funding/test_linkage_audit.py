"""audit_linkage against a real store"""

from decimal import Decimal

import pytest

from core.funding.audit import audit_linkage
from core.funding.repository import ProjectRequestRepository
from core.funding.service import ApprovalService
from core.ledger.store import LedgerStore
from core.ledger.types import LedgerEntry, TransactionKind
from core.types import Actor


class TestAuditLinkage:
    """audit_linkage tests"""

    @pytest.mark.asyncio
    async def test_clean_after_workflow(
        self,
        service: ApprovalService,
        ledger: LedgerStore,
        requests: ProjectRequestRepository,
        treasurer: Actor,
        member_admin: Actor,
    ) -> None:
        approved = await service.create_request(member_admin, "Trees", "90")
        rejected = await service.create_request(member_admin, "Paint", "60")
        await service.create_request(member_admin, "Books", "40", submit=False)
        await service.approve(approved.request_id, treasurer)
        await service.reject(rejected.request_id, treasurer)

        assert await audit_linkage(ledger, requests) == []

    @pytest.mark.asyncio
    async def test_detects_entry_on_pending_request(
        self,
        service: ApprovalService,
        ledger: LedgerStore,
        requests: ProjectRequestRepository,
        member_admin: Actor,
    ) -> None:
        """A linked row written behind the service's back is reported"""
        pending = await service.create_request(member_admin, "Trees", "90")
        async with ledger.db.transaction() as conn:
            await ledger.insert_entry(
                conn,
                LedgerEntry.create(
                    Decimal("90"),
                    TransactionKind.EXPENSE,
                    linked_request_id=pending.request_id,
                ),
            )

        violations = await audit_linkage(ledger, requests)

        assert [(v.request_id, v.problem) for v in violations] == [
            (pending.request_id, "unfunded_entry"),
        ]
