"""
Approval service

Orchestrates the funding-request workflow. approve() is the only operation
that writes to both the request table and the ledger, and it does so in a
single database transaction:

1. compare-and-swap the request row PENDING -> ACTIVE (status + version)
2. insert exactly one EXPENSE entry linked to the request

Either both rows are committed or neither is. A concurrent approve of the
same request loses the CAS and observes the winner's result, so no
interleaving can post two expenses or leave an ACTIVE request unfunded.

Notifications and change-feed publication happen only after commit and
never affect the outcome.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from core.domain.state_machines import RequestEvent, next_state
from core.errors import ConcurrentModification, NotFound
from core.funding.repository import ProjectRequestRepository
from core.funding.types import ApprovalOutcome, ProjectRequest, RequestStatus
from core.ledger.calculator import compute
from core.ledger.store import LedgerStore
from core.ledger.types import LedgerEntry, TransactionKind
from core.permissions import require_owner_or_super_admin, require_super_admin
from core.storage.guard import store_errors
from core.types import Actor
from core.utils.timezone import local_today, now_utc

if TYPE_CHECKING:
    from adapters.interfaces import INotifier

logger = logging.getLogger(__name__)


class ApprovalService:
    """Funding request workflow

    Args:
        ledger: Ledger store
        requests: Request repository (must share the ledger's adapter)
        notifier: Optional notification side channel

    Example:
    ```python
    service = ApprovalService(ledger, requests, notifier)

    request = await service.create_request(member_admin, "Beach clean-up", "250")
    outcome = await service.approve(request.request_id, treasurer)
    assert outcome.request.status == RequestStatus.ACTIVE

    # retry after a dropped response: no second expense
    again = await service.approve(request.request_id, treasurer)
    assert again.already_applied
    ```
    """

    def __init__(
        self,
        ledger: LedgerStore,
        requests: ProjectRequestRepository,
        notifier: INotifier | None = None,
    ):
        if ledger.db is not requests.db:
            raise ValueError("LedgerStore and ProjectRequestRepository must share one adapter")

        self.db = ledger.db
        self.ledger = ledger
        self.requests = requests
        self.notifier = notifier

    # -------------------------------------------------------------------------
    # Create / submit
    # -------------------------------------------------------------------------

    async def create_request(
        self,
        actor: Actor,
        title: str,
        estimated_cost: Any,
        description: str = "",
        request_date: Any = None,
        submit: bool = True,
    ) -> ProjectRequest:
        """Create a proposal (PENDING, or DRAFT when submit=False)"""
        request = await self.requests.create(
            actor,
            title=title,
            estimated_cost=estimated_cost,
            description=description,
            request_date=request_date,
            submit=submit,
        )
        if submit:
            await self._notify(request, RequestEvent.SUBMIT, actor)
        return request

    async def submit(self, request_id: str, actor: Actor) -> ProjectRequest:
        """DRAFT -> PENDING (sets submitted_at)"""
        return await self._transition(
            request_id,
            RequestEvent.SUBMIT,
            actor,
            extra_fields={"submitted_at": now_utc()},
        )

    # -------------------------------------------------------------------------
    # Approve
    # -------------------------------------------------------------------------

    async def approve(self, request_id: str, approver: Actor) -> ApprovalOutcome:
        """Approve a request and post its expense as one atomic write

        Args:
            request_id: Request ID
            approver: SUPER_ADMIN

        Returns:
            ApprovalOutcome (already_applied=True when nothing was written)

        Raises:
            PermissionDenied: approver is not SUPER_ADMIN
            NotFound: no such request
            InvalidTransition: request is DRAFT or REJECTED
            ConcurrentModification: request changed between read and write
                and is not funded
            StoreUnavailable: store failure (see outcome_unknown)
        """
        require_super_admin(approver, "approve funding requests")

        request = await self.requests.require(request_id)
        next_state(request.status, RequestEvent.APPROVE)

        if request.status.is_funded:
            logger.info(
                f"Approve {request_id}: already {request.status.value}, nothing to do",
                extra={"request_id": request_id, "actor_id": approver.actor_id},
            )
            return ApprovalOutcome(
                request=request,
                entry=await self.ledger.get_linked(request_id),
                already_applied=True,
            )

        # advisory only: funding decisions stay with the treasurer
        balance = compute(await self.ledger.list_entries()).balance
        insufficient = balance < request.estimated_cost
        if insufficient:
            logger.warning(
                f"Approving {request_id} for {request.estimated_cost} "
                f"with balance {balance}",
                extra={"request_id": request_id, "balance": str(balance)},
            )

        approved_at = now_utc()
        entry = LedgerEntry.create(
            amount=request.estimated_cost,
            kind=TransactionKind.EXPENSE,
            description=f"Project funding: {request.title}",
            entry_date=local_today(),
            linked_request_id=request_id,
            created_by=approver.actor_id,
        )

        winner: ProjectRequest | None = None
        updated: ProjectRequest | None = None
        async with store_errors("approval.approve", request_id=request_id):
            async with self.db.transaction() as conn:
                claimed = await self.requests.write_status(
                    conn,
                    request_id,
                    from_status=RequestStatus.PENDING,
                    to_status=RequestStatus.ACTIVE,
                    expected_version=request.version,
                    fields={
                        "approved_at": approved_at,
                        "approved_by": approver.actor_id,
                    },
                )

                if claimed:
                    entry = await self.ledger.insert_entry(conn, entry)
                    updated = await self.requests.fetch_for_update(conn, request_id)
                    if updated is None:
                        raise NotFound("ProjectRequest", request_id)
                else:
                    winner = await self.requests.fetch_for_update(conn, request_id)
                    if winner is None:
                        raise NotFound("ProjectRequest", request_id)
                    if not winner.status.is_funded:
                        raise ConcurrentModification(
                            request_id,
                            request.version,
                            winner.version,
                        )

        if winner is not None:
            logger.info(
                f"Approve {request_id}: lost the race, already {winner.status.value}",
                extra={"request_id": request_id, "actor_id": approver.actor_id},
            )
            return ApprovalOutcome(
                request=winner,
                entry=await self.ledger.get_linked(request_id),
                already_applied=True,
            )

        logger.info(
            f"Request approved: {request_id}, expense {entry.entry_id} {entry.amount}",
            extra={
                "request_id": request_id,
                "entry_id": entry.entry_id,
                "actor_id": approver.actor_id,
                "version": updated.version,
            },
        )

        await self.requests.changes.publish(
            "status_changed",
            request_id,
            {"from": RequestStatus.PENDING.value, "to": RequestStatus.ACTIVE.value},
        )
        await self.ledger.changes.publish(
            "appended",
            entry.entry_id,
            {
                "kind": entry.kind.value,
                "amount": str(entry.amount),
                "linked_request_id": request_id,
            },
        )

        await self._notify(updated, RequestEvent.APPROVE, approver)
        if insufficient:
            await self._send(
                f"Approved '{updated.title}' for {updated.estimated_cost} "
                f"while the balance was {balance}",
                level="WARNING",
                extra={"request_id": request_id, "balance": str(balance)},
            )

        return ApprovalOutcome(
            request=updated,
            entry=entry,
            insufficient_funds=insufficient,
            balance_before=balance,
        )

    # -------------------------------------------------------------------------
    # Other transitions (no ledger effect)
    # -------------------------------------------------------------------------

    async def reject(self, request_id: str, actor: Actor) -> ProjectRequest:
        """PENDING -> REJECTED"""
        return await self._transition(request_id, RequestEvent.REJECT, actor)

    async def mark_complete(self, request_id: str, actor: Actor) -> ProjectRequest:
        """ACTIVE -> PENDING_COMPLETION"""
        return await self._transition(request_id, RequestEvent.MARK_COMPLETE, actor)

    async def verify_completion(self, request_id: str, actor: Actor) -> ProjectRequest:
        """PENDING_COMPLETION -> COMPLETED (sets completed_at)"""
        return await self._transition(
            request_id,
            RequestEvent.VERIFY,
            actor,
            extra_fields={"completed_at": now_utc()},
        )

    async def _transition(
        self,
        request_id: str,
        event: RequestEvent,
        actor: Actor,
        extra_fields: dict[str, datetime] | None = None,
    ) -> ProjectRequest:
        request = await self.requests.require(request_id)
        self._authorize(event, request, actor)

        target = next_state(request.status, event)
        if target == request.status:
            logger.info(
                f"{event.value} {request_id}: already {request.status.value}, nothing to do",
                extra={"request_id": request_id, "actor_id": actor.actor_id},
            )
            return request

        updated = await self.requests.update_status(
            request_id,
            target,
            expected_version=request.version,
            extra_fields=extra_fields,
        )
        await self._notify(updated, event, actor)
        return updated

    @staticmethod
    def _authorize(event: RequestEvent, request: ProjectRequest, actor: Actor) -> None:
        if event in (RequestEvent.SUBMIT, RequestEvent.MARK_COMPLETE):
            require_owner_or_super_admin(actor, request.requester_id, event.value)
        else:
            require_super_admin(actor, f"{event.value} funding requests")

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    async def _notify(self, request: ProjectRequest, event: RequestEvent, actor: Actor) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier.send_request_alert(
                request_id=request.request_id,
                title=request.title,
                event=event.value,
                status=request.status.value,
                amount=str(request.estimated_cost),
                actor=actor.name,
            )
        except Exception as e:
            logger.error(
                f"Notification failed for {request.request_id}: {e}",
                extra={"request_id": request.request_id, "event": event.value},
            )

    async def _send(self, message: str, level: str, extra: dict[str, Any]) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier.send(message, level=level, extra=extra)
        except Exception as e:
            logger.error(f"Notification failed: {e}", extra=extra)

    # -------------------------------------------------------------------------
    # Queries used by the UI
    # -------------------------------------------------------------------------

    async def current_balance(self) -> Decimal:
        """Balance from an authoritative ledger read"""
        return compute(await self.ledger.list_entries()).balance
