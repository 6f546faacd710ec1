"""
Funding request routes

Proposal creation and the approval workflow. Every transition is a POST on
the request; repeating one whose effect is already in place returns the
current request instead of an error.
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Query

from core.errors import TreasuryError
from core.funding.types import ProjectRequest, RequestStatus
from core.permissions import require_admin
from core.types import Actor
from web.dependencies import TreasuryContainer, get_actor, get_container
from web.errors import to_http_exception
from web.models.requests import ProjectRequestCreateRequest
from web.models.responses import (
    ApprovalResponse,
    LedgerEntryResponse,
    ProjectRequestResponse,
)

router = APIRouter(prefix="/api", tags=["Funding"])


def _parse_status(raw: str | None) -> RequestStatus | None:
    if raw is None:
        return None
    try:
        return RequestStatus.parse(raw)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.post("/requests", response_model=ProjectRequestResponse, status_code=201)
async def create_request(
    request: ProjectRequestCreateRequest,
    actor: Actor = Depends(get_actor),
    container: TreasuryContainer = Depends(get_container),
) -> ProjectRequestResponse:
    """Create a proposal (PENDING, or DRAFT with submit=false)"""
    try:
        created = await container.service.create_request(
            actor,
            title=request.title,
            estimated_cost=request.estimated_cost,
            description=request.description,
            request_date=request.request_date,
            submit=request.submit,
        )
    except TreasuryError as e:
        raise to_http_exception(e) from e

    return ProjectRequestResponse.from_request(created)


@router.get("/requests", response_model=list[ProjectRequestResponse])
async def list_requests(
    status: str | None = Query(default=None, description="Filter by status"),
    actor: Actor = Depends(get_actor),
    container: TreasuryContainer = Depends(get_container),
) -> list[ProjectRequestResponse]:
    """All requests, newest first (admins)"""
    wanted = _parse_status(status)

    try:
        require_admin(actor, "list funding requests")
        if wanted is None:
            requests = await container.requests.list_all()
        else:
            requests = await container.requests.list_by_status(wanted)
    except TreasuryError as e:
        raise to_http_exception(e) from e

    return [ProjectRequestResponse.from_request(r) for r in requests]


@router.get("/requests/mine", response_model=list[ProjectRequestResponse])
async def list_my_requests(
    actor: Actor = Depends(get_actor),
    container: TreasuryContainer = Depends(get_container),
) -> list[ProjectRequestResponse]:
    """The caller's own proposals, newest first"""
    try:
        requests = await container.requests.list_by_requester(actor.actor_id)
    except TreasuryError as e:
        raise to_http_exception(e) from e

    return [ProjectRequestResponse.from_request(r) for r in requests]


@router.get("/requests/{request_id}", response_model=ProjectRequestResponse)
async def get_request(
    request_id: str = Path(..., description="Request ID"),
    actor: Actor = Depends(get_actor),
    container: TreasuryContainer = Depends(get_container),
) -> ProjectRequestResponse:
    """One request (its requester or an admin)"""
    try:
        found = await container.requests.require(request_id)
        if found.requester_id != actor.actor_id:
            require_admin(actor, "view other members' requests")
    except TreasuryError as e:
        raise to_http_exception(e) from e

    return ProjectRequestResponse.from_request(found)


@router.post("/requests/{request_id}/approve", response_model=ApprovalResponse)
async def approve_request(
    request_id: str = Path(..., description="Request ID"),
    actor: Actor = Depends(get_actor),
    container: TreasuryContainer = Depends(get_container),
) -> ApprovalResponse:
    """Approve and post the linked expense (SUPER_ADMIN)

    insufficient_funds=true is a warning only; the approval went through.
    """
    try:
        outcome = await container.service.approve(request_id, actor)
    except TreasuryError as e:
        raise to_http_exception(e) from e

    return ApprovalResponse(
        request=ProjectRequestResponse.from_request(outcome.request),
        entry=LedgerEntryResponse.from_entry(outcome.entry) if outcome.entry else None,
        already_applied=outcome.already_applied,
        insufficient_funds=outcome.insufficient_funds,
        balance_before=str(outcome.balance_before) if outcome.balance_before is not None else None,
    )


async def _run_transition(
    container: TreasuryContainer,
    action: str,
    request_id: str,
    actor: Actor,
) -> ProjectRequest:
    operations = {
        "submit": container.service.submit,
        "reject": container.service.reject,
        "complete": container.service.mark_complete,
        "verify": container.service.verify_completion,
    }
    try:
        return await operations[action](request_id, actor)
    except TreasuryError as e:
        raise to_http_exception(e) from e


@router.post("/requests/{request_id}/submit", response_model=ProjectRequestResponse)
async def submit_request(
    request_id: str = Path(..., description="Request ID"),
    actor: Actor = Depends(get_actor),
    container: TreasuryContainer = Depends(get_container),
) -> ProjectRequestResponse:
    """DRAFT -> PENDING (requester or SUPER_ADMIN)"""
    updated = await _run_transition(container, "submit", request_id, actor)
    return ProjectRequestResponse.from_request(updated)


@router.post("/requests/{request_id}/reject", response_model=ProjectRequestResponse)
async def reject_request(
    request_id: str = Path(..., description="Request ID"),
    actor: Actor = Depends(get_actor),
    container: TreasuryContainer = Depends(get_container),
) -> ProjectRequestResponse:
    """PENDING -> REJECTED (SUPER_ADMIN)"""
    updated = await _run_transition(container, "reject", request_id, actor)
    return ProjectRequestResponse.from_request(updated)


@router.post("/requests/{request_id}/complete", response_model=ProjectRequestResponse)
async def complete_request(
    request_id: str = Path(..., description="Request ID"),
    actor: Actor = Depends(get_actor),
    container: TreasuryContainer = Depends(get_container),
) -> ProjectRequestResponse:
    """ACTIVE -> PENDING_COMPLETION (requester or SUPER_ADMIN)"""
    updated = await _run_transition(container, "complete", request_id, actor)
    return ProjectRequestResponse.from_request(updated)


@router.post("/requests/{request_id}/verify", response_model=ProjectRequestResponse)
async def verify_request(
    request_id: str = Path(..., description="Request ID"),
    actor: Actor = Depends(get_actor),
    container: TreasuryContainer = Depends(get_container),
) -> ProjectRequestResponse:
    """PENDING_COMPLETION -> COMPLETED (SUPER_ADMIN)"""
    updated = await _run_transition(container, "verify", request_id, actor)
    return ProjectRequestResponse.from_request(updated)
