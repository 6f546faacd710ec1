"""
Dashboard routes

Balance summary for members and the public transparency page
"""

from fastapi import APIRouter, Depends

from core.config.loader import Settings
from core.errors import TreasuryError
from core.types import Actor
from web.dependencies import TreasuryContainer, get_actor, get_app_settings, get_container
from web.errors import to_http_exception
from web.models.responses import (
    DashboardResponse,
    ProjectRequestResponse,
    PublicProjectResponse,
    TransparencyResponse,
)
from web.services.dashboard_service import DashboardService

router = APIRouter(prefix="/api", tags=["Dashboard"])


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    actor: Actor = Depends(get_actor),
    container: TreasuryContainer = Depends(get_container),
    settings: Settings = Depends(get_app_settings),
) -> DashboardResponse:
    """Balance, pending approvals and this month's figures"""
    service = DashboardService(container.ledger, container.projection)

    try:
        snapshot = await service.get_snapshot()
    except TreasuryError as e:
        raise to_http_exception(e) from e

    return DashboardResponse(
        organization=settings.organization_name,
        currency=settings.currency,
        balance=str(snapshot.balance),
        pending_count=snapshot.pending_count,
        monthly_income=str(snapshot.period_income),
        monthly_expense=str(snapshot.period_expense),
        active_projects=[
            ProjectRequestResponse.from_request(r) for r in snapshot.active_projects
        ],
        sequence=snapshot.sequence,
        as_of=snapshot.as_of,
    )


@router.get("/transparency", response_model=TransparencyResponse)
async def get_transparency(
    container: TreasuryContainer = Depends(get_container),
    settings: Settings = Depends(get_app_settings),
) -> TransparencyResponse:
    """Public view: funded projects and the balance

    No actor required. Drafts, pending and rejected requests never appear.
    """
    service = DashboardService(container.ledger, container.projection)

    try:
        view = await service.get_transparency()
    except TreasuryError as e:
        raise to_http_exception(e) from e

    return TransparencyResponse(
        organization=settings.organization_name,
        currency=settings.currency,
        balance=str(view.balance),
        projects=[
            PublicProjectResponse(
                request_id=p.request_id,
                title=p.title,
                estimated_cost=str(p.estimated_cost),
                description=p.description,
                status=p.status.value,
                approved_at=p.approved_at,
                completed_at=p.completed_at,
            )
            for p in view.projects
        ],
        as_of=view.as_of,
    )
