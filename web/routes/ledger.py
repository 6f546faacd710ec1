"""
Ledger routes

Manual income/expense entries, monthly report data and the daily chart
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Query

from core.config.loader import Settings
from core.constants import Defaults
from core.errors import TreasuryError
from core.ledger.calculator import compute
from core.ledger.types import LedgerEntry, TransactionKind
from core.permissions import require_admin
from core.types import Actor
from core.utils.timezone import local_today
from web.dependencies import TreasuryContainer, get_actor, get_app_settings, get_container
from web.errors import to_http_exception
from web.models.requests import LedgerEntryCreateRequest
from web.models.responses import (
    DailyFlowResponse,
    LedgerEntryResponse,
    LedgerListResponse,
    LedgerReportResponse,
)
from web.services.dashboard_service import DashboardService

router = APIRouter(prefix="/api", tags=["Ledger"])

_KINDS = {kind.value for kind in TransactionKind}


@router.get("/ledger", response_model=LedgerListResponse)
async def list_ledger(
    actor: Actor = Depends(get_actor),
    container: TreasuryContainer = Depends(get_container),
    settings: Settings = Depends(get_app_settings),
) -> LedgerListResponse:
    """All entries (oldest first) and the balance"""
    try:
        require_admin(actor, "view the ledger")
        entries = await container.ledger.list_entries()
    except TreasuryError as e:
        raise to_http_exception(e) from e

    return LedgerListResponse(
        entries=[LedgerEntryResponse.from_entry(e) for e in entries],
        balance=str(compute(entries).balance),
        currency=settings.currency,
    )


@router.post("/ledger", response_model=LedgerEntryResponse, status_code=201)
async def create_ledger_entry(
    request: LedgerEntryCreateRequest,
    actor: Actor = Depends(get_actor),
    container: TreasuryContainer = Depends(get_container),
) -> LedgerEntryResponse:
    """Post a manual entry (SUPER_ADMIN)"""
    if request.kind.strip().upper() not in _KINDS:
        raise HTTPException(
            status_code=400,
            detail=f"kind must be one of {sorted(_KINDS)}, got '{request.kind}'",
        )

    entry = LedgerEntry.create(
        amount=request.amount,
        kind=request.kind,
        description=request.description,
        entry_date=request.entry_date,
        created_by=actor.actor_id,
    )

    try:
        stored = await container.ledger.append(entry, actor)
    except TreasuryError as e:
        raise to_http_exception(e) from e

    return LedgerEntryResponse.from_entry(stored)


@router.get("/ledger/report", response_model=LedgerReportResponse)
async def get_monthly_report(
    year: int | None = Query(default=None, ge=2000, le=2100, description="Year (default: this year)"),
    month: int | None = Query(default=None, ge=1, le=12, description="Month (default: this month)"),
    actor: Actor = Depends(get_actor),
    container: TreasuryContainer = Depends(get_container),
) -> LedgerReportResponse:
    """Entries and totals of one calendar month"""
    today = local_today()
    year = year or today.year
    month = month or today.month
    service = DashboardService(container.ledger, container.projection)

    try:
        require_admin(actor, "view ledger reports")
        report = await service.get_monthly_report(year, month)
    except TreasuryError as e:
        raise to_http_exception(e) from e

    return LedgerReportResponse(
        year=year,
        month=month,
        start=report.period.start,
        end=report.period.end,
        entries=[LedgerEntryResponse.from_entry(e) for e in report.entries],
        total_income=str(report.total_income),
        total_expense=str(report.total_expense),
        net_balance=str(report.net_balance),
    )


@router.get("/ledger/daily", response_model=list[DailyFlowResponse])
async def get_daily_flows(
    days: int = Query(default=Defaults.DAILY_FLOW_DAYS, ge=1, le=366, description="Window (days)"),
    actor: Actor = Depends(get_actor),
    container: TreasuryContainer = Depends(get_container),
) -> list[DailyFlowResponse]:
    """Income/expense per day, oldest first"""
    service = DashboardService(container.ledger, container.projection)

    try:
        flows = await service.get_daily_flows(days)
    except TreasuryError as e:
        raise to_http_exception(e) from e

    return [DailyFlowResponse.from_flow(f) for f in flows]


@router.delete("/ledger/{entry_id}")
async def delete_ledger_entry(
    entry_id: str = Path(..., description="Entry ID"),
    actor: Actor = Depends(get_actor),
    container: TreasuryContainer = Depends(get_container),
) -> dict[str, str]:
    """Remove a manual entry (SUPER_ADMIN; linked entries are refused)"""
    try:
        await container.ledger.remove(entry_id, actor)
    except TreasuryError as e:
        raise to_http_exception(e) from e

    return {"message": f"Ledger entry removed: {entry_id}"}
