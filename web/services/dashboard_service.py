"""
Dashboard service

Read-side helpers for the dashboard, transparency and report endpoints.
Balance figures come from the realtime projection; chart and report data
from a fresh ledger read.
"""

import logging
from datetime import timedelta

from core.ledger.calculator import build_monthly_report, daily_flows
from core.ledger.store import LedgerStore
from core.ledger.types import DailyFlow, LedgerReport, Period
from core.projection.realtime import ProjectionSnapshot, RealtimeProjection, TransparencyView
from core.utils.timezone import local_today

logger = logging.getLogger(__name__)


class DashboardService:
    """Dashboard service

    Args:
        ledger: Ledger store
        projection: Attached realtime projection
    """

    def __init__(self, ledger: LedgerStore, projection: RealtimeProjection):
        self.ledger = ledger
        self.projection = projection

    async def get_snapshot(self) -> ProjectionSnapshot:
        """Latest projection snapshot

        Refreshes when nothing has been read yet, the month rolled over, or
        another connection committed since the last snapshot.
        """
        if await self.projection.is_stale():
            return await self.projection.refresh()
        return self.projection.snapshot

    async def get_daily_flows(self, days: int) -> list[DailyFlow]:
        today = local_today()
        first = today - timedelta(days=days - 1)
        entries = await self.ledger.list_between(first, today)
        return daily_flows(entries, days, today)

    async def get_monthly_report(self, year: int, month: int) -> LedgerReport:
        period = Period.month(year, month)
        entries = await self.ledger.list_between(period.start, period.end)
        return build_monthly_report(entries, year, month)

    async def get_transparency(self) -> TransparencyView:
        return await self.projection.transparency_view()
