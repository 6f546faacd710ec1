"""
Realtime projection

Live view of the treasury for the dashboard, the transparency page and
reports. Every change on the ledger or request feeds triggers an
authoritative re-read (never an incremental patch) and the resulting
snapshot is republished to the projection's own subscribers.

Lifecycle is scoped: attach() subscribes to both feeds, detach() releases
both subscriptions. `async with projection:` does the same.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Awaitable, Callable

from core.errors import TreasuryError
from core.funding.repository import ProjectRequestRepository
from core.funding.types import ProjectRequest, RequestStatus
from core.ledger.calculator import compute
from core.ledger.store import LedgerStore
from core.ledger.types import Period
from core.storage.guard import store_errors
from core.utils.change_feed import ChangeEvent, Subscription
from core.utils.timezone import now_utc

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class ProjectionSnapshot:
    """Consistent treasury view at one point in time

    Attributes:
        balance: Ledger fold over every entry
        pending_count: Requests waiting for approval
        active_projects: Funded, in-progress requests
        period: Month the period figures cover
        period_income / period_expense: Totals within the period
        sequence: Monotonic snapshot counter (0 = nothing read yet)
        as_of: Read time (UTC)
        data_version: PRAGMA data_version seen by the read
    """

    balance: Decimal = ZERO
    pending_count: int = 0
    active_projects: tuple[ProjectRequest, ...] = field(default_factory=tuple)
    period: Period | None = None
    period_income: Decimal = ZERO
    period_expense: Decimal = ZERO
    total_income: Decimal = ZERO
    total_expense: Decimal = ZERO
    sequence: int = 0
    as_of: datetime | None = None
    data_version: int | None = None


@dataclass(frozen=True)
class TransparencyView:
    """Public view: funded projects and the balance, nothing else"""

    balance: Decimal
    projects: tuple[ProjectRequest, ...]
    as_of: datetime


SnapshotCallback = Callable[[ProjectionSnapshot], Awaitable[None]]


class RealtimeProjection:
    """Realtime projection

    Args:
        ledger: Ledger store
        requests: Request repository (same adapter as the ledger)

    Example:
    ```python
    projection = RealtimeProjection(ledger, requests)

    async def on_snapshot(snapshot: ProjectionSnapshot) -> None:
        print(snapshot.balance, snapshot.pending_count)

    async with projection:
        sub = projection.subscribe(on_snapshot)
        ...
        sub.unsubscribe()
    ```
    """

    def __init__(self, ledger: LedgerStore, requests: ProjectRequestRepository):
        self.ledger = ledger
        self.requests = requests
        self.db = ledger.db

        self._feed_subscriptions: list[Subscription] = []
        self._listeners: list[Subscription] = []
        self._snapshot = ProjectionSnapshot()
        self._sequence = 0
        self._refresh_lock = asyncio.Lock()
        self._error_count = 0

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def is_attached(self) -> bool:
        return bool(self._feed_subscriptions)

    @property
    def error_count(self) -> int:
        return self._error_count

    async def attach(self) -> ProjectionSnapshot:
        """Subscribe to both feeds and take an initial snapshot

        Calling attach() on an attached projection only refreshes.
        If the initial read fails the subscriptions are released again.
        """
        if not self.is_attached:
            self._feed_subscriptions = [
                self.ledger.changes.subscribe(self._on_change),
                self.requests.changes.subscribe(self._on_change),
            ]
            logger.info("Realtime projection attached")

        try:
            return await self.refresh()
        except BaseException:
            self.detach()
            raise

    def detach(self) -> None:
        """Release the feed subscriptions (idempotent)"""
        if not self._feed_subscriptions:
            return
        for sub in self._feed_subscriptions:
            sub.unsubscribe()
        self._feed_subscriptions = []
        logger.info("Realtime projection detached")

    async def __aenter__(self) -> "RealtimeProjection":
        await self.attach()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.detach()

    # -------------------------------------------------------------------------
    # Consumers
    # -------------------------------------------------------------------------

    @property
    def snapshot(self) -> ProjectionSnapshot:
        """Latest snapshot (zero values before the first refresh)"""
        return self._snapshot

    def subscribe(self, callback: SnapshotCallback) -> Subscription:
        """Receive every new snapshot until unsubscribe()"""
        sub = Subscription(self, callback)
        self._listeners.append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        if sub in self._listeners:
            self._listeners.remove(sub)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    # -------------------------------------------------------------------------
    # Recompute
    # -------------------------------------------------------------------------

    async def refresh(self) -> ProjectionSnapshot:
        """Re-read both stores and publish a new snapshot

        Raises:
            StoreUnavailable: read failed (the previous snapshot is kept)
        """
        async with self._refresh_lock:
            async with self.db.consistent_read():
                data_version = await self._read_data_version()
                entries = await self.ledger.list_entries()
                pending_count = await self.requests.count_by_status(RequestStatus.PENDING)
                active = await self.requests.list_by_status(RequestStatus.ACTIVE)

            period = Period.current_month()
            summary = compute(entries, period)
            self._sequence += 1
            snapshot = ProjectionSnapshot(
                balance=summary.balance,
                pending_count=pending_count,
                active_projects=tuple(active),
                period=period,
                period_income=summary.period_income,
                period_expense=summary.period_expense,
                total_income=summary.total_income,
                total_expense=summary.total_expense,
                sequence=self._sequence,
                as_of=now_utc(),
                data_version=data_version,
            )
            self._snapshot = snapshot

        logger.debug(
            f"Projection refreshed: seq={snapshot.sequence} balance={snapshot.balance} "
            f"pending={snapshot.pending_count}",
        )

        for sub in list(self._listeners):
            if not sub.active:
                continue
            try:
                await sub.callback(snapshot)
            except Exception as e:
                self._error_count += 1
                logger.error(f"Projection subscriber failed: {e}")

        return snapshot

    async def is_stale(self) -> bool:
        """Whether the snapshot may no longer match the stores

        Writes through this adapter arrive on the change feeds. Writes from
        other connections (another web worker, a maintenance script) only
        show up as a new PRAGMA data_version.

        Raises:
            StoreUnavailable: the version could not be read
        """
        snapshot = self._snapshot
        if snapshot.sequence == 0 or snapshot.period != Period.current_month():
            return True
        async with self.db.consistent_read():
            return await self._read_data_version() != snapshot.data_version

    async def _read_data_version(self) -> int:
        async with store_errors("projection.data_version"):
            return await self.db.data_version()

    async def _on_change(self, event: ChangeEvent) -> None:
        try:
            await self.refresh()
        except TreasuryError as e:
            self._error_count += 1
            logger.error(
                f"Projection refresh failed after {event.source}/{event.action}: {e}",
                extra={"record_id": event.record_id},
            )

    async def transparency_view(self) -> TransparencyView:
        """ACTIVE and COMPLETED projects plus the balance

        DRAFT, PENDING, PENDING_COMPLETION and REJECTED requests never
        appear here.
        """
        async with self.db.consistent_read():
            entries = await self.ledger.list_entries()
            projects = await self.requests.list_by_status(
                RequestStatus.ACTIVE,
                RequestStatus.COMPLETED,
            )

        return TransparencyView(
            balance=compute(entries).balance,
            projects=tuple(projects),
            as_of=now_utc(),
        )
