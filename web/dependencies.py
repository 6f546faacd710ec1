"""
Dependency injection

Treasury components live in one container on app.state, built by the app
lifespan. Routes pull them out with FastAPI Depends.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from fastapi import Header, HTTPException, Request

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from adapters.interfaces import INotifier
from adapters.slack.notifier import SlackNotifier
from core.config.loader import Settings, get_settings
from core.funding.repository import ProjectRequestRepository
from core.funding.service import ApprovalService
from core.ledger.store import LedgerStore
from core.projection.realtime import RealtimeProjection
from core.types import Actor

logger = logging.getLogger(__name__)


@dataclass
class TreasuryContainer:
    """Wired treasury components sharing one adapter"""

    db: SQLiteAdapter
    ledger: LedgerStore
    requests: ProjectRequestRepository
    service: ApprovalService
    projection: RealtimeProjection
    notifier: INotifier | None = None

    async def close(self) -> None:
        """Detach the projection and release connections"""
        self.projection.detach()
        if isinstance(self.notifier, SlackNotifier):
            await self.notifier.close()
        await self.db.close()


async def open_container(
    db_path: Path | str,
    notifier: INotifier | None = None,
) -> TreasuryContainer:
    """Connect, initialise the schema and wire every component

    Args:
        db_path: SQLite file (":memory:" for tests)
        notifier: Notification side channel (None disables it)

    Returns:
        Container with an attached projection
    """
    db = SQLiteAdapter(db_path)
    await db.connect()
    try:
        await init_schema(db)

        ledger = LedgerStore(db)
        requests = ProjectRequestRepository(db)
        service = ApprovalService(ledger, requests, notifier)
        projection = RealtimeProjection(ledger, requests)
        await projection.attach()
    except BaseException:
        await db.close()
        raise

    return TreasuryContainer(
        db=db,
        ledger=ledger,
        requests=requests,
        service=service,
        projection=projection,
        notifier=notifier,
    )


def build_notifier(settings: Settings) -> INotifier | None:
    """Slack notifier when a webhook is configured"""
    if not settings.slack_webhook_url:
        logger.info("Slack webhook not configured, notifications disabled")
        return None
    return SlackNotifier(
        webhook_url=settings.slack_webhook_url,
        username=f"{settings.organization_name} Treasury",
        footer=settings.organization_name,
    )


# =========================================================================
# Depends providers
# =========================================================================


def get_app_settings() -> Settings:
    return get_settings()


def get_container(request: Request) -> TreasuryContainer:
    container = getattr(request.app.state, "treasury", None)
    if container is None:
        raise HTTPException(status_code=503, detail="Treasury store is not initialised")
    return container


def get_actor(
    x_actor_id: str | None = Header(default=None),
    x_actor_name: str | None = Header(default=None),
    x_actor_role: str | None = Header(default=None),
) -> Actor:
    """Acting user from the headers set by the session layer

    Raises:
        HTTPException: 401 without an actor id, 400 for an unknown role
    """
    if not x_actor_id:
        raise HTTPException(status_code=401, detail="X-Actor-Id header is required")
    try:
        return Actor.create(x_actor_id, x_actor_name or x_actor_id, x_actor_role or "")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
