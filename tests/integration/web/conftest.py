"""
Web API fixtures

The app is driven in-process through httpx.ASGITransport. The lifespan is
not run; the container is opened here and placed on app.state directly.
"""

from pathlib import Path
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio

from adapters.mock.notifier import MockNotifier
from core.config.loader import Settings
from core.types import Actor
from web.app import app
from web.dependencies import TreasuryContainer, open_container


def actor_headers(actor: Actor) -> dict[str, str]:
    return {
        "X-Actor-Id": actor.actor_id,
        "X-Actor-Name": actor.name,
        "X-Actor-Role": actor.role.value,
    }


@pytest_asyncio.fixture
async def container(
    temp_dir: Path,
    settings: Settings,
) -> AsyncGenerator[TreasuryContainer, None]:
    opened = await open_container(temp_dir / "web_test.db", notifier=MockNotifier())
    app.state.treasury = opened
    yield opened
    app.state.treasury = None
    await opened.close()


@pytest_asyncio.fixture
async def client(container: TreasuryContainer) -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


@pytest.fixture
def as_treasurer(treasurer: Actor) -> dict[str, str]:
    return actor_headers(treasurer)


@pytest.fixture
def as_admin(member_admin: Actor) -> dict[str, str]:
    return actor_headers(member_admin)


@pytest.fixture
def as_other_admin(other_admin: Actor) -> dict[str, str]:
    return actor_headers(other_admin)


@pytest.fixture
def as_member(member: Actor) -> dict[str, str]:
    return actor_headers(member)
