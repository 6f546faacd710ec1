"""
Shared pytest fixtures

Temp-file SQLite stores, actors and a settings.yaml for the loader.
"""

import tempfile
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from adapters.mock.notifier import MockNotifier
from core.config.loader import Settings
from core.funding.repository import ProjectRequestRepository
from core.funding.service import ApprovalService
from core.ledger.store import LedgerStore
from core.types import Actor, Role


@pytest.fixture
def temp_dir() -> Path:
    """OS-independent temp directory"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_settings_file(temp_dir: Path) -> Path:
    """settings.yaml for tests (staging)"""
    content = """mode: staging

organization:
  name: "Test Society"
  currency: "LKR"

notifications:
  slack_webhook_url: ""

web:
  host: "127.0.0.1"
  port: 8123
"""
    path = temp_dir / "settings.yaml"
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def settings(temp_settings_file: Path) -> Settings:
    """Settings singleton loaded from the temp file (reset afterwards)"""
    Settings.reset()
    loaded = Settings(temp_settings_file)
    yield loaded
    Settings.reset()


# -------------------------------------------------------------------------
# Actors
# -------------------------------------------------------------------------

@pytest.fixture
def treasurer() -> Actor:
    return Actor("u-treasurer", "Nimal", Role.SUPER_ADMIN)


@pytest.fixture
def member_admin() -> Actor:
    return Actor("u-admin", "Kumari", Role.MEMBER_ADMIN)


@pytest.fixture
def other_admin() -> Actor:
    return Actor("u-admin-2", "Sunil", Role.MEMBER_ADMIN)


@pytest.fixture
def member() -> Actor:
    return Actor("u-member", "Ayesha", Role.MEMBER)


# -------------------------------------------------------------------------
# Store
# -------------------------------------------------------------------------

@pytest.fixture
def db_path(temp_dir: Path) -> Path:
    return temp_dir / "treasury_test.db"


@pytest_asyncio.fixture
async def db(db_path: Path) -> AsyncGenerator[SQLiteAdapter, None]:
    """Connected adapter with the schema in place"""
    adapter = SQLiteAdapter(db_path)
    await adapter.connect()
    await init_schema(adapter)
    yield adapter
    await adapter.close()


@pytest.fixture
def ledger(db: SQLiteAdapter) -> LedgerStore:
    return LedgerStore(db)


@pytest.fixture
def requests(db: SQLiteAdapter) -> ProjectRequestRepository:
    return ProjectRequestRepository(db)


@pytest.fixture
def notifier() -> MockNotifier:
    return MockNotifier()


@pytest.fixture
def service(
    ledger: LedgerStore,
    requests: ProjectRequestRepository,
    notifier: MockNotifier,
) -> ApprovalService:
    return ApprovalService(ledger, requests, notifier)
