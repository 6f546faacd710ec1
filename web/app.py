"""
FastAPI application

Router registration and app setup.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config.loader import get_settings
from web.dependencies import build_notifier, open_container
from web.routes import dashboard, funding, health, ledger

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """App lifecycle

    Opens the database, initialises the schema and attaches the realtime
    projection on startup; releases all of it on shutdown.
    """
    settings = get_settings()
    notifier = build_notifier(settings)

    container = await open_container(settings.db_path, notifier=notifier)
    app.state.treasury = container
    logger.info(
        f"Treasury web started: {settings.organization_name} ({settings.mode.value})",
        extra={"db_path": str(settings.db_path)},
    )

    try:
        yield
    finally:
        app.state.treasury = None
        await container.close()
        logger.info("Treasury web stopped")


app = FastAPI(
    title="Treasury API",
    description="Funding requests, approvals and the organisation ledger",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS (the admin console is served from another origin)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# =========================================================================
# API routers
# =========================================================================

app.include_router(health.router)
app.include_router(dashboard.router)
app.include_router(ledger.router)
app.include_router(funding.router)
