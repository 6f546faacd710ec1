"""
Health check endpoint

GET /health - server status
"""

from fastapi import APIRouter, Depends

from core.config.loader import Settings
from core.utils.timezone import now_utc
from web.dependencies import get_app_settings
from web.models.responses import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    settings: Settings = Depends(get_app_settings),
) -> HealthResponse:
    """Server status"""
    return HealthResponse(
        status="ok",
        mode=settings.mode.value,
        organization=settings.organization_name,
        timestamp=now_utc(),
    )
