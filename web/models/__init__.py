"""
Web models package

Pydantic schemas
"""

from web.models.requests import (
    LedgerEntryCreateRequest,
    ProjectRequestCreateRequest,
)
from web.models.responses import (
    ApprovalResponse,
    DailyFlowResponse,
    DashboardResponse,
    HealthResponse,
    LedgerEntryResponse,
    LedgerListResponse,
    LedgerReportResponse,
    ProjectRequestResponse,
    PublicProjectResponse,
    TransparencyResponse,
)

__all__ = [
    # Requests
    "LedgerEntryCreateRequest",
    "ProjectRequestCreateRequest",
    # Responses
    "ApprovalResponse",
    "DailyFlowResponse",
    "DashboardResponse",
    "HealthResponse",
    "LedgerEntryResponse",
    "LedgerListResponse",
    "LedgerReportResponse",
    "ProjectRequestResponse",
    "PublicProjectResponse",
    "TransparencyResponse",
]
