"""
Web services package

Read-side logic shared by the routes
"""

from web.services.dashboard_service import DashboardService

__all__ = [
    "DashboardService",
]
