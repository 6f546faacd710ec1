"""
Projections consumed by the dashboard, transparency page and reports
"""

from core.projection.realtime import (
    ProjectionSnapshot,
    RealtimeProjection,
    TransparencyView,
)

__all__ = [
    "ProjectionSnapshot",
    "RealtimeProjection",
    "TransparencyView",
]
