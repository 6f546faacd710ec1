"""
Utilities package

Timezone handling and the in-process change feed
"""

from core.utils.change_feed import ChangeEvent, ChangeFeed, Subscription
from core.utils.timezone import (
    LOCAL_TZ,
    format_local,
    local_today,
    now_utc,
    parse_utc,
    to_local,
)

__all__ = [
    "ChangeEvent",
    "ChangeFeed",
    "Subscription",
    "LOCAL_TZ",
    "format_local",
    "local_today",
    "now_utc",
    "parse_utc",
    "to_local",
]
