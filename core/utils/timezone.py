"""
Timezone utilities

Storage is always UTC; calendar dates (ledger days, monthly periods) are
taken in the organisation's local time (Asia/Colombo, UTC+5:30).
"""

from datetime import date, datetime, timedelta, timezone

# Sri Lanka Standard Time (no DST)
LOCAL_TZ = timezone(timedelta(hours=5, minutes=30), name="LKT")


def now_utc() -> datetime:
    """Current UTC time (tz-aware)"""
    return datetime.now(timezone.utc)


def to_local(dt: datetime) -> datetime:
    """Convert to local time

    Args:
        dt: datetime (naive values are taken as UTC)

    Returns:
        datetime in LOCAL_TZ

    Example:
        >>> to_local(datetime(2026, 3, 31, 20, 0, tzinfo=timezone.utc)).day
        1
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(LOCAL_TZ)


def local_today() -> date:
    """Today's calendar date in local time"""
    return to_local(now_utc()).date()


def format_local(dt: datetime, fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
    """Format a stored UTC datetime for display"""
    return to_local(dt).strftime(fmt)


def parse_utc(raw: str | None) -> datetime | None:
    """Parse a stored ISO timestamp; naive values are taken as UTC"""
    if not raw:
        return None
    dt = datetime.fromisoformat(raw)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
