"""
Date/Time helpers for progression state

All timestamps handled by the engine are timezone-aware UTC datetimes.
Naive datetimes coming from callers are assumed to already be UTC.
"""

import logging
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


def now_utc() -> datetime:
    """
    Get current datetime in UTC (timezone-aware)

    Returns:
        Current datetime in UTC with timezone info
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime to timezone-aware UTC

    Args:
        dt: Naive (assumed UTC) or aware datetime

    Returns:
        Aware datetime in UTC
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def whole_days_between(start: datetime, end: datetime) -> int:
    """Number of whole 24h units elapsed from start to end (floored)"""
    delta = ensure_utc(end) - ensure_utc(start)
    return int(delta.total_seconds() // SECONDS_PER_DAY)


def week_start(dt: datetime) -> datetime:
    """Monday 00:00 UTC of the ISO week containing dt"""
    dt = ensure_utc(dt)
    monday = dt - timedelta(days=dt.weekday())
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)
