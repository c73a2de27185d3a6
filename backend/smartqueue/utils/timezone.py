"""
Timezone utilities for converting between UTC and local times.

All stored timestamps are UTC. Time-of-day heuristics run on the
configured local clock, and stats are bucketed by UTC hour.
"""

from datetime import datetime

import pytz

UTC_TZ = pytz.UTC

# Stats records are keyed by the UTC hour they were observed in
TIME_WINDOW_FORMAT = "%Y-%m-%dT%H"


def utc_now() -> datetime:
    """Get current time in UTC (timezone-aware)."""
    return datetime.now(UTC_TZ)


def ensure_utc(dt: datetime) -> datetime:
    """Return an aware UTC datetime. Naive input is assumed to be UTC."""
    if dt.tzinfo is None:
        return UTC_TZ.localize(dt)
    return dt.astimezone(UTC_TZ)


def from_utc(utc_dt: datetime, timezone: str = "UTC") -> datetime:
    """
    Convert a UTC datetime to local timezone.

    Args:
        utc_dt: Datetime in UTC (can be naive or aware)
        timezone: Target timezone name

    Returns:
        Timezone-aware datetime in local timezone
    """
    tz = pytz.timezone(timezone)
    return ensure_utc(utc_dt).astimezone(tz)


def time_window(dt: datetime) -> str:
    """Hour bucket label for a moment, e.g. ``2026-10-18T09``."""
    return ensure_utc(dt).strftime(TIME_WINDOW_FORMAT)


def window_start(dt: datetime) -> datetime:
    """Start of the UTC hour containing ``dt``."""
    return ensure_utc(dt).replace(minute=0, second=0, microsecond=0)


def whole_minutes_between(earlier: datetime, later: datetime) -> int:
    """Elapsed whole minutes from ``earlier`` to ``later`` (truncated)."""
    seconds = (ensure_utc(later) - ensure_utc(earlier)).total_seconds()
    return int(seconds / 60)
