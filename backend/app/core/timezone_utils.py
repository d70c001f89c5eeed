"""
Timezone utilities for the TuitionDesk backend.

Lessons are stored in UTC; recurrence rules carry the IANA timezone their
wall-clock day and time are expressed in.
"""

from datetime import date, datetime, time, timedelta, timezone

import pytz


def get_timezone(tz_name: str | None, default: str = "UTC") -> pytz.BaseTzInfo:
    """Return a pytz timezone, falling back to ``default`` for unknown names."""
    try:
        return pytz.timezone(tz_name or default)
    except pytz.UnknownTimeZoneError:
        return pytz.timezone(default)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalise a datetime to aware UTC.

    SQLite hands back naive values for timezone-aware columns; those are stored
    in UTC, so naive input is taken to be UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_local(value: datetime, tz: pytz.BaseTzInfo) -> datetime:
    """Convert a stored (UTC) datetime into ``tz`` wall-clock time."""
    return ensure_utc(value).astimezone(tz)


def local_to_utc(day: date, wall_time: time, tz: pytz.BaseTzInfo) -> datetime:
    """Combine a local calendar date and wall-clock time into an aware UTC datetime."""
    naive = datetime.combine(day, wall_time)
    return tz.localize(naive).astimezone(timezone.utc)


def local_day_bounds_utc(
    start_day: date, end_day: date, tz: pytz.BaseTzInfo
) -> tuple[datetime, datetime]:
    """
    Return the UTC instants spanning local days ``start_day`` through ``end_day``.

    The upper bound is exclusive (midnight at the start of the following day).
    """
    lower = local_to_utc(start_day, time(0, 0), tz)
    upper = local_to_utc(end_day + timedelta(days=1), time(0, 0), tz)
    return lower, upper
