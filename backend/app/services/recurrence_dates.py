# backend/app/services/recurrence_dates.py
"""
Calendar-date generation for weekly lesson series.

Works purely on ``date`` objects so daylight-saving changes never shift a
generated day. Weekdays here follow Python's ``date.weekday()`` (Monday=0).
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, List, Optional, Protocol

from ..core.exceptions import ValidationException

ONE_DAY = timedelta(days=1)
ONE_WEEK = timedelta(days=7)


class ClosureLike(Protocol):
    date: date
    location_id: Optional[str]
    applies_to_all_locations: bool


def wire_to_python_weekday(day_of_week: int) -> int:
    """Convert 0=Sunday..6=Saturday to Python's Monday=0 convention."""
    return (day_of_week + 6) % 7


def python_to_wire_weekday(weekday: int) -> int:
    """Convert Python's Monday=0 weekday to 0=Sunday..6=Saturday."""
    return (weekday + 1) % 7


def generate_occurrences(start_date: date, end_date: date, weekday: int) -> List[date]:
    """
    Every date in ``[start_date, end_date]`` falling on ``weekday``, ascending.

    Raises:
        ValidationException: ``weekday`` is not in 0..6
    """
    if not isinstance(weekday, int) or isinstance(weekday, bool) or not 0 <= weekday <= 6:
        raise ValidationException(
            "Day of week must be between 0 and 6",
            code="INVALID_WEEKDAY",
            details={"weekday": weekday},
        )

    current = start_date
    for _ in range(7):
        if current.weekday() == weekday:
            break
        current += ONE_DAY

    occurrences: List[date] = []
    while current <= end_date:
        occurrences.append(current)
        current += ONE_WEEK
    return occurrences


def exclude_closures(
    dates: Iterable[date],
    closures: Iterable[ClosureLike],
    target_location_id: Optional[str],
) -> List[date]:
    """
    Drop dates on which a relevant closure falls, preserving order.

    A closure is relevant when it applies to all locations, when it is scoped
    to ``target_location_id``, or when no target location is known.
    """
    closed = {
        closure.date
        for closure in closures
        if target_location_id is None
        or closure.applies_to_all_locations
        or closure.location_id == target_location_id
    }
    return [day for day in dates if day not in closed]
