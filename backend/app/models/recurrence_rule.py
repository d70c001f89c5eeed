# backend/app/models/recurrence_rule.py
"""
Recurrence rules: templates for weekly repeating lesson series.

A rule is independent of the concrete lesson rows it generated. Term
adjustments either truncate an existing rule or create a new one. A rule whose
end date falls before its start date is superseded and generates nothing.
"""

from datetime import date
from enum import Enum
from typing import Optional

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.types import JSON
import ulid

from ..core.constants import DEFAULT_TIMEZONE
from ..database import Base


class RecurrencePattern(str, Enum):
    """Supported repeat patterns."""

    WEEKLY = "weekly"


class RecurrenceRule(Base):
    """Weekly repeating pattern that lesson rows are generated from."""

    __tablename__ = "recurrence_rules"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    org_id = Column(String(26), ForeignKey("organisations.id"), nullable=False, index=True)
    pattern_type = Column(String(20), nullable=False, default=RecurrencePattern.WEEKLY.value)
    # Weekday numbers, 0=Sunday .. 6=Saturday
    days_of_week = Column(
        JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"),
        nullable=False,
        default=list,
    )
    interval_weeks = Column(Integer, nullable=False, default=1)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    timezone = Column(String(64), nullable=False, default=DEFAULT_TIMEZONE)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    @property
    def superseded(self) -> bool:
        """True when the rule ends before it starts and so generates nothing."""
        return (
            self.start_date is not None
            and self.end_date is not None
            and self.end_date < self.start_date
        )

    def truncate_before(self, cutoff: date) -> Optional[date]:
        """
        Stop the rule generating anything on or after ``cutoff``.

        The end date becomes the day before ``cutoff`` and only ever moves
        earlier. A cutoff on or before the start date leaves the rule superseded.
        Returns the resulting end date.
        """
        new_end = date.fromordinal(cutoff.toordinal() - 1)
        if self.end_date is None or new_end < self.end_date:
            self.end_date = new_end
        return self.end_date
