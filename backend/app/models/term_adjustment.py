# backend/app/models/term_adjustment.py
"""
Term adjustment model.

A term adjustment records one mid-term change to a student's recurring
lesson series: a withdrawal or a move to a new day/time. It is written as a
``draft`` by the preview step, holding everything that was calculated, and
moves to ``confirmed`` exactly once when the change is applied.

Lifecycle::

    draft ──confirm──▶ confirmed (terminal)
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.types import JSON
import ulid

from ..core.exceptions import InvalidStatusTransitionException
from ..database import Base

_JSON = JSONB(astext_type=Text()).with_variant(JSON(), "sqlite")


class AdjustmentType(str, Enum):
    """Kinds of term adjustment."""

    WITHDRAWAL = "withdrawal"
    DAY_CHANGE = "day_change"


class AdjustmentStatus(str, Enum):
    """Two-phase lifecycle of a term adjustment."""

    DRAFT = "draft"
    CONFIRMED = "confirmed"

    def can_transition_to(self, target: "AdjustmentStatus") -> bool:
        return target in _ALLOWED_TRANSITIONS.get(self, frozenset())

    @property
    def is_terminal(self) -> bool:
        return not _ALLOWED_TRANSITIONS.get(self)


_ALLOWED_TRANSITIONS: dict[AdjustmentStatus, frozenset[AdjustmentStatus]] = {
    AdjustmentStatus.DRAFT: frozenset({AdjustmentStatus.CONFIRMED}),
    AdjustmentStatus.CONFIRMED: frozenset(),
}


class TermAdjustment(Base):
    """Durable record of one term adjustment request."""

    __tablename__ = "term_adjustments"
    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'confirmed')", name="ck_term_adjustments_status"
        ),
        CheckConstraint(
            "adjustment_type IN ('withdrawal', 'day_change')",
            name="ck_term_adjustments_type",
        ),
        Index("ix_term_adjustments_org_status", "org_id", "status"),
        Index("ix_term_adjustments_student", "student_id"),
    )

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    org_id = Column(String(26), ForeignKey("organisations.id"), nullable=False)
    adjustment_type = Column(String(20), nullable=False)
    student_id = Column(String(26), ForeignKey("students.id"), nullable=False)
    term_id = Column(String(26), ForeignKey("terms.id"), nullable=True)
    term_end_date = Column(Date, nullable=False)
    effective_date = Column(Date, nullable=False)

    # Original schedule
    original_recurrence_id = Column(String(26), ForeignKey("recurrence_rules.id"), nullable=False)
    original_lessons_remaining = Column(Integer, nullable=False, default=0)
    original_day_of_week = Column(String(10), nullable=True)
    original_time = Column(Time, nullable=True)
    original_lesson_dates = Column(_JSON, nullable=False, default=list)
    original_teacher_id = Column(String(26), nullable=True)
    original_location_id = Column(String(26), nullable=True)
    lesson_duration_mins = Column(Integer, nullable=False)

    # New schedule (day_change only)
    new_recurrence_id = Column(String(26), ForeignKey("recurrence_rules.id"), nullable=True)
    new_lessons_count = Column(Integer, nullable=True)
    new_day_of_week = Column(String(10), nullable=True)
    new_time = Column(Time, nullable=True)
    new_teacher_id = Column(String(26), nullable=True)
    new_location_id = Column(String(26), nullable=True)
    new_lesson_dates = Column(_JSON, nullable=False, default=list)

    # Money, all in minor units
    lesson_rate_minor = Column(Integer, nullable=False)
    rate_source = Column(String(30), nullable=True)
    lessons_difference = Column(Integer, nullable=False)
    adjustment_amount_minor = Column(Integer, nullable=False)
    vat_rate = Column(Numeric(5, 2), nullable=False, default=0)
    vat_amount_minor = Column(Integer, nullable=False, default=0)
    total_adjustment_minor = Column(Integer, nullable=False, default=0)
    currency_code = Column(String(3), nullable=False)
    related_invoice_id = Column(String(26), nullable=True)

    status = Column(String(20), nullable=False, default=AdjustmentStatus.DRAFT.value)
    notes = Column(Text, nullable=True)
    created_by = Column(String(26), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Outcome, filled in on confirmation
    confirmed_by = Column(String(26), nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_lesson_ids = Column(_JSON, nullable=False, default=list)
    created_lesson_ids = Column(_JSON, nullable=False, default=list)
    credit_note_invoice_id = Column(String(26), ForeignKey("invoices.id"), nullable=True)

    @property
    def current_status(self) -> AdjustmentStatus:
        return AdjustmentStatus(self.status)

    @property
    def is_day_change(self) -> bool:
        return self.adjustment_type == AdjustmentType.DAY_CHANGE.value

    def transition_to(self, target: AdjustmentStatus) -> None:
        """Move to ``target``, refusing any transition the lifecycle does not allow."""
        current = self.current_status
        if not current.can_transition_to(target):
            raise InvalidStatusTransitionException(current.value, target.value)
        self.status = target.value

    def mark_confirmed(
        self,
        actor_id: str,
        *,
        cancelled_lesson_ids: Iterable[str],
        created_lesson_ids: Iterable[str],
        new_recurrence_id: Optional[str] = None,
        credit_note_invoice_id: Optional[str] = None,
        confirmed_at: Optional[datetime] = None,
    ) -> None:
        """Apply the draft -> confirmed transition and record what it produced."""
        self.transition_to(AdjustmentStatus.CONFIRMED)
        self.confirmed_by = actor_id
        self.confirmed_at = confirmed_at or datetime.now(timezone.utc)
        self.cancelled_lesson_ids = list(cancelled_lesson_ids)
        self.created_lesson_ids = list(created_lesson_ids)
        if new_recurrence_id:
            self.new_recurrence_id = new_recurrence_id
        if credit_note_invoice_id:
            self.credit_note_invoice_id = credit_note_invoice_id

    def audit_summary(self) -> dict[str, Any]:
        """Compact description of the applied change for the audit trail."""
        return {
            "adjustment_type": self.adjustment_type,
            "student_id": self.student_id,
            "effective_date": self.effective_date.isoformat() if self.effective_date else None,
            "lessons_difference": self.lessons_difference,
            "total_adjustment_minor": self.total_adjustment_minor,
            "cancelled_count": len(self.cancelled_lesson_ids or []),
            "created_count": len(self.created_lesson_ids or []),
            "new_recurrence_id": self.new_recurrence_id,
            "credit_note_invoice_id": self.credit_note_invoice_id,
        }
