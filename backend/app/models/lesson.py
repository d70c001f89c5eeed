# backend/app/models/lesson.py
"""
Lesson occurrences and the records hanging off them.

A lesson is one concrete, timestamped occurrence, usually generated from a
recurrence rule. Completed lessons are immutable; the term adjustment engine
only cancels or regenerates lessons that are still scheduled.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base


class LessonStatus(str, Enum):
    """Lesson lifecycle statuses."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Lesson(Base):
    """A single scheduled lesson."""

    __tablename__ = "lessons"
    __table_args__ = (
        Index("ix_lessons_recurrence_status_start", "recurrence_id", "status", "start_at"),
    )

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    org_id = Column(String(26), ForeignKey("organisations.id"), nullable=False, index=True)
    recurrence_id = Column(String(26), ForeignKey("recurrence_rules.id"), nullable=True)

    teacher_user_id = Column(String(26), ForeignKey("profiles.id"), nullable=True)
    location_id = Column(String(26), ForeignKey("locations.id"), nullable=True)
    room_id = Column(String(26), nullable=True)

    lesson_type = Column(String(30), nullable=False, default="private")
    title = Column(String(255), nullable=False)
    is_online = Column(Boolean, nullable=False, default=False)

    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, default=LessonStatus.SCHEDULED.value, index=True)

    # Cancellation tracking
    cancellation_reason = Column(Text, nullable=True)
    cancelled_by = Column(String(26), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    created_by = Column(String(26), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    participants = relationship(
        "LessonParticipant", back_populates="lesson", cascade="all, delete-orphan"
    )

    @property
    def is_cancellable(self) -> bool:
        return self.status == LessonStatus.SCHEDULED.value

    def cancel(
        self,
        cancelled_by: Optional[str],
        reason: Optional[str],
        *,
        at: Optional[datetime] = None,
    ) -> None:
        """Mark a scheduled lesson as cancelled and stamp who/why/when."""
        if not self.is_cancellable:
            return
        self.status = LessonStatus.CANCELLED.value
        self.cancelled_by = cancelled_by
        self.cancellation_reason = reason
        self.cancelled_at = at or datetime.now(timezone.utc)


class LessonParticipant(Base):
    """A student attending a lesson."""

    __tablename__ = "lesson_participants"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    org_id = Column(String(26), ForeignKey("organisations.id"), nullable=False)
    lesson_id = Column(String(26), ForeignKey("lessons.id"), nullable=False, index=True)
    student_id = Column(String(26), ForeignKey("students.id"), nullable=False, index=True)

    lesson = relationship("Lesson", back_populates="participants")


class AttendanceRecord(Base):
    """Attendance logged against a lesson for one student."""

    __tablename__ = "attendance_records"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    org_id = Column(String(26), ForeignKey("organisations.id"), nullable=False)
    lesson_id = Column(String(26), ForeignKey("lessons.id"), nullable=False, index=True)
    student_id = Column(String(26), ForeignKey("students.id"), nullable=False)
    attendance_status = Column(String(20), nullable=False, default="present")
    recorded_at = Column(DateTime(timezone=True), server_default=func.now())
