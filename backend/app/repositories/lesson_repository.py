# backend/app/repositories/lesson_repository.py
"""
Lesson Repository for the TuitionDesk backend.

Queries and bulk mutations over lesson occurrences, their participants and
attendance records.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Iterable, List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import RepositoryException
from app.models.lesson import AttendanceRecord, Lesson, LessonParticipant, LessonStatus

from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class LessonRepository(BaseRepository[Lesson]):
    """Repository for lesson occurrences."""

    def __init__(self, db: Session):
        super().__init__(db, Lesson)
        self.logger = logging.getLogger(__name__)

    def get_scheduled_for_recurrence(
        self,
        *,
        org_id: str,
        recurrence_id: str,
        starts_from: datetime,
        starts_before: Optional[datetime] = None,
        for_update: bool = False,
    ) -> List[Lesson]:
        """
        Return scheduled lessons of a series starting in ``[starts_from, starts_before)``.

        ``starts_before`` of None leaves the window open-ended. Results are
        ordered by start time.
        """
        query = self.db.query(Lesson).filter(
            Lesson.org_id == org_id,
            Lesson.recurrence_id == recurrence_id,
            Lesson.status == LessonStatus.SCHEDULED.value,
            Lesson.start_at >= starts_from,
        )
        if starts_before is not None:
            query = query.filter(Lesson.start_at < starts_before)
        query = query.order_by(Lesson.start_at.asc(), Lesson.id.asc())
        if for_update and self.supports_row_locks:
            query = query.with_for_update()
        return cast(List[Lesson], self._execute_query(query))

    def get_latest_for_recurrence(self, *, org_id: str, recurrence_id: str) -> Optional[Lesson]:
        """Return the most recent lesson of a series regardless of status."""
        query = (
            self.db.query(Lesson)
            .filter(Lesson.org_id == org_id, Lesson.recurrence_id == recurrence_id)
            .order_by(Lesson.start_at.desc(), Lesson.id.desc())
        )
        return cast(Optional[Lesson], self._execute_first(query))

    def cancel_lessons(
        self,
        lessons: Iterable[Lesson],
        *,
        cancelled_by: Optional[str],
        reason: str,
        at: datetime,
    ) -> List[str]:
        """Cancel every still-scheduled lesson given; return the ids that were cancelled."""
        cancelled: List[str] = []
        try:
            for lesson in lessons:
                if not lesson.is_cancellable:
                    continue
                lesson.cancel(cancelled_by, reason, at=at)
                cancelled.append(lesson.id)
            self.db.flush()
        except SQLAlchemyError as exc:
            self.logger.error("Failed to cancel lessons: %s", exc)
            raise RepositoryException("Failed to cancel lessons") from exc
        return cancelled

    def delete_attendance_for_lessons(self, lesson_ids: List[str]) -> int:
        """Remove attendance logged against the given lessons."""
        if not lesson_ids:
            return 0
        try:
            deleted = (
                self.db.query(AttendanceRecord)
                .filter(AttendanceRecord.lesson_id.in_(lesson_ids))
                .delete(synchronize_session=False)
            )
            self.db.flush()
            return int(deleted or 0)
        except SQLAlchemyError as exc:
            self.logger.error("Failed to delete attendance records: %s", exc)
            raise RepositoryException("Failed to delete attendance records") from exc

    def add_participant_to_lessons(
        self, *, org_id: str, lesson_ids: List[str], student_id: str
    ) -> List[LessonParticipant]:
        """Enrol ``student_id`` on each of the given lessons."""
        if not lesson_ids:
            return []
        try:
            participants = [
                LessonParticipant(org_id=org_id, lesson_id=lesson_id, student_id=student_id)
                for lesson_id in lesson_ids
            ]
            self.db.add_all(participants)
            self.db.flush()
            return participants
        except SQLAlchemyError as exc:
            self.logger.error("Failed to add lesson participants: %s", exc)
            raise RepositoryException("Failed to add lesson participants") from exc
