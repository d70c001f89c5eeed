# backend/app/repositories/student_repository.py
"""Student and payer lookups."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.models.student import Student, StudentGuardian

from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class StudentRepository(BaseRepository[Student]):
    """Repository for students and their guardian links."""

    def __init__(self, db: Session):
        super().__init__(db, Student)

    def get_primary_payer_guardian_id(self, student_id: str) -> Optional[str]:
        """Return the guardian flagged as the student's primary payer, if any."""
        link = self._execute_first(
            self.db.query(StudentGuardian)
            .filter(
                StudentGuardian.student_id == student_id,
                StudentGuardian.is_primary_payer.is_(True),
            )
            .order_by(StudentGuardian.id.asc())
        )
        return link.guardian_id if link else None
