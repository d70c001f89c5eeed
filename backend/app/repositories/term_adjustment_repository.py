# backend/app/repositories/term_adjustment_repository.py
"""
Term Adjustment Repository for the TuitionDesk backend.

Persists draft adjustments and provides the locked draft lookup that
serialises concurrent confirmations.
"""

from __future__ import annotations

import logging
from typing import List, Optional, cast

from sqlalchemy.orm import Session

from app.models.term_adjustment import AdjustmentStatus, TermAdjustment

from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class TermAdjustmentRepository(BaseRepository[TermAdjustment]):
    """Repository for term adjustment records."""

    def __init__(self, db: Session):
        super().__init__(db, TermAdjustment)

    def lock_draft(self, adjustment_id: str, org_id: str) -> Optional[TermAdjustment]:
        """
        Return the adjustment only while it is still a draft, row-locked.

        Under PostgreSQL a concurrent confirm blocks on the lock and, once the
        first commits, re-evaluates ``status = 'draft'`` and gets nothing back.
        """
        query = self.db.query(TermAdjustment).filter(
            TermAdjustment.id == adjustment_id,
            TermAdjustment.org_id == org_id,
            TermAdjustment.status == AdjustmentStatus.DRAFT.value,
        )
        if self.supports_row_locks:
            query = query.with_for_update()
        return cast(Optional[TermAdjustment], self._execute_first(query))

    def list_confirmed(
        self,
        org_id: str,
        *,
        student_id: Optional[str] = None,
        limit: int = 100,
    ) -> List[TermAdjustment]:
        """Return confirmed adjustments, newest first."""
        query = self.db.query(TermAdjustment).filter(
            TermAdjustment.org_id == org_id,
            TermAdjustment.status == AdjustmentStatus.CONFIRMED.value,
        )
        if student_id:
            query = query.filter(TermAdjustment.student_id == student_id)
        query = query.order_by(
            TermAdjustment.confirmed_at.desc(), TermAdjustment.id.desc()
        ).limit(max(1, limit))
        return cast(List[TermAdjustment], self._execute_query(query))
