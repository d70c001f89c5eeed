# backend/app/repositories/recurrence_rule_repository.py
"""Recurrence rule persistence."""

from __future__ import annotations

import logging
from typing import Optional, cast

from sqlalchemy.orm import Session

from app.models.recurrence_rule import RecurrenceRule

from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class RecurrenceRuleRepository(BaseRepository[RecurrenceRule]):
    """Repository for weekly recurrence rules."""

    def __init__(self, db: Session):
        super().__init__(db, RecurrenceRule)

    def get_for_update(self, rule_id: str, org_id: str) -> Optional[RecurrenceRule]:
        """Load a rule for modification, row-locked where the database supports it."""
        query = self.db.query(RecurrenceRule).filter(
            RecurrenceRule.id == rule_id, RecurrenceRule.org_id == org_id
        )
        if self.supports_row_locks:
            query = query.with_for_update()
        return cast(Optional[RecurrenceRule], self._execute_first(query))
