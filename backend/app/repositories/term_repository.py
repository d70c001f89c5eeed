# backend/app/repositories/term_repository.py
"""Term lookups scoped to an organisation."""

from __future__ import annotations

from datetime import date
import logging
from typing import Optional, cast

from sqlalchemy.orm import Session

from app.models.term import Term

from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class TermRepository(BaseRepository[Term]):
    """Repository for term windows."""

    def __init__(self, db: Session):
        super().__init__(db, Term)

    def find_enclosing(self, org_id: str, day: date) -> Optional[Term]:
        """
        Return the term whose ``[start_date, end_date]`` window contains ``day``.

        When terms overlap, the one that started most recently wins.
        """
        query = (
            self.db.query(Term)
            .filter(Term.org_id == org_id, Term.start_date <= day, Term.end_date >= day)
            .order_by(Term.start_date.desc(), Term.id.desc())
        )
        return cast(Optional[Term], self._execute_first(query))
