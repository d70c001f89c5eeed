# backend/app/services/term_resolver.py
"""
Term window resolution for term adjustments.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import CUSTOM_PERIOD_TERM_NAME
from ..repositories.factory import RepositoryFactory
from ..repositories.term_repository import TermRepository
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TermWindow:
    term_id: Optional[str]
    term_name: str
    term_end_date: date

    @property
    def is_fallback(self) -> bool:
        return self.term_id is None


class TermResolver(BaseService):
    """Resolves the window an adjustment runs until."""

    def __init__(
        self,
        db: Session,
        term_repository: Optional[TermRepository] = None,
        fallback_days: Optional[int] = None,
    ):
        super().__init__(db)
        self.term_repository = term_repository or RepositoryFactory.create_term_repository(db)
        self.fallback_days = fallback_days if fallback_days is not None else settings.term_fallback_days

    def resolve(self, org_id: str, effective_date: date, term_id: Optional[str] = None) -> TermWindow:
        """
        Find the term an adjustment effective on ``effective_date`` belongs to.

        An explicit ``term_id`` is looked up within the organisation; without
        one, the term enclosing the date is used. When neither yields a term a
        custom period of ``fallback_days`` days is returned with no term id.
        """
        if term_id:
            term = self.term_repository.get_for_org(term_id, org_id)
            if term is None:
                self.logger.warning("Term %s not found in org %s", term_id, org_id)
        else:
            term = self.term_repository.find_enclosing(org_id, effective_date)
        if term is not None:
            return TermWindow(term.id, term.name, term.end_date)

        self.logger.info(
            "No term encloses %s for org %s, using a %s day custom period",
            effective_date,
            org_id,
            self.fallback_days,
        )
        return TermWindow(
            None,
            CUSTOM_PERIOD_TERM_NAME,
            effective_date + timedelta(days=self.fallback_days),
        )
