# backend/app/repositories/organisation_repository.py
"""
Organisation Repository for the TuitionDesk backend.

Reads organisation-level configuration (billing settings, rate cards,
closure dates), membership roles and display names.
"""

from __future__ import annotations

from datetime import date
import logging
from typing import List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.enums import MembershipStatus
from app.core.exceptions import RepositoryException
from app.models.location import ClosureDate, Location
from app.models.organisation import OrgMembership, Organisation, Profile
from app.models.rate_card import RateCard

from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class OrganisationRepository(BaseRepository[Organisation]):
    """Repository for organisation configuration lookups."""

    def __init__(self, db: Session):
        super().__init__(db, Organisation)
        self.logger = logging.getLogger(__name__)

    def get_rate_cards(self, org_id: str) -> List[RateCard]:
        """Return the organisation's rate cards in creation order."""
        query = (
            self.db.query(RateCard)
            .filter(RateCard.org_id == org_id)
            .order_by(RateCard.created_at.asc(), RateCard.id.asc())
        )
        return cast(List[RateCard], self._execute_query(query))

    def get_closure_dates(self, org_id: str, start: date, end: date) -> List[ClosureDate]:
        """Return closures within ``[start, end]`` for the organisation."""
        query = (
            self.db.query(ClosureDate)
            .filter(
                ClosureDate.org_id == org_id,
                ClosureDate.date >= start,
                ClosureDate.date <= end,
            )
            .order_by(ClosureDate.date.asc())
        )
        return cast(List[ClosureDate], self._execute_query(query))

    def get_active_role(self, *, user_id: str, org_id: str) -> Optional[str]:
        """Return the user's role in the organisation if the membership is active."""
        try:
            membership = (
                self.db.query(OrgMembership)
                .filter(
                    OrgMembership.user_id == user_id,
                    OrgMembership.org_id == org_id,
                    OrgMembership.status == MembershipStatus.ACTIVE.value,
                )
                .first()
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to load membership for %s in %s: %s", user_id, org_id, exc)
            raise RepositoryException("Failed to load organisation membership") from exc
        return membership.role if membership else None

    def get_profile_name(self, profile_id: Optional[str]) -> Optional[str]:
        if not profile_id:
            return None
        profile = self._execute_first(self.db.query(Profile).filter(Profile.id == profile_id))
        return profile.full_name if profile else None

    def get_location_name(self, location_id: Optional[str]) -> Optional[str]:
        if not location_id:
            return None
        location = self._execute_first(self.db.query(Location).filter(Location.id == location_id))
        return location.name if location else None
