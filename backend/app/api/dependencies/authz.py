# backend/app/api/dependencies/authz.py
"""
Organisation role checks.

Term adjustments are restricted to active members holding one of the roles
in ``settings.term_adjustment_roles``.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional, Sequence

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ForbiddenException
from app.repositories.factory import RepositoryFactory

from .auth import get_current_user
from .database import get_db

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrgActor:
    user_id: str
    org_id: str
    role: str


def ensure_org_role(
    db: Session,
    *,
    user_id: str,
    org_id: str,
    allowed_roles: Optional[Sequence[str]] = None,
) -> OrgActor:
    """
    Return the caller's membership in ``org_id`` if it grants one of ``allowed_roles``.

    Raises:
        ForbiddenException: No active membership, or the role is not allowed
    """
    roles = set(allowed_roles if allowed_roles is not None else settings.term_adjustment_roles)
    role = RepositoryFactory.create_organisation_repository(db).get_active_role(
        user_id=user_id, org_id=org_id
    )
    if role is None or role not in roles:
        logger.warning(
            "Denied user %s in org %s (role=%s, allowed=%s)",
            user_id,
            org_id,
            role,
            sorted(roles),
        )
        raise ForbiddenException(
            "Insufficient permissions",
            code="INSUFFICIENT_PERMISSIONS",
            details={"org_id": org_id},
        )
    return OrgActor(user_id=user_id, org_id=org_id, role=role)


def require_term_adjustment_access(
    org_id: str = Query(..., min_length=1),
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> OrgActor:
    """Dependency for routes taking ``org_id`` as a query parameter."""
    return ensure_org_role(db, user_id=user_id, org_id=org_id)
