# backend/app/models/organisation.py
"""
Organisation (tenant) models.

Every business record in TuitionDesk is scoped to an organisation. The
organisation row carries the billing settings the term adjustment engine
depends on: tax configuration and the currency invoices are raised in.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.sql import func
import ulid

from ..core.constants import DEFAULT_CURRENCY_CODE, DEFAULT_TIMEZONE
from ..core.enums import MembershipStatus
from ..database import Base


class Organisation(Base):
    """A tuition business using the platform."""

    __tablename__ = "organisations"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    name = Column(String(255), nullable=False)

    # Billing settings
    vat_enabled = Column(Boolean, nullable=False, default=False)
    vat_rate = Column(Numeric(5, 2), nullable=False, default=0)
    currency_code = Column(String(3), nullable=False, default=DEFAULT_CURRENCY_CODE)
    default_timezone = Column(String(64), nullable=False, default=DEFAULT_TIMEZONE)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<Organisation {self.id} {self.name!r}>"


class OrgMembership(Base):
    """Role a user holds inside an organisation."""

    __tablename__ = "org_memberships"
    __table_args__ = (UniqueConstraint("org_id", "user_id", name="uq_org_memberships_org_user"),)

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    org_id = Column(String(26), ForeignKey("organisations.id"), nullable=False, index=True)
    user_id = Column(String(26), ForeignKey("profiles.id"), nullable=False, index=True)
    role = Column(String(30), nullable=False)
    status = Column(String(20), nullable=False, default=MembershipStatus.ACTIVE.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Profile(Base):
    """Display profile for a platform user (operators and teachers)."""

    __tablename__ = "profiles"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    full_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True, unique=True)
