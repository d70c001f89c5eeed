# backend/app/models/location.py
"""Teaching locations and the dates they are closed."""

from sqlalchemy import Boolean, Column, Date, ForeignKey, Index, String, Text
import ulid

from ..database import Base


class Location(Base):
    """A venue where lessons take place."""

    __tablename__ = "locations"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    org_id = Column(String(26), ForeignKey("organisations.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)


class ClosureDate(Base):
    """
    A day on which no lessons run.

    A closure either applies to every location of the organisation or is
    scoped to a single location.
    """

    __tablename__ = "closure_dates"
    __table_args__ = (Index("ix_closure_dates_org_date", "org_id", "date"),)

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    org_id = Column(String(26), ForeignKey("organisations.id"), nullable=False)
    date = Column(Date, nullable=False)
    location_id = Column(String(26), ForeignKey("locations.id"), nullable=True)
    applies_to_all_locations = Column(Boolean, nullable=False, default=False)
    reason = Column(Text, nullable=True)
