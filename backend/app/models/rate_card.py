# backend/app/models/rate_card.py
"""Per-lesson price lists."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func
import ulid

from ..database import Base


class RateCard(Base):
    """Price of a single lesson of a given length, in minor currency units."""

    __tablename__ = "rate_cards"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    org_id = Column(String(26), ForeignKey("organisations.id"), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    duration_mins = Column(Integer, nullable=False)
    rate_amount = Column(Integer, nullable=False)
    is_default = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
