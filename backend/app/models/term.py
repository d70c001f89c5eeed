# backend/app/models/term.py
"""Scheduling and billing terms."""

from sqlalchemy import CheckConstraint, Column, Date, ForeignKey, Index, String
import ulid

from ..database import Base


class Term(Base):
    """A bounded teaching/billing period such as a school term."""

    __tablename__ = "terms"
    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_terms_end_after_start"),
        Index("ix_terms_org_window", "org_id", "start_date", "end_date"),
    )

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    org_id = Column(String(26), ForeignKey("organisations.id"), nullable=False)
    name = Column(String(255), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
