# backend/app/models/student.py
"""Students, guardians and who pays for whom."""

from sqlalchemy import Boolean, Column, ForeignKey, String, UniqueConstraint
import ulid

from ..database import Base


class Student(Base):
    """A learner enrolled with an organisation."""

    __tablename__ = "students"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    org_id = Column(String(26), ForeignKey("organisations.id"), nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    default_rate_card_id = Column(String(26), ForeignKey("rate_cards.id"), nullable=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Guardian(Base):
    """A parent or carer who may be billed for a student's lessons."""

    __tablename__ = "guardians"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    org_id = Column(String(26), ForeignKey("organisations.id"), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)


class StudentGuardian(Base):
    """Link between a student and a guardian; at most one is the primary payer."""

    __tablename__ = "student_guardians"
    __table_args__ = (
        UniqueConstraint("student_id", "guardian_id", name="uq_student_guardians_pair"),
    )

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    student_id = Column(String(26), ForeignKey("students.id"), nullable=False, index=True)
    guardian_id = Column(String(26), ForeignKey("guardians.id"), nullable=False)
    is_primary_payer = Column(Boolean, nullable=False, default=False)
