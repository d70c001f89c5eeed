# backend/app/repositories/factory.py
"""
Repository Factory for the TuitionDesk backend.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .audit_repository import AuditRepository
    from .invoice_repository import InvoiceRepository
    from .lesson_repository import LessonRepository
    from .organisation_repository import OrganisationRepository
    from .recurrence_rule_repository import RecurrenceRuleRepository
    from .student_repository import StudentRepository
    from .term_adjustment_repository import TermAdjustmentRepository
    from .term_repository import TermRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_organisation_repository(db: Session) -> "OrganisationRepository":
        """Create repository for organisation configuration lookups."""
        from .organisation_repository import OrganisationRepository

        return OrganisationRepository(db)

    @staticmethod
    def create_term_repository(db: Session) -> "TermRepository":
        """Create repository for term windows."""
        from .term_repository import TermRepository

        return TermRepository(db)

    @staticmethod
    def create_student_repository(db: Session) -> "StudentRepository":
        """Create repository for students and payers."""
        from .student_repository import StudentRepository

        return StudentRepository(db)

    @staticmethod
    def create_lesson_repository(db: Session) -> "LessonRepository":
        """Create repository for lesson occurrences."""
        from .lesson_repository import LessonRepository

        return LessonRepository(db)

    @staticmethod
    def create_recurrence_rule_repository(db: Session) -> "RecurrenceRuleRepository":
        """Create repository for recurrence rules."""
        from .recurrence_rule_repository import RecurrenceRuleRepository

        return RecurrenceRuleRepository(db)

    @staticmethod
    def create_invoice_repository(db: Session) -> "InvoiceRepository":
        """Create repository for invoices and credit notes."""
        from .invoice_repository import InvoiceRepository

        return InvoiceRepository(db)

    @staticmethod
    def create_term_adjustment_repository(db: Session) -> "TermAdjustmentRepository":
        """Create repository for term adjustments."""
        from .term_adjustment_repository import TermAdjustmentRepository

        return TermAdjustmentRepository(db)

    @staticmethod
    def create_audit_repository(db: Session) -> "AuditRepository":
        """Create repository for the audit trail."""
        from .audit_repository import AuditRepository

        return AuditRepository(db)
