"""
Database models for the TuitionDesk backend.

The models are organized by functionality:
- Organisations, memberships and profiles
- Locations, closure dates and terms
- Students, guardians and rate cards
- Recurrence rules, lessons, participants and attendance
- Invoices and credit notes
- Term adjustments and the audit trail
"""

from .audit_log import AuditLog
from .invoice import Invoice, InvoiceItem, InvoiceStatus
from .lesson import AttendanceRecord, Lesson, LessonParticipant, LessonStatus
from .location import ClosureDate, Location
from .organisation import OrgMembership, Organisation, Profile
from .rate_card import RateCard
from .recurrence_rule import RecurrencePattern, RecurrenceRule
from .student import Guardian, Student, StudentGuardian
from .term import Term
from .term_adjustment import AdjustmentStatus, AdjustmentType, TermAdjustment

__all__ = [
    "AdjustmentStatus",
    "AdjustmentType",
    "AttendanceRecord",
    "AuditLog",
    "ClosureDate",
    "Guardian",
    "Invoice",
    "InvoiceItem",
    "InvoiceStatus",
    "Lesson",
    "LessonParticipant",
    "LessonStatus",
    "Location",
    "OrgMembership",
    "Organisation",
    "Profile",
    "RateCard",
    "RecurrencePattern",
    "RecurrenceRule",
    "Student",
    "StudentGuardian",
    "Term",
    "TermAdjustment",
]
