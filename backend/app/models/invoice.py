# backend/app/models/invoice.py
"""
Invoices and credit notes.

Credit notes are invoices with ``is_credit_note`` set and negative amounts.
Documents raised by a term adjustment carry an idempotency key derived from
the adjustment id so a retried confirmation never raises a second document.
"""

from enum import Enum

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base


class InvoiceStatus(str, Enum):
    """Invoice lifecycle statuses."""

    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    VOID = "void"


class Invoice(Base):
    """A financial document raised against a payer."""

    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("org_id", "invoice_number", name="uq_invoices_org_number"),
    )

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    org_id = Column(String(26), ForeignKey("organisations.id"), nullable=False, index=True)
    invoice_number = Column(String(32), nullable=False)
    status = Column(String(20), nullable=False, default=InvoiceStatus.DRAFT.value)
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    currency_code = Column(String(3), nullable=False)

    subtotal_minor = Column(Integer, nullable=False, default=0)
    tax_minor = Column(Integer, nullable=False, default=0)
    total_minor = Column(Integer, nullable=False, default=0)
    vat_rate = Column(Numeric(5, 2), nullable=False, default=0)
    is_credit_note = Column(Boolean, nullable=False, default=False)

    payer_guardian_id = Column(String(26), ForeignKey("guardians.id"), nullable=True)
    payer_student_id = Column(String(26), ForeignKey("students.id"), nullable=True)
    term_id = Column(String(26), ForeignKey("terms.id"), nullable=True, index=True)
    adjustment_id = Column(String(26), nullable=True, index=True)
    related_invoice_id = Column(String(26), ForeignKey("invoices.id"), nullable=True)
    idempotency_key = Column(String(100), nullable=True, unique=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    items = relationship("InvoiceItem", back_populates="invoice", cascade="all, delete-orphan")


class InvoiceItem(Base):
    """A line on an invoice or credit note."""

    __tablename__ = "invoice_items"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    invoice_id = Column(String(26), ForeignKey("invoices.id"), nullable=False, index=True)
    org_id = Column(String(26), ForeignKey("organisations.id"), nullable=False)
    description = Column(Text, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price_minor = Column(Integer, nullable=False)
    amount_minor = Column(Integer, nullable=False)
    student_id = Column(String(26), ForeignKey("students.id"), nullable=True)

    invoice = relationship("Invoice", back_populates="items")
