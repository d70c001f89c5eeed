# backend/app/repositories/invoice_repository.py
"""
Invoice Repository for the TuitionDesk backend.

Looks up term invoices for reconciliation and persists invoices and credit
notes together with their line items.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, cast

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import RepositoryException
from app.models.invoice import Invoice, InvoiceItem
from app.models.organisation import Organisation

from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

CREDIT_NOTE_PREFIX = "CN"
INVOICE_PREFIX = "INV"


class InvoiceRepository(BaseRepository[Invoice]):
    """Repository for invoices, credit notes and their items."""

    def __init__(self, db: Session):
        super().__init__(db, Invoice)
        self.logger = logging.getLogger(__name__)

    def find_latest_term_invoice(
        self,
        *,
        org_id: str,
        term_id: str,
        payer_guardian_id: Optional[str] = None,
        payer_student_id: Optional[str] = None,
    ) -> Optional[Invoice]:
        """Return the newest regular (non credit note) invoice for a term and payer."""
        if not payer_guardian_id and not payer_student_id:
            return None
        query = self.db.query(Invoice).filter(
            Invoice.org_id == org_id,
            Invoice.term_id == term_id,
            Invoice.is_credit_note.is_(False),
        )
        if payer_guardian_id:
            query = query.filter(Invoice.payer_guardian_id == payer_guardian_id)
        else:
            query = query.filter(Invoice.payer_student_id == payer_student_id)
        query = query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
        return cast(Optional[Invoice], self._execute_first(query))

    def get_by_idempotency_key(self, key: str) -> Optional[Invoice]:
        return cast(Optional[Invoice], self.find_one_by(idempotency_key=key))

    def next_invoice_number(self, org_id: str, *, is_credit_note: bool) -> str:
        """
        Allocate the next sequential number for the organisation's invoices or credit notes.

        Under PostgreSQL the organisation row is locked first, so concurrent
        allocations in one organisation wait for each other's commit.
        """
        prefix = CREDIT_NOTE_PREFIX if is_credit_note else INVOICE_PREFIX
        try:
            if self.supports_row_locks:
                (
                    self.db.query(Organisation.id)
                    .filter(Organisation.id == org_id)
                    .with_for_update()
                    .first()
                )
            existing = (
                self.db.query(func.count(Invoice.id))
                .filter(Invoice.org_id == org_id, Invoice.is_credit_note.is_(is_credit_note))
                .scalar()
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to count invoices for %s: %s", org_id, exc)
            raise RepositoryException("Failed to allocate invoice number") from exc
        return f"{prefix}-{int(existing or 0) + 1:05d}"

    def create_with_items(
        self, *, items: List[Dict[str, Any]], **invoice_fields: Any
    ) -> Invoice:
        """Persist an invoice and its line items in one flush."""
        try:
            invoice = Invoice(**invoice_fields)
            for item in items:
                invoice.items.append(InvoiceItem(org_id=invoice.org_id, **item))
            self.db.add(invoice)
            self.db.flush()
            return invoice
        except SQLAlchemyError as exc:
            self.logger.error("Failed to create invoice: %s", exc)
            raise RepositoryException(f"Failed to create invoice: {exc}") from exc
