# backend/app/services/term_adjustment_workflow.py
"""
Term adjustment confirmation.

Applies a previously previewed draft: cancels the remaining lessons of the
original series, truncates its recurrence rule, regenerates lessons on the new
day for a day change, and issues a credit note or supplementary invoice for
the difference. Everything happens in one transaction and at most once per
draft.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
import logging
from typing import Any, Dict, List, Optional, Tuple

import pytz
from sqlalchemy.orm import Session

from ..core.constants import DAY_NAMES, LESSON_CANCELLATION_REASON
from ..core.exceptions import AdjustmentAlreadyProcessedException, NotFoundException
from ..core.timezone_utils import get_timezone, local_day_bounds_utc, local_to_utc
from ..models.audit_log import AuditLog
from ..models.invoice import Invoice, InvoiceStatus
from ..models.lesson import Lesson, LessonStatus
from ..models.recurrence_rule import RecurrencePattern, RecurrenceRule
from ..models.term_adjustment import AdjustmentType, TermAdjustment
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..utils.money import format_minor
from .base import BaseService
from .org_config_provider import OrgConfigProvider, build_org_config_provider

logger = logging.getLogger(__name__)

AUDIT_ENTITY_TYPE = "term_adjustment"
IDEMPOTENCY_KEY_PREFIX = "term-adjustment"


def invoice_idempotency_key(adjustment_id: str) -> str:
    return f"{IDEMPOTENCY_KEY_PREFIX}:{adjustment_id}"


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def _as_date(value: Any) -> date:
    return value if isinstance(value, date) else date.fromisoformat(str(value))


class TermAdjustmentWorkflow(BaseService):
    """Service applying confirmed term adjustments."""

    def __init__(self, db: Session, config_provider: Optional[OrgConfigProvider] = None):
        super().__init__(db)
        self.config_provider = build_org_config_provider(db, config_provider)
        self.term_adjustment_repository = RepositoryFactory.create_term_adjustment_repository(db)
        self.recurrence_rule_repository = RepositoryFactory.create_recurrence_rule_repository(db)
        self.lesson_repository = RepositoryFactory.create_lesson_repository(db)
        self.invoice_repository = RepositoryFactory.create_invoice_repository(db)
        self.student_repository = RepositoryFactory.create_student_repository(db)
        self.audit_repository = RepositoryFactory.create_audit_repository(db)

    @BaseService.measure_operation("confirm_term_adjustment")
    def confirm(
        self,
        org_id: str,
        adjustment_id: str,
        actor_id: str,
        generate_credit_note: bool = True,
        actor_role: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Apply a draft adjustment exactly once.

        Args:
            org_id: Organisation owning the adjustment
            adjustment_id: Draft produced by the preview
            actor_id: User confirming
            generate_credit_note: Issue a financial document for a non-zero difference
            actor_role: Role recorded on the audit row

        Returns:
            Counts and ids of what was produced

        Raises:
            AdjustmentAlreadyProcessedException: The adjustment is no longer a draft
            NotFoundException: No such adjustment, or its series has gone
        """
        with self.transaction():
            adjustment = self._lock_draft(org_id, adjustment_id)
            before = {"status": adjustment.status}
            now = datetime.now(timezone.utc)

            recurrence = self.recurrence_rule_repository.get_for_update(
                adjustment.original_recurrence_id, org_id
            )
            if recurrence is None:
                raise NotFoundException(
                    "Lesson series not found",
                    code="RECURRENCE_NOT_FOUND",
                    details={"recurrence_id": adjustment.original_recurrence_id},
                )
            billing = self.config_provider.get_billing_settings(org_id)
            tz = get_timezone(recurrence.timezone, default=billing.timezone)

            starts_from, _ = local_day_bounds_utc(adjustment.effective_date, adjustment.effective_date, tz)
            remaining = self.lesson_repository.get_scheduled_for_recurrence(
                org_id=org_id,
                recurrence_id=recurrence.id,
                starts_from=starts_from,
                for_update=True,
            )
            cancelled_ids = self.lesson_repository.cancel_lessons(
                remaining,
                cancelled_by=actor_id,
                reason=LESSON_CANCELLATION_REASON,
                at=now,
            )
            self.lesson_repository.delete_attendance_for_lessons(cancelled_ids)
            recurrence.truncate_before(adjustment.effective_date)
            if recurrence.superseded:
                self.logger.info("Series %s superseded from its first day", recurrence.id)

            new_recurrence_id: Optional[str] = None
            created_ids: List[str] = []
            if adjustment.is_day_change:
                template = remaining[0] if remaining else None
                new_recurrence_id, created_ids = self._regenerate_series(
                    adjustment, recurrence, template, actor_id, tz
                )

            credit_note_invoice_id: Optional[str] = None
            if generate_credit_note and adjustment.adjustment_amount_minor != 0:
                credit_note_invoice_id = self._issue_financial_document(adjustment).id

            adjustment.mark_confirmed(
                actor_id,
                cancelled_lesson_ids=cancelled_ids,
                created_lesson_ids=created_ids,
                new_recurrence_id=new_recurrence_id,
                credit_note_invoice_id=credit_note_invoice_id,
                confirmed_at=now,
            )
            self.term_adjustment_repository.flush()

            self.audit_repository.write(
                AuditLog.from_change(
                    AUDIT_ENTITY_TYPE,
                    adjustment.id,
                    "confirm",
                    actor_id=actor_id,
                    actor_role=actor_role,
                    before=before,
                    after={"status": adjustment.status, **adjustment.audit_summary()},
                    org_id=org_id,
                )
            )

        prometheus_metrics.record_term_adjustment("confirm", adjustment.adjustment_type)
        self.log_operation(
            "confirm_term_adjustment",
            adjustment_id=adjustment.id,
            org_id=org_id,
            cancelled_count=len(cancelled_ids),
            created_count=len(created_ids),
        )

        return {
            "success": True,
            "adjustment_id": adjustment.id,
            "cancelled_count": len(cancelled_ids),
            "created_count": len(created_ids),
            "new_recurrence_id": new_recurrence_id,
            "credit_note_invoice_id": credit_note_invoice_id,
        }

    @BaseService.measure_operation("list_confirmed_term_adjustments")
    def list_confirmed(
        self, org_id: str, student_id: Optional[str] = None, limit: int = 100
    ) -> List[Dict[str, Any]]:
        """Return confirmed adjustments for the organisation, newest first."""
        adjustments = self.term_adjustment_repository.list_confirmed(
            org_id, student_id=student_id, limit=limit
        )
        return [self._summary(adjustment) for adjustment in adjustments]

    def _lock_draft(self, org_id: str, adjustment_id: str) -> TermAdjustment:
        adjustment = self.term_adjustment_repository.lock_draft(adjustment_id, org_id)
        if adjustment is not None:
            return adjustment

        existing = self.term_adjustment_repository.get_for_org(adjustment_id, org_id)
        if existing is not None:
            self.logger.info(
                "Term adjustment %s already %s, refusing to confirm again",
                adjustment_id,
                existing.status,
            )
            raise AdjustmentAlreadyProcessedException(adjustment_id, existing.status)
        raise NotFoundException(
            "Adjustment not found",
            code="ADJUSTMENT_NOT_FOUND",
            details={"adjustment_id": adjustment_id},
        )

    def _regenerate_series(
        self,
        adjustment: TermAdjustment,
        original: RecurrenceRule,
        template: Optional[Lesson],
        actor_id: str,
        tz: pytz.BaseTzInfo,
    ) -> Tuple[str, List[str]]:
        """Create the replacement rule and its lessons; return the rule id and lesson ids."""
        new_dates = [_as_date(value) for value in adjustment.new_lesson_dates or []]

        if adjustment.new_day_of_week in DAY_NAMES:
            wire_day = DAY_NAMES.index(adjustment.new_day_of_week)
        else:
            wire_day = (new_dates[0].weekday() + 1) % 7 if new_dates else 0

        rule = self.recurrence_rule_repository.create(
            org_id=adjustment.org_id,
            pattern_type=RecurrencePattern.WEEKLY.value,
            days_of_week=[wire_day],
            interval_weeks=1,
            start_date=adjustment.effective_date,
            end_date=adjustment.term_end_date,
            timezone=original.timezone,
        )

        if not new_dates:
            return rule.id, []

        if template is None:
            template = self.lesson_repository.get_latest_for_recurrence(
                org_id=adjustment.org_id, recurrence_id=original.id
            )
        if template is None:
            self.logger.warning(
                "No template lesson on series %s, created rule %s without lessons",
                original.id,
                rule.id,
            )
            return rule.id, []

        wall_time: time = adjustment.new_time or adjustment.original_time or time(0, 0)
        duration = timedelta(minutes=adjustment.lesson_duration_mins)
        location_changed = bool(adjustment.new_location_id)

        rows = []
        for day in new_dates:
            start_at = local_to_utc(day, wall_time, tz)
            rows.append(
                {
                    "org_id": adjustment.org_id,
                    "recurrence_id": rule.id,
                    "lesson_type": template.lesson_type,
                    "title": template.title,
                    "is_online": bool(template.is_online),
                    "teacher_user_id": adjustment.new_teacher_id or template.teacher_user_id,
                    "location_id": adjustment.new_location_id or template.location_id,
                    "room_id": None if location_changed else template.room_id,
                    "start_at": start_at,
                    "end_at": start_at + duration,
                    "status": LessonStatus.SCHEDULED.value,
                    "created_by": actor_id,
                }
            )
        lessons = self.lesson_repository.create_many(rows)
        lesson_ids = [lesson.id for lesson in lessons]
        self.lesson_repository.add_participant_to_lessons(
            org_id=adjustment.org_id, lesson_ids=lesson_ids, student_id=adjustment.student_id
        )
        return rule.id, lesson_ids

    def _issue_financial_document(self, adjustment: TermAdjustment) -> Invoice:
        """
        Create the credit note (positive amount) or supplementary invoice
        (negative amount) for an adjustment, reusing one already issued.
        """
        key = invoice_idempotency_key(adjustment.id)
        existing = self.invoice_repository.get_by_idempotency_key(key)
        if existing is not None:
            self.logger.info("Reusing invoice %s for term adjustment %s", existing.id, adjustment.id)
            return existing

        is_credit_note = adjustment.adjustment_amount_minor > 0
        sign = -1 if is_credit_note else 1
        subtotal = abs(adjustment.adjustment_amount_minor)
        tax = abs(adjustment.vat_amount_minor or 0)
        total = subtotal + tax
        quantity = abs(adjustment.lessons_difference)

        guardian_id = self.student_repository.get_primary_payer_guardian_id(adjustment.student_id)
        payer: Dict[str, Optional[str]] = (
            {"payer_guardian_id": guardian_id}
            if guardian_id
            else {"payer_student_id": adjustment.student_id}
        )

        related_invoice_id = adjustment.related_invoice_id
        if related_invoice_id is None and adjustment.term_id:
            related = self.invoice_repository.find_latest_term_invoice(
                org_id=adjustment.org_id, term_id=adjustment.term_id, **payer
            )
            related_invoice_id = related.id if related else None

        student = self.student_repository.get_by_id(adjustment.student_id)
        student_name = student.full_name if student else "Student"
        issue_date = datetime.now(timezone.utc).date()

        invoice = self.invoice_repository.create_with_items(
            org_id=adjustment.org_id,
            invoice_number=self.invoice_repository.next_invoice_number(
                adjustment.org_id, is_credit_note=is_credit_note
            ),
            status=InvoiceStatus.DRAFT.value,
            issue_date=issue_date,
            due_date=issue_date,
            currency_code=adjustment.currency_code,
            subtotal_minor=sign * subtotal,
            tax_minor=sign * tax,
            total_minor=sign * total,
            vat_rate=adjustment.vat_rate or 0,
            is_credit_note=is_credit_note,
            term_id=adjustment.term_id,
            adjustment_id=adjustment.id,
            related_invoice_id=related_invoice_id,
            idempotency_key=key,
            notes=self._document_notes(adjustment, is_credit_note),
            items=[
                {
                    "description": self._line_description(
                        adjustment, student_name, is_credit_note, quantity
                    ),
                    "quantity": quantity,
                    "unit_price_minor": sign * adjustment.lesson_rate_minor,
                    "amount_minor": sign * subtotal,
                    "student_id": adjustment.student_id,
                }
            ],
            **payer,
        )
        self.logger.info(
            "Issued %s %s for term adjustment %s (total %s)",
            "credit note" if is_credit_note else "invoice",
            invoice.invoice_number,
            adjustment.id,
            invoice.total_minor,
        )
        return invoice

    @staticmethod
    def _document_notes(adjustment: TermAdjustment, is_credit_note: bool) -> str:
        if not is_credit_note:
            return "Supplementary invoice for term adjustment - day/time change"
        if adjustment.adjustment_type == AdjustmentType.WITHDRAWAL.value:
            return "Credit note for term adjustment - withdrawal"
        return "Credit note for term adjustment - day/time change"

    @staticmethod
    def _line_description(
        adjustment: TermAdjustment, student_name: str, is_credit_note: bool, quantity: int
    ) -> str:
        rate = format_minor(adjustment.lesson_rate_minor, adjustment.currency_code)
        if not is_credit_note:
            return (
                f"Supplementary charge - {student_name} day change - "
                f"{_plural(quantity, 'additional lesson')} × {rate}"
            )
        if adjustment.adjustment_type == AdjustmentType.WITHDRAWAL.value:
            return (
                f"Term adjustment credit - {student_name} withdrawal - "
                f"{_plural(quantity, 'lesson')} × {rate}"
            )
        return (
            f"Term adjustment credit - {student_name} day change - "
            f"{_plural(quantity, 'lesson')} × {rate} (difference)"
        )

    @staticmethod
    def _summary(adjustment: TermAdjustment) -> Dict[str, Any]:
        return {
            "id": adjustment.id,
            "adjustment_type": adjustment.adjustment_type,
            "student_id": adjustment.student_id,
            "term_id": adjustment.term_id,
            "effective_date": adjustment.effective_date,
            "original_lessons_remaining": adjustment.original_lessons_remaining,
            "new_lessons_count": adjustment.new_lessons_count,
            "lessons_difference": adjustment.lessons_difference,
            "lesson_rate_minor": adjustment.lesson_rate_minor,
            "total_adjustment_minor": adjustment.total_adjustment_minor,
            "currency_code": adjustment.currency_code,
            "new_recurrence_id": adjustment.new_recurrence_id,
            "credit_note_invoice_id": adjustment.credit_note_invoice_id,
            "confirmed_by": adjustment.confirmed_by,
            "confirmed_at": adjustment.confirmed_at,
            "notes": adjustment.notes,
        }
