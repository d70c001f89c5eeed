# backend/app/services/term_adjustment_calculator.py
"""
Term adjustment preview.

Works out what withdrawing a student, or moving their weekly lesson to a new
day, would do for the rest of the term: which lessons remain, which would be
generated instead, and the financial difference. Nothing is changed apart
from storing the result as a ``draft`` term adjustment, which the workflow
service later confirms.
"""

from __future__ import annotations

from datetime import date, time
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.constants import DAY_NAMES, DEFAULT_LESSON_DURATION_MINUTES
from ..core.exceptions import NotFoundException, ValidationException
from ..core.timezone_utils import get_timezone, local_day_bounds_utc, to_local
from ..models.invoice import Invoice, InvoiceStatus
from ..models.lesson import Lesson
from ..models.term_adjustment import AdjustmentStatus, AdjustmentType
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..schemas.term_adjustment import TermAdjustmentPreviewRequest
from ..utils.money import tax_for_amount
from .base import BaseService
from .org_config_provider import OrgConfigProvider, build_org_config_provider
from .rate_resolver import RateResolution, RateSource, resolve_rate
from .recurrence_dates import (
    exclude_closures,
    generate_occurrences,
    python_to_wire_weekday,
    wire_to_python_weekday,
)
from .term_resolver import TermResolver, TermWindow

logger = logging.getLogger(__name__)


def _parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")[:2]
    return time(int(hours), int(minutes))


def _lesson_duration_minutes(lesson: Lesson) -> int:
    if lesson.start_at is None or lesson.end_at is None:
        return DEFAULT_LESSON_DURATION_MINUTES
    minutes = round((lesson.end_at - lesson.start_at).total_seconds() / 60)
    return minutes if minutes > 0 else DEFAULT_LESSON_DURATION_MINUTES


class TermAdjustmentCalculator(BaseService):
    """
    Service computing term adjustment previews.

    Organisation settings come from an injected ``OrgConfigProvider``; when
    none is given the database-backed provider is used.
    """

    def __init__(
        self,
        db: Session,
        config_provider: Optional[OrgConfigProvider] = None,
        term_resolver: Optional[TermResolver] = None,
    ):
        super().__init__(db)
        self.config_provider = build_org_config_provider(db, config_provider)
        self.term_resolver = term_resolver or TermResolver(db)
        self.organisation_repository = RepositoryFactory.create_organisation_repository(db)
        self.student_repository = RepositoryFactory.create_student_repository(db)
        self.recurrence_rule_repository = RepositoryFactory.create_recurrence_rule_repository(db)
        self.lesson_repository = RepositoryFactory.create_lesson_repository(db)
        self.invoice_repository = RepositoryFactory.create_invoice_repository(db)
        self.term_adjustment_repository = RepositoryFactory.create_term_adjustment_repository(db)

    @BaseService.measure_operation("preview_term_adjustment")
    def preview(self, request: TermAdjustmentPreviewRequest, actor_id: str) -> Dict[str, Any]:
        """
        Calculate an adjustment and store it as a draft.

        Args:
            request: Validated preview request
            actor_id: User requesting the preview

        Returns:
            Preview payload including the new draft's ``adjustment_id``

        Raises:
            NotFoundException: Recurrence or student not in the organisation
            ValidationException: No lessons left to adjust, or a day change
                without a new day of week
        """
        org_id = request.org_id
        adjustment_type = AdjustmentType(request.adjustment_type)

        window = self.term_resolver.resolve(org_id, request.effective_date, request.term_id)
        billing = self.config_provider.get_billing_settings(org_id)

        recurrence = self.recurrence_rule_repository.get_for_org(request.recurrence_id, org_id)
        if recurrence is None:
            raise NotFoundException(
                "Lesson series not found",
                code="RECURRENCE_NOT_FOUND",
                details={"recurrence_id": request.recurrence_id},
            )
        student = self.student_repository.get_for_org(request.student_id, org_id)
        if student is None:
            raise NotFoundException(
                "Student not found",
                code="STUDENT_NOT_FOUND",
                details={"student_id": request.student_id},
            )

        tz = get_timezone(recurrence.timezone, default=billing.timezone)
        starts_from, starts_before = local_day_bounds_utc(
            request.effective_date, window.term_end_date, tz
        )
        remaining = self.lesson_repository.get_scheduled_for_recurrence(
            org_id=org_id,
            recurrence_id=recurrence.id,
            starts_from=starts_from,
            starts_before=starts_before,
        )
        if not remaining:
            raise ValidationException(
                "No remaining scheduled lessons in this series",
                code="NO_REMAINING_LESSONS",
                details={
                    "recurrence_id": recurrence.id,
                    "effective_date": request.effective_date.isoformat(),
                    "term_end_date": window.term_end_date.isoformat(),
                },
            )

        first_lesson = remaining[0]
        first_local = to_local(first_lesson.start_at, tz)
        original_day = DAY_NAMES[python_to_wire_weekday(first_local.weekday())]
        original_time = first_local.strftime("%H:%M")
        original_dates = [to_local(lesson.start_at, tz).date() for lesson in remaining]
        duration_minutes = _lesson_duration_minutes(first_lesson)

        rate = self._resolve_rate(org_id, duration_minutes, request, student.default_rate_card_id)

        new_day: Optional[str] = None
        new_time: Optional[str] = None
        new_dates: List[date] = []
        if adjustment_type is AdjustmentType.DAY_CHANGE:
            if request.new_day_of_week is None:
                raise ValidationException(
                    "new_day_of_week is required for day_change",
                    code="NEW_DAY_REQUIRED",
                )
            new_day = DAY_NAMES[request.new_day_of_week]
            new_time = request.new_start_time or original_time
            candidates = generate_occurrences(
                request.effective_date,
                window.term_end_date,
                wire_to_python_weekday(request.new_day_of_week),
            )
            closures = self.config_provider.get_closure_dates(
                org_id, request.effective_date, window.term_end_date
            )
            target_location_id = request.new_location_id or first_lesson.location_id
            new_dates = exclude_closures(candidates, closures, target_location_id)

        original_remaining = len(remaining)
        new_count = len(new_dates)
        lessons_difference = original_remaining - new_count

        adjustment_amount = lessons_difference * rate.amount_minor
        vat_rate = billing.effective_vat_rate
        vat_amount = tax_for_amount(adjustment_amount, vat_rate) if billing.vat_enabled else 0
        total_adjustment = adjustment_amount + vat_amount

        existing_invoice = self._find_term_invoice(org_id, window, student.id)

        teacher_name = self.organisation_repository.get_profile_name(first_lesson.teacher_user_id)
        location_name = self.organisation_repository.get_location_name(first_lesson.location_id)
        new_teacher_name = teacher_name
        if request.new_teacher_id and request.new_teacher_id != first_lesson.teacher_user_id:
            new_teacher_name = self.organisation_repository.get_profile_name(request.new_teacher_id)
        new_location_name = location_name
        if request.new_location_id and request.new_location_id != first_lesson.location_id:
            new_location_name = self.organisation_repository.get_location_name(
                request.new_location_id
            )

        with self.transaction():
            draft = self.term_adjustment_repository.create(
                org_id=org_id,
                adjustment_type=adjustment_type.value,
                student_id=student.id,
                term_id=window.term_id,
                term_end_date=window.term_end_date,
                effective_date=request.effective_date,
                original_recurrence_id=recurrence.id,
                original_lessons_remaining=original_remaining,
                original_day_of_week=original_day,
                original_time=_parse_hhmm(original_time),
                original_lesson_dates=[day.isoformat() for day in original_dates],
                original_teacher_id=first_lesson.teacher_user_id,
                original_location_id=first_lesson.location_id,
                lesson_duration_mins=duration_minutes,
                new_lessons_count=new_count if adjustment_type is AdjustmentType.DAY_CHANGE else None,
                new_day_of_week=new_day,
                new_time=_parse_hhmm(new_time) if new_time else None,
                new_teacher_id=request.new_teacher_id,
                new_location_id=request.new_location_id,
                new_lesson_dates=[day.isoformat() for day in new_dates],
                lesson_rate_minor=rate.amount_minor,
                rate_source=rate.source.value,
                lessons_difference=lessons_difference,
                adjustment_amount_minor=adjustment_amount,
                vat_rate=vat_rate,
                vat_amount_minor=vat_amount,
                total_adjustment_minor=total_adjustment,
                currency_code=billing.currency_code,
                related_invoice_id=existing_invoice.id if existing_invoice else None,
                status=AdjustmentStatus.DRAFT.value,
                notes=request.notes,
                created_by=actor_id,
            )

        prometheus_metrics.record_term_adjustment("preview", adjustment_type.value)
        self.log_operation(
            "preview_term_adjustment",
            adjustment_id=draft.id,
            org_id=org_id,
            lessons_difference=lessons_difference,
        )

        return {
            "adjustment_id": draft.id,
            "student_name": student.full_name,
            "term_id": window.term_id,
            "term_name": window.term_name,
            "term_end_date": window.term_end_date,
            "effective_date": request.effective_date,
            "adjustment_type": adjustment_type.value,
            "original_day": original_day,
            "original_time": original_time,
            "original_remaining_lessons": original_remaining,
            "original_remaining_dates": original_dates,
            "teacher_name": teacher_name,
            "location_name": location_name,
            "new_day": new_day,
            "new_time": new_time,
            "new_lesson_count": new_count,
            "new_lesson_dates": new_dates,
            "new_teacher_name": new_teacher_name,
            "new_location_name": new_location_name,
            "lesson_rate_minor": rate.amount_minor,
            "rate_source": rate.source.value,
            "rate_low_confidence": rate.low_confidence,
            "has_rate_card": rate.source
            not in (RateSource.MANUAL_OVERRIDE, RateSource.FALLBACK),
            "lessons_difference": lessons_difference,
            "adjustment_amount_minor": adjustment_amount,
            "vat_amount_minor": vat_amount,
            "total_adjustment_minor": total_adjustment,
            "currency_code": billing.currency_code,
            "can_adjust_draft": bool(
                existing_invoice and existing_invoice.status == InvoiceStatus.DRAFT.value
            ),
            "existing_term_invoice": self._invoice_summary(existing_invoice),
        }

    def _resolve_rate(
        self,
        org_id: str,
        duration_minutes: int,
        request: TermAdjustmentPreviewRequest,
        student_rate_card_id: Optional[str],
    ) -> RateResolution:
        rate_cards = list(self.config_provider.get_rate_cards(org_id))
        rate = resolve_rate(
            duration_minutes,
            rate_cards,
            override_minor=request.manual_rate_minor,
            student_rate_card_id=student_rate_card_id,
        )
        if rate.low_confidence:
            prometheus_metrics.record_rate_fallback(rate.source.value)
            self.logger.warning(
                "Low confidence lesson rate for org %s: %s via %s (%s rate cards, %s min)",
                org_id,
                rate.amount_minor,
                rate.source.value,
                len(rate_cards),
                duration_minutes,
            )
        return rate

    def _find_term_invoice(
        self, org_id: str, window: TermWindow, student_id: str
    ) -> Optional[Invoice]:
        """Latest regular invoice for the term, billed to the primary payer or the student."""
        if window.term_id is None:
            return None
        invoice: Optional[Invoice] = None
        guardian_id = self.student_repository.get_primary_payer_guardian_id(student_id)
        if guardian_id:
            invoice = self.invoice_repository.find_latest_term_invoice(
                org_id=org_id, term_id=window.term_id, payer_guardian_id=guardian_id
            )
        if invoice is None:
            invoice = self.invoice_repository.find_latest_term_invoice(
                org_id=org_id, term_id=window.term_id, payer_student_id=student_id
            )
        return invoice

    @staticmethod
    def _invoice_summary(invoice: Optional[Invoice]) -> Optional[Dict[str, Any]]:
        if invoice is None:
            return None
        return {
            "id": invoice.id,
            "invoice_number": invoice.invoice_number,
            "total_minor": invoice.total_minor,
            "status": invoice.status,
        }
