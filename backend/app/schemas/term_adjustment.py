"""Schemas for the term adjustment API."""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import Field

from ..models.term_adjustment import AdjustmentType
from ._strict_base import StrictModel, StrictRequestModel

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class TermAdjustmentPreviewRequest(StrictRequestModel):
    action: Literal["preview"]
    org_id: str = Field(min_length=1)
    adjustment_type: AdjustmentType
    student_id: str = Field(min_length=1)
    recurrence_id: str = Field(min_length=1)
    effective_date: date
    term_id: Optional[str] = None
    # 0=Sunday .. 6=Saturday
    new_day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    new_start_time: Optional[str] = Field(default=None, pattern=HHMM_PATTERN)
    new_teacher_id: Optional[str] = None
    new_location_id: Optional[str] = None
    manual_rate_minor: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=2000)


class TermAdjustmentConfirmRequest(StrictRequestModel):
    action: Literal["confirm"]
    org_id: str = Field(min_length=1)
    adjustment_id: str = Field(min_length=1)
    generate_credit_note: bool = True


TermAdjustmentRequest = Annotated[
    Union[TermAdjustmentPreviewRequest, TermAdjustmentConfirmRequest],
    Field(discriminator="action"),
]


class ExistingTermInvoice(StrictModel):
    id: str
    invoice_number: str
    total_minor: int
    status: str


class TermAdjustmentPreviewResponse(StrictModel):
    adjustment_id: str
    student_name: str
    term_id: Optional[str] = None
    term_name: str
    term_end_date: date
    effective_date: date
    adjustment_type: AdjustmentType
    original_day: str
    original_time: str
    original_remaining_lessons: int
    original_remaining_dates: List[date]
    teacher_name: Optional[str] = None
    location_name: Optional[str] = None
    new_day: Optional[str] = None
    new_time: Optional[str] = None
    new_lesson_count: int
    new_lesson_dates: List[date]
    new_teacher_name: Optional[str] = None
    new_location_name: Optional[str] = None
    lesson_rate_minor: int
    rate_source: str
    rate_low_confidence: bool
    has_rate_card: bool
    lessons_difference: int
    adjustment_amount_minor: int
    vat_amount_minor: int
    total_adjustment_minor: int
    currency_code: str
    can_adjust_draft: bool
    existing_term_invoice: Optional[ExistingTermInvoice] = None


class TermAdjustmentConfirmResponse(StrictModel):
    success: bool
    adjustment_id: str
    cancelled_count: int
    created_count: int
    new_recurrence_id: Optional[str] = None
    credit_note_invoice_id: Optional[str] = None


class TermAdjustmentSummary(StrictModel):
    id: str
    adjustment_type: AdjustmentType
    student_id: str
    term_id: Optional[str] = None
    effective_date: date
    original_lessons_remaining: int
    new_lessons_count: Optional[int] = None
    lessons_difference: int
    lesson_rate_minor: int
    total_adjustment_minor: int
    currency_code: str
    new_recurrence_id: Optional[str] = None
    credit_note_invoice_id: Optional[str] = None
    confirmed_by: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    notes: Optional[str] = None


class TermAdjustmentListResponse(StrictModel):
    items: List[TermAdjustmentSummary]
    total: int


__all__ = [
    "ExistingTermInvoice",
    "TermAdjustmentConfirmRequest",
    "TermAdjustmentConfirmResponse",
    "TermAdjustmentListResponse",
    "TermAdjustmentPreviewRequest",
    "TermAdjustmentPreviewResponse",
    "TermAdjustmentRequest",
    "TermAdjustmentSummary",
]
