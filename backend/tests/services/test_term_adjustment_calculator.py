from datetime import date
from decimal import Decimal

import pytest

from app.core.exceptions import NotFoundException, ValidationException
from app.models import AdjustmentStatus, ClosureDate, Location, RateCard, TermAdjustment
from app.schemas.term_adjustment import TermAdjustmentPreviewRequest
from app.services.term_adjustment_calculator import TermAdjustmentCalculator
from tests.helpers.scheduling import (
    add_closure,
    add_primary_payer,
    add_term_invoice,
    seed_weekly_series,
)

TUESDAY_EFFECTIVE = date(2025, 1, 7)
THURSDAY = 4  # 0=Sunday


def _request(series, **overrides) -> TermAdjustmentPreviewRequest:
    fields = {
        "action": "preview",
        "org_id": series.org.id,
        "adjustment_type": "withdrawal",
        "student_id": series.student.id,
        "recurrence_id": series.rule.id,
        "effective_date": TUESDAY_EFFECTIVE,
    }
    fields.update(overrides)
    return TermAdjustmentPreviewRequest(**fields)


class TestDayChangePreview:
    def test_move_to_thursday_with_one_closure(self, db):
        series = seed_weekly_series(db)
        add_closure(db, series.org, date(2025, 1, 23))

        preview = TermAdjustmentCalculator(db).preview(
            _request(series, adjustment_type="day_change", new_day_of_week=THURSDAY),
            series.operator.id,
        )

        assert preview["original_remaining_lessons"] == 6
        assert preview["original_day"] == "Tuesday"
        assert preview["original_time"] == "16:00"
        assert preview["new_day"] == "Thursday"
        assert preview["new_time"] == "16:00"
        assert preview["new_lesson_count"] == 5
        assert date(2025, 1, 23) not in preview["new_lesson_dates"]
        assert all(day.weekday() == 3 for day in preview["new_lesson_dates"])
        assert preview["lessons_difference"] == 1
        assert preview["lesson_rate_minor"] == 3500
        assert preview["adjustment_amount_minor"] == 3500
        assert preview["vat_amount_minor"] == 0
        assert preview["total_adjustment_minor"] == 3500
        assert preview["currency_code"] == "GBP"
        assert preview["term_name"] == "Spring Term"

    def test_closure_at_other_location_does_not_apply(self, db):
        series = seed_weekly_series(db)
        annexe = Location(org_id=series.org.id, name="Annexe")
        db.add(annexe)
        db.commit()
        add_closure(db, series.org, date(2025, 1, 23), location_id=annexe.id, all_locations=False)

        preview = TermAdjustmentCalculator(db).preview(
            _request(series, adjustment_type="day_change", new_day_of_week=THURSDAY),
            series.operator.id,
        )

        assert preview["new_lesson_count"] == 6
        assert preview["lessons_difference"] == 0
        assert preview["adjustment_amount_minor"] == 0

    def test_more_new_lessons_gives_negative_difference(self, db):
        series = seed_weekly_series(db, weeks=5, term_window=(date(2025, 1, 6), date(2025, 2, 13)))

        preview = TermAdjustmentCalculator(db).preview(
            _request(series, adjustment_type="day_change", new_day_of_week=THURSDAY, new_start_time="17:30"),
            series.operator.id,
        )

        assert preview["original_remaining_lessons"] == 5
        assert preview["new_lesson_count"] == 6
        assert preview["lessons_difference"] == -1
        assert preview["adjustment_amount_minor"] == -3500
        assert preview["new_time"] == "17:30"

    def test_day_change_requires_new_day(self, db):
        series = seed_weekly_series(db)

        with pytest.raises(ValidationException):
            TermAdjustmentCalculator(db).preview(
                _request(series, adjustment_type="day_change"), series.operator.id
            )

        assert db.query(TermAdjustment).count() == 0


class TestWithdrawalPreview:
    def test_withdrawal_with_vat(self, db):
        series = seed_weekly_series(
            db,
            weeks=4,
            rate_minor=5000,
            vat_enabled=True,
            vat_rate=Decimal("20"),
        )

        preview = TermAdjustmentCalculator(db).preview(_request(series), series.operator.id)

        assert preview["new_lesson_count"] == 0
        assert preview["new_lesson_dates"] == []
        assert preview["new_day"] is None
        assert preview["lessons_difference"] == 4
        assert preview["adjustment_amount_minor"] == 20000
        assert preview["vat_amount_minor"] == 4000
        assert preview["total_adjustment_minor"] == 24000

    def test_draft_persists_calculation(self, db):
        series = seed_weekly_series(db, weeks=4, rate_minor=5000)

        preview = TermAdjustmentCalculator(db).preview(
            _request(series, notes="Moving away"), series.operator.id
        )

        draft = db.query(TermAdjustment).filter_by(id=preview["adjustment_id"]).one()
        assert draft.status == AdjustmentStatus.DRAFT.value
        assert draft.org_id == series.org.id
        assert draft.original_lessons_remaining == 4
        assert draft.lessons_difference == 4
        assert draft.lesson_rate_minor == 5000
        assert draft.term_id == series.term.id
        assert draft.term_end_date == date(2025, 2, 13)
        assert draft.lesson_duration_mins == 30
        assert draft.notes == "Moving away"
        assert draft.created_by == series.operator.id
        assert len(draft.original_lesson_dates) == 4

    def test_lessons_before_effective_date_are_not_counted(self, db):
        series = seed_weekly_series(db, weeks=6, past_weeks=3)

        preview = TermAdjustmentCalculator(db).preview(
            _request(series, effective_date=date(2025, 1, 14)), series.operator.id
        )

        assert preview["original_remaining_lessons"] == 5
        assert preview["original_remaining_dates"][0] == date(2025, 1, 14)

    def test_preview_does_not_touch_lessons(self, db):
        series = seed_weekly_series(db)

        TermAdjustmentCalculator(db).preview(_request(series), series.operator.id)

        for lesson in series.lessons:
            db.refresh(lesson)
            assert lesson.status == "scheduled"


class TestRates:
    def test_manual_rate_override(self, db):
        series = seed_weekly_series(db, weeks=2)

        preview = TermAdjustmentCalculator(db).preview(
            _request(series, manual_rate_minor=4200), series.operator.id
        )

        assert preview["lesson_rate_minor"] == 4200
        assert preview["rate_source"] == "manual_override"
        assert preview["rate_low_confidence"] is False
        assert preview["has_rate_card"] is False
        assert preview["adjustment_amount_minor"] == 8400

    def test_fallback_rate_is_flagged(self, db):
        series = seed_weekly_series(db, weeks=2, rate_minor=None)

        preview = TermAdjustmentCalculator(db).preview(_request(series), series.operator.id)

        assert preview["lesson_rate_minor"] == 3000
        assert preview["rate_source"] == "fallback"
        assert preview["rate_low_confidence"] is True
        assert preview["has_rate_card"] is False

    def test_student_rate_card_is_preferred(self, db):
        series = seed_weekly_series(db, weeks=2)
        sibling_rate = RateCard(org_id=series.org.id, duration_mins=30, rate_amount=2800)
        db.add(sibling_rate)
        db.flush()
        series.student.default_rate_card_id = sibling_rate.id
        db.commit()

        preview = TermAdjustmentCalculator(db).preview(_request(series), series.operator.id)

        assert preview["lesson_rate_minor"] == 2800
        assert preview["rate_source"] == "student_rate_card"
        assert preview["rate_low_confidence"] is False


class TestLookups:
    def test_unknown_recurrence(self, db):
        series = seed_weekly_series(db)

        with pytest.raises(NotFoundException):
            TermAdjustmentCalculator(db).preview(
                _request(series, recurrence_id="01JBOGUSRECURRENCE00000000"), series.operator.id
            )

    def test_unknown_student(self, db):
        series = seed_weekly_series(db)

        with pytest.raises(NotFoundException):
            TermAdjustmentCalculator(db).preview(
                _request(series, student_id="01JBOGUSSTUDENT00000000000"), series.operator.id
            )

    def test_no_remaining_lessons_rejected_before_any_write(self, db):
        series = seed_weekly_series(db)

        with pytest.raises(ValidationException) as exc_info:
            TermAdjustmentCalculator(db).preview(
                _request(series, effective_date=date(2025, 6, 2), term_id=series.term.id),
                series.operator.id,
            )

        assert exc_info.value.message == "No remaining scheduled lessons in this series"
        assert db.query(TermAdjustment).count() == 0

    def test_existing_term_invoice_for_primary_payer(self, db):
        series = seed_weekly_series(db)
        guardian = add_primary_payer(db, series)
        invoice = add_term_invoice(db, series, guardian=guardian, status="draft")

        preview = TermAdjustmentCalculator(db).preview(_request(series), series.operator.id)

        assert preview["existing_term_invoice"] == {
            "id": invoice.id,
            "invoice_number": "INV-00001",
            "total_minor": 21000,
            "status": "draft",
        }
        assert preview["can_adjust_draft"] is True

    def test_existing_term_invoice_billed_to_student(self, db):
        series = seed_weekly_series(db)
        add_primary_payer(db, series)
        invoice = add_term_invoice(db, series, status="sent")

        preview = TermAdjustmentCalculator(db).preview(_request(series), series.operator.id)

        assert preview["existing_term_invoice"]["id"] == invoice.id
        assert preview["can_adjust_draft"] is False

    def test_no_invoice_lookup_without_term(self, db):
        series = seed_weekly_series(db, weeks=2, term_window=None)

        preview = TermAdjustmentCalculator(db).preview(_request(series), series.operator.id)

        assert preview["term_id"] is None
        assert preview["term_name"] == "Custom period"
        assert preview["term_end_date"] == date(2025, 4, 7)
        assert preview["existing_term_invoice"] is None

    def test_display_names(self, db):
        series = seed_weekly_series(db, weeks=2)

        preview = TermAdjustmentCalculator(db).preview(_request(series), series.operator.id)

        assert preview["student_name"] == "Amelia Jones"
        assert preview["teacher_name"] == "Tom Teacher"
        assert preview["location_name"] == "Main Studio"
        assert preview["new_teacher_name"] == "Tom Teacher"


class TestInjectedConfig:
    def test_static_provider_supplies_rates_tax_and_closures(self, db, static_config):
        series = seed_weekly_series(db, rate_minor=None)
        provider = static_config(
            org_id=series.org.id,
            vat_enabled=True,
            vat_rate=Decimal("20"),
            rate_cards=[RateCard(id="rc", duration_mins=30, rate_amount=4000, is_default=False)],
            closures=[ClosureDate(date=date(2025, 1, 16), applies_to_all_locations=True)],
        )

        preview = TermAdjustmentCalculator(db, config_provider=provider).preview(
            _request(series, adjustment_type="day_change", new_day_of_week=THURSDAY),
            series.operator.id,
        )

        assert provider.closure_requests == [(series.org.id, TUESDAY_EFFECTIVE, date(2025, 2, 13))]
        assert preview["new_lesson_count"] == 5
        assert preview["lesson_rate_minor"] == 4000
        assert preview["adjustment_amount_minor"] == 4000
        assert preview["vat_amount_minor"] == 800
        assert preview["total_adjustment_minor"] == 4800
