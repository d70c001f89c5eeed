from datetime import date, datetime, time, timezone
from decimal import Decimal

import pytest

from app.core.exceptions import AdjustmentAlreadyProcessedException, NotFoundException
from app.core.timezone_utils import ensure_utc
from app.models import (
    AttendanceRecord,
    AuditLog,
    Invoice,
    Lesson,
    LessonParticipant,
    Location,
    RecurrenceRule,
    TermAdjustment,
)
from app.repositories.factory import RepositoryFactory
from app.schemas.term_adjustment import TermAdjustmentPreviewRequest
from app.services.term_adjustment_calculator import TermAdjustmentCalculator
from app.services.term_adjustment_workflow import TermAdjustmentWorkflow, invoice_idempotency_key
from tests.helpers.scheduling import (
    add_attendance,
    add_closure,
    add_primary_payer,
    add_term_invoice,
    london_to_utc,
    seed_weekly_series,
)

THURSDAY = 4


def _preview(db, series, **overrides):
    fields = {
        "action": "preview",
        "org_id": series.org.id,
        "adjustment_type": "withdrawal",
        "student_id": series.student.id,
        "recurrence_id": series.rule.id,
        "effective_date": date(2025, 1, 7),
    }
    fields.update(overrides)
    return TermAdjustmentCalculator(db).preview(
        TermAdjustmentPreviewRequest(**fields), series.operator.id
    )


def _confirm(db, series, adjustment_id, **kwargs):
    return TermAdjustmentWorkflow(db).confirm(
        series.org.id, adjustment_id, series.operator.id, **kwargs
    )


def _statuses(db, lessons):
    return [db.query(Lesson).filter_by(id=lesson.id).one().status for lesson in lessons]


class TestWithdrawal:
    @pytest.fixture
    def series(self, db):
        return seed_weekly_series(
            db, weeks=4, rate_minor=5000, vat_enabled=True, vat_rate=Decimal("20")
        )

    def test_cancels_remaining_lessons_only(self, db, series):
        preview = _preview(db, series)

        result = _confirm(db, series, preview["adjustment_id"])

        assert result["success"] is True
        assert result["cancelled_count"] == 4
        assert result["created_count"] == 0
        assert result["new_recurrence_id"] is None
        assert _statuses(db, series.lessons) == ["cancelled"] * 4
        assert _statuses(db, series.past_lessons) == ["completed"]

        cancelled = db.query(Lesson).filter_by(id=series.lessons[0].id).one()
        assert cancelled.cancellation_reason == "Term adjustment"
        assert cancelled.cancelled_by == series.operator.id
        assert cancelled.cancelled_at is not None

    def test_truncates_recurrence_rule(self, db, series):
        preview = _preview(db, series)

        _confirm(db, series, preview["adjustment_id"])

        rule = db.query(RecurrenceRule).filter_by(id=series.rule.id).one()
        assert rule.end_date == date(2025, 1, 6)

    def test_attendance_for_cancelled_lessons_is_removed(self, db, series):
        add_attendance(db, series, series.past_lessons + series.lessons[:2])
        preview = _preview(db, series)

        _confirm(db, series, preview["adjustment_id"])

        remaining = db.query(AttendanceRecord).all()
        assert [record.lesson_id for record in remaining] == [series.past_lessons[0].id]

    def test_issues_negative_credit_note(self, db, series):
        preview = _preview(db, series)

        result = _confirm(db, series, preview["adjustment_id"])

        credit_note = db.query(Invoice).filter_by(id=result["credit_note_invoice_id"]).one()
        assert credit_note.is_credit_note is True
        assert credit_note.invoice_number == "CN-00001"
        assert credit_note.subtotal_minor == -20000
        assert credit_note.tax_minor == -4000
        assert credit_note.total_minor == -24000
        assert credit_note.payer_student_id == series.student.id
        assert credit_note.adjustment_id == preview["adjustment_id"]
        assert credit_note.idempotency_key == invoice_idempotency_key(preview["adjustment_id"])
        assert credit_note.notes == "Credit note for term adjustment - withdrawal"

        [item] = credit_note.items
        assert item.quantity == 4
        assert item.unit_price_minor == -5000
        assert item.amount_minor == -20000
        assert item.description == (
            "Term adjustment credit - Amelia Jones withdrawal - 4 lessons × £50.00"
        )

    def test_credit_note_links_term_invoice_and_payer(self, db, series):
        guardian = add_primary_payer(db, series)
        term_invoice = add_term_invoice(db, series, guardian=guardian)
        preview = _preview(db, series)

        result = _confirm(db, series, preview["adjustment_id"])

        credit_note = db.query(Invoice).filter_by(id=result["credit_note_invoice_id"]).one()
        assert credit_note.related_invoice_id == term_invoice.id
        assert credit_note.payer_guardian_id == guardian.id
        assert credit_note.payer_student_id is None

    def test_no_document_when_not_requested(self, db, series):
        preview = _preview(db, series)

        result = _confirm(db, series, preview["adjustment_id"], generate_credit_note=False)

        assert result["credit_note_invoice_id"] is None
        assert result["cancelled_count"] == 4
        assert db.query(Invoice).count() == 0

    def test_zero_rate_issues_no_document(self, db, series):
        preview = _preview(db, series, manual_rate_minor=0)
        assert preview["lessons_difference"] == 4
        assert preview["adjustment_amount_minor"] == 0

        result = _confirm(db, series, preview["adjustment_id"])

        assert result["credit_note_invoice_id"] is None
        assert result["cancelled_count"] == 4
        assert db.query(Invoice).count() == 0
        adjustment = db.query(TermAdjustment).filter_by(id=preview["adjustment_id"]).one()
        assert adjustment.status == "confirmed"
        assert adjustment.credit_note_invoice_id is None

    def test_rule_starting_on_effective_date_is_superseded(self, db):
        series = seed_weekly_series(db, weeks=4, past_weeks=0)
        preview = _preview(db, series)

        _confirm(db, series, preview["adjustment_id"])

        rule = db.query(RecurrenceRule).filter_by(id=series.rule.id).one()
        assert rule.start_date == date(2025, 1, 7)
        assert rule.end_date == date(2025, 1, 6)
        assert rule.superseded is True

    def test_marks_adjustment_confirmed_and_audits(self, db, series):
        preview = _preview(db, series)

        result = _confirm(db, series, preview["adjustment_id"], actor_role="owner")

        adjustment = db.query(TermAdjustment).filter_by(id=preview["adjustment_id"]).one()
        assert adjustment.status == "confirmed"
        assert adjustment.confirmed_by == series.operator.id
        assert adjustment.confirmed_at is not None
        assert adjustment.credit_note_invoice_id == result["credit_note_invoice_id"]
        assert sorted(adjustment.cancelled_lesson_ids) == sorted(lesson.id for lesson in series.lessons)

        [entry] = RepositoryFactory.create_audit_repository(db).list_for_entity(
            "term_adjustment", adjustment.id, org_id=series.org.id
        )
        assert entry.entity_type == "term_adjustment"
        assert entry.action == "confirm"
        assert entry.actor_id == series.operator.id
        assert entry.actor_role == "owner"
        assert entry.org_id == series.org.id
        assert entry.before == {"status": "draft"}
        assert entry.after["status"] == "confirmed"
        assert entry.after["cancelled_count"] == 4

    def test_lessons_after_term_end_are_cancelled_too(self, db):
        series = seed_weekly_series(db, weeks=8)
        preview = _preview(db, series)
        assert preview["original_remaining_lessons"] == 6

        result = _confirm(db, series, preview["adjustment_id"])

        assert result["cancelled_count"] == 8
        assert _statuses(db, series.lessons) == ["cancelled"] * 8


class TestDayChange:
    def test_regenerates_series_on_new_day(self, db):
        series = seed_weekly_series(db)
        add_closure(db, series.org, date(2025, 1, 23))
        preview = _preview(db, series, adjustment_type="day_change", new_day_of_week=THURSDAY)

        result = _confirm(db, series, preview["adjustment_id"])

        assert result["cancelled_count"] == 6
        assert result["created_count"] == 5

        rule = db.query(RecurrenceRule).filter_by(id=result["new_recurrence_id"]).one()
        assert rule.days_of_week == [THURSDAY]
        assert rule.start_date == date(2025, 1, 7)
        assert rule.end_date == date(2025, 2, 13)
        assert rule.timezone == "Europe/London"

        created = (
            db.query(Lesson)
            .filter_by(recurrence_id=rule.id)
            .order_by(Lesson.start_at.asc())
            .all()
        )
        expected = [date(2025, 1, 9), date(2025, 1, 16), date(2025, 1, 30), date(2025, 2, 6), date(2025, 2, 13)]
        assert [ensure_utc(lesson.start_at) for lesson in created] == [
            london_to_utc(day, time(16, 0)) for day in expected
        ]
        for lesson in created:
            assert lesson.status == "scheduled"
            assert lesson.teacher_user_id == series.teacher.id
            assert lesson.location_id == series.location.id
            assert lesson.room_id == "room-a"
            assert lesson.title == "Piano - Amelia Jones"
            assert (lesson.end_at - lesson.start_at).total_seconds() == 30 * 60

        participants = (
            db.query(LessonParticipant)
            .filter(LessonParticipant.lesson_id.in_([lesson.id for lesson in created]))
            .all()
        )
        assert {p.student_id for p in participants} == {series.student.id}
        assert len(participants) == 5

    def test_unknown_series_timezone_uses_organisation_default(self, db):
        series = seed_weekly_series(db)
        series.org.default_timezone = "America/New_York"
        series.rule.timezone = "Not/AZone"
        db.flush()
        preview = _preview(db, series, adjustment_type="day_change", new_day_of_week=THURSDAY)
        assert preview["original_time"] == "11:00"

        result = _confirm(db, series, preview["adjustment_id"])

        created = (
            db.query(Lesson)
            .filter_by(recurrence_id=result["new_recurrence_id"])
            .order_by(Lesson.start_at.asc())
            .all()
        )
        assert result["created_count"] == 6
        # 11:00 in New York is 16:00 UTC in winter
        assert ensure_utc(created[0].start_at) == datetime(2025, 1, 9, 16, 0, tzinfo=timezone.utc)

    def test_credit_for_one_fewer_lesson(self, db):
        series = seed_weekly_series(db)
        add_closure(db, series.org, date(2025, 1, 23))
        preview = _preview(db, series, adjustment_type="day_change", new_day_of_week=THURSDAY)

        result = _confirm(db, series, preview["adjustment_id"])

        credit_note = db.query(Invoice).filter_by(id=result["credit_note_invoice_id"]).one()
        assert credit_note.total_minor == -3500
        assert credit_note.notes == "Credit note for term adjustment - day/time change"
        assert credit_note.items[0].description == (
            "Term adjustment credit - Amelia Jones day change - 1 lesson × £35.00 (difference)"
        )

    def test_new_time_teacher_and_location(self, db):
        series = seed_weekly_series(db)
        annexe = Location(org_id=series.org.id, name="Annexe")
        db.add(annexe)
        db.commit()
        preview = _preview(
            db,
            series,
            adjustment_type="day_change",
            new_day_of_week=THURSDAY,
            new_start_time="17:30",
            new_location_id=annexe.id,
        )

        result = _confirm(db, series, preview["adjustment_id"])

        created = db.query(Lesson).filter_by(recurrence_id=result["new_recurrence_id"]).all()
        assert len(created) == 6
        for lesson in created:
            assert lesson.location_id == annexe.id
            assert lesson.room_id is None
            assert ensure_utc(lesson.start_at).hour == 17
            assert ensure_utc(lesson.start_at).minute == 30
        assert result["credit_note_invoice_id"] is None

    def test_supplementary_invoice_for_extra_lessons(self, db):
        series = seed_weekly_series(db, weeks=5)
        preview = _preview(db, series, adjustment_type="day_change", new_day_of_week=THURSDAY)
        assert preview["lessons_difference"] == -1

        result = _confirm(db, series, preview["adjustment_id"])

        invoice = db.query(Invoice).filter_by(id=result["credit_note_invoice_id"]).one()
        assert invoice.is_credit_note is False
        assert invoice.invoice_number == "INV-00001"
        assert invoice.total_minor == 3500
        assert invoice.items[0].unit_price_minor == 3500
        assert invoice.items[0].description == (
            "Supplementary charge - Amelia Jones day change - 1 additional lesson × £35.00"
        )
        assert invoice.notes == "Supplementary invoice for term adjustment - day/time change"


class TestConfirmOnce:
    def test_second_confirm_is_rejected(self, db):
        series = seed_weekly_series(db, weeks=2)
        preview = _preview(db, series)
        _confirm(db, series, preview["adjustment_id"])

        with pytest.raises(AdjustmentAlreadyProcessedException):
            _confirm(db, series, preview["adjustment_id"])

        assert db.query(Invoice).count() == 1
        assert db.query(AuditLog).count() == 1

    def test_unknown_adjustment(self, db):
        series = seed_weekly_series(db, weeks=2)

        with pytest.raises(NotFoundException):
            _confirm(db, series, "01JBOGUSADJUSTMENT00000000")

    def test_adjustment_from_another_org_is_not_found(self, db):
        series = seed_weekly_series(db, weeks=2)
        other = seed_weekly_series(db, weeks=2)
        preview = _preview(db, series)

        with pytest.raises(NotFoundException):
            TermAdjustmentWorkflow(db).confirm(other.org.id, preview["adjustment_id"], other.operator.id)

    def test_existing_document_is_reused(self, db):
        series = seed_weekly_series(db, weeks=2)
        preview = _preview(db, series)
        prior = Invoice(
            org_id=series.org.id,
            invoice_number="CN-00001",
            issue_date=date(2025, 1, 7),
            due_date=date(2025, 1, 7),
            currency_code="GBP",
            subtotal_minor=-7000,
            total_minor=-7000,
            is_credit_note=True,
            payer_student_id=series.student.id,
            idempotency_key=invoice_idempotency_key(preview["adjustment_id"]),
        )
        db.add(prior)
        db.commit()

        result = _confirm(db, series, preview["adjustment_id"])

        assert result["credit_note_invoice_id"] == prior.id
        assert db.query(Invoice).count() == 1

    def test_failure_rolls_back_everything(self, db, monkeypatch):
        series = seed_weekly_series(db, weeks=2)
        preview = _preview(db, series)
        workflow = TermAdjustmentWorkflow(db)

        def explode(**kwargs):
            raise RuntimeError("invoice store unavailable")

        monkeypatch.setattr(workflow.invoice_repository, "create_with_items", explode)

        with pytest.raises(RuntimeError):
            workflow.confirm(series.org.id, preview["adjustment_id"], series.operator.id)

        adjustment = db.query(TermAdjustment).filter_by(id=preview["adjustment_id"]).one()
        assert adjustment.status == "draft"
        assert _statuses(db, series.lessons) == ["scheduled", "scheduled"]
        assert db.query(RecurrenceRule).filter_by(id=series.rule.id).one().end_date is None
        assert db.query(AuditLog).count() == 0

        result = TermAdjustmentWorkflow(db).confirm(
            series.org.id, preview["adjustment_id"], series.operator.id
        )
        assert result["cancelled_count"] == 2


def test_list_confirmed(db):
    series = seed_weekly_series(db, weeks=2)
    confirmed = _preview(db, series)
    _preview(db, series, adjustment_type="day_change", new_day_of_week=THURSDAY)
    _confirm(db, series, confirmed["adjustment_id"])

    items = TermAdjustmentWorkflow(db).list_confirmed(series.org.id)

    assert [item["id"] for item in items] == [confirmed["adjustment_id"]]
    assert items[0]["confirmed_by"] == series.operator.id
    assert items[0]["lessons_difference"] == 2
    assert TermAdjustmentWorkflow(db).list_confirmed(series.org.id, student_id="nobody") == []
