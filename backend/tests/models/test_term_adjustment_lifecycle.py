from datetime import date, datetime, timezone

import pytest

from app.core.exceptions import InvalidStatusTransitionException
from app.models import AdjustmentStatus, Lesson, LessonStatus, RecurrenceRule, TermAdjustment


def _draft(**overrides) -> TermAdjustment:
    fields = {
        "adjustment_type": "withdrawal",
        "student_id": "student",
        "effective_date": date(2025, 1, 7),
        "lessons_difference": 4,
        "total_adjustment_minor": 24000,
        "status": AdjustmentStatus.DRAFT.value,
    }
    fields.update(overrides)
    return TermAdjustment(**fields)


class TestAdjustmentStatus:
    def test_draft_can_only_become_confirmed(self):
        assert AdjustmentStatus.DRAFT.can_transition_to(AdjustmentStatus.CONFIRMED)
        assert not AdjustmentStatus.DRAFT.can_transition_to(AdjustmentStatus.DRAFT)

    def test_confirmed_is_terminal(self):
        assert AdjustmentStatus.CONFIRMED.is_terminal
        assert not AdjustmentStatus.DRAFT.is_terminal
        assert not AdjustmentStatus.CONFIRMED.can_transition_to(AdjustmentStatus.DRAFT)
        assert not AdjustmentStatus.CONFIRMED.can_transition_to(AdjustmentStatus.CONFIRMED)


class TestMarkConfirmed:
    def test_records_outcome(self):
        adjustment = _draft()
        confirmed_at = datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)

        adjustment.mark_confirmed(
            "user-1",
            cancelled_lesson_ids=["l1", "l2"],
            created_lesson_ids=[],
            credit_note_invoice_id="inv-1",
            confirmed_at=confirmed_at,
        )

        assert adjustment.status == AdjustmentStatus.CONFIRMED.value
        assert adjustment.confirmed_by == "user-1"
        assert adjustment.confirmed_at == confirmed_at
        assert adjustment.cancelled_lesson_ids == ["l1", "l2"]
        assert adjustment.credit_note_invoice_id == "inv-1"
        assert adjustment.new_recurrence_id is None

    def test_second_confirmation_is_rejected(self):
        adjustment = _draft()
        adjustment.mark_confirmed("user-1", cancelled_lesson_ids=[], created_lesson_ids=[])

        with pytest.raises(InvalidStatusTransitionException) as exc_info:
            adjustment.mark_confirmed("user-2", cancelled_lesson_ids=["x"], created_lesson_ids=[])

        assert exc_info.value.details == {"current_status": "confirmed", "target_status": "confirmed"}
        assert adjustment.confirmed_by == "user-1"
        assert adjustment.cancelled_lesson_ids == []

    def test_audit_summary_counts(self):
        adjustment = _draft()
        adjustment.mark_confirmed(
            "user-1", cancelled_lesson_ids=["a", "b", "c"], created_lesson_ids=["d"]
        )

        summary = adjustment.audit_summary()

        assert summary["cancelled_count"] == 3
        assert summary["created_count"] == 1
        assert summary["effective_date"] == "2025-01-07"


class TestRecurrenceTruncation:
    def test_open_ended_rule_ends_day_before_cutoff(self):
        rule = RecurrenceRule(start_date=date(2024, 9, 3), end_date=None)

        assert rule.truncate_before(date(2025, 1, 7)) == date(2025, 1, 6)

    def test_never_moves_end_later(self):
        rule = RecurrenceRule(start_date=date(2024, 9, 3), end_date=date(2024, 12, 17))

        assert rule.truncate_before(date(2025, 1, 7)) == date(2024, 12, 17)

    def test_cutoff_on_start_date_supersedes_rule(self):
        rule = RecurrenceRule(start_date=date(2025, 1, 7), end_date=None)

        assert rule.truncate_before(date(2025, 1, 7)) == date(2025, 1, 6)
        assert rule.superseded is True

    def test_truncated_rule_with_history_is_not_superseded(self):
        rule = RecurrenceRule(start_date=date(2024, 9, 3), end_date=None)
        rule.truncate_before(date(2025, 1, 7))

        assert rule.superseded is False


class TestLessonCancel:
    def test_scheduled_lesson_is_cancelled(self):
        lesson = Lesson(status=LessonStatus.SCHEDULED.value)
        at = datetime(2025, 1, 6, tzinfo=timezone.utc)

        lesson.cancel("user-1", "Term adjustment", at=at)

        assert lesson.status == LessonStatus.CANCELLED.value
        assert lesson.cancelled_by == "user-1"
        assert lesson.cancellation_reason == "Term adjustment"
        assert lesson.cancelled_at == at

    def test_completed_lesson_is_left_alone(self):
        lesson = Lesson(status=LessonStatus.COMPLETED.value)

        lesson.cancel("user-1", "Term adjustment")

        assert lesson.status == LessonStatus.COMPLETED.value
        assert lesson.cancelled_at is None
