# backend/alembic/versions/001_term_adjustment_schema.py
"""Scheduling and billing schema for term adjustments

Revision ID: 001_term_adjustment_schema
Revises:
Create Date: 2026-10-17 00:00:00.000000

Creates organisations and memberships, locations and closures, terms, rate
cards, students and guardians, recurrence rules and lessons, invoices and
credit notes, term adjustments and the audit log.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001_term_adjustment_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", sa.String(26), primary_key=True)


def _org_fk(index: bool = True) -> sa.Column:
    return sa.Column(
        "org_id", sa.String(26), sa.ForeignKey("organisations.id"), nullable=False, index=index
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True
    )


def upgrade() -> None:
    op.create_table(
        "organisations",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("vat_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("vat_rate", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("currency_code", sa.String(3), nullable=False, server_default="GBP"),
        sa.Column(
            "default_timezone", sa.String(64), nullable=False, server_default="Europe/London"
        ),
        _created_at(),
    )

    op.create_table(
        "profiles",
        _id(),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=True, unique=True),
    )

    op.create_table(
        "org_memberships",
        _id(),
        _org_fk(),
        sa.Column(
            "user_id", sa.String(26), sa.ForeignKey("profiles.id"), nullable=False, index=True
        ),
        sa.Column("role", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        _created_at(),
        sa.UniqueConstraint("org_id", "user_id", name="uq_org_memberships_org_user"),
    )

    op.create_table(
        "locations",
        _id(),
        _org_fk(),
        sa.Column("name", sa.String(255), nullable=False),
    )

    op.create_table(
        "closure_dates",
        _id(),
        _org_fk(index=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("location_id", sa.String(26), sa.ForeignKey("locations.id"), nullable=True),
        sa.Column(
            "applies_to_all_locations", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("reason", sa.Text(), nullable=True),
    )
    op.create_index("ix_closure_dates_org_date", "closure_dates", ["org_id", "date"])

    op.create_table(
        "terms",
        _id(),
        _org_fk(index=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.CheckConstraint("end_date >= start_date", name="ck_terms_end_after_start"),
    )
    op.create_index("ix_terms_org_window", "terms", ["org_id", "start_date", "end_date"])

    op.create_table(
        "rate_cards",
        _id(),
        _org_fk(),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("duration_mins", sa.Integer(), nullable=False),
        sa.Column("rate_amount", sa.Integer(), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )

    op.create_table(
        "students",
        _id(),
        _org_fk(),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column(
            "default_rate_card_id", sa.String(26), sa.ForeignKey("rate_cards.id"), nullable=True
        ),
    )

    op.create_table(
        "guardians",
        _id(),
        _org_fk(),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
    )

    op.create_table(
        "student_guardians",
        _id(),
        sa.Column(
            "student_id", sa.String(26), sa.ForeignKey("students.id"), nullable=False, index=True
        ),
        sa.Column("guardian_id", sa.String(26), sa.ForeignKey("guardians.id"), nullable=False),
        sa.Column("is_primary_payer", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("student_id", "guardian_id", name="uq_student_guardians_pair"),
    )

    op.create_table(
        "recurrence_rules",
        _id(),
        _org_fk(),
        sa.Column("pattern_type", sa.String(20), nullable=False, server_default="weekly"),
        sa.Column("days_of_week", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("interval_weeks", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="Europe/London"),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "lessons",
        _id(),
        _org_fk(),
        sa.Column(
            "recurrence_id", sa.String(26), sa.ForeignKey("recurrence_rules.id"), nullable=True
        ),
        sa.Column("teacher_user_id", sa.String(26), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("location_id", sa.String(26), sa.ForeignKey("locations.id"), nullable=True),
        sa.Column("room_id", sa.String(26), nullable=True),
        sa.Column("lesson_type", sa.String(30), nullable=False, server_default="private"),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("is_online", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="scheduled", index=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("cancelled_by", sa.String(26), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.String(26), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_lessons_recurrence_status_start", "lessons", ["recurrence_id", "status", "start_at"]
    )

    op.create_table(
        "lesson_participants",
        _id(),
        _org_fk(index=False),
        sa.Column(
            "lesson_id", sa.String(26), sa.ForeignKey("lessons.id"), nullable=False, index=True
        ),
        sa.Column(
            "student_id", sa.String(26), sa.ForeignKey("students.id"), nullable=False, index=True
        ),
    )

    op.create_table(
        "attendance_records",
        _id(),
        _org_fk(index=False),
        sa.Column(
            "lesson_id", sa.String(26), sa.ForeignKey("lessons.id"), nullable=False, index=True
        ),
        sa.Column("student_id", sa.String(26), sa.ForeignKey("students.id"), nullable=False),
        sa.Column("attendance_status", sa.String(20), nullable=False, server_default="present"),
        sa.Column(
            "recorded_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True
        ),
    )

    op.create_table(
        "invoices",
        _id(),
        _org_fk(),
        sa.Column("invoice_number", sa.String(32), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("currency_code", sa.String(3), nullable=False),
        sa.Column("subtotal_minor", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("tax_minor", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_minor", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("vat_rate", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("is_credit_note", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("payer_guardian_id", sa.String(26), sa.ForeignKey("guardians.id"), nullable=True),
        sa.Column("payer_student_id", sa.String(26), sa.ForeignKey("students.id"), nullable=True),
        sa.Column("term_id", sa.String(26), sa.ForeignKey("terms.id"), nullable=True, index=True),
        sa.Column("adjustment_id", sa.String(26), nullable=True, index=True),
        sa.Column("related_invoice_id", sa.String(26), sa.ForeignKey("invoices.id"), nullable=True),
        sa.Column("idempotency_key", sa.String(100), nullable=True, unique=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
        sa.UniqueConstraint("org_id", "invoice_number", name="uq_invoices_org_number"),
    )

    op.create_table(
        "invoice_items",
        _id(),
        sa.Column(
            "invoice_id", sa.String(26), sa.ForeignKey("invoices.id"), nullable=False, index=True
        ),
        _org_fk(index=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("unit_price_minor", sa.Integer(), nullable=False),
        sa.Column("amount_minor", sa.Integer(), nullable=False),
        sa.Column("student_id", sa.String(26), sa.ForeignKey("students.id"), nullable=True),
    )

    op.create_table(
        "term_adjustments",
        _id(),
        _org_fk(index=False),
        sa.Column("adjustment_type", sa.String(20), nullable=False),
        sa.Column("student_id", sa.String(26), sa.ForeignKey("students.id"), nullable=False),
        sa.Column("term_id", sa.String(26), sa.ForeignKey("terms.id"), nullable=True),
        sa.Column("term_end_date", sa.Date(), nullable=False),
        sa.Column("effective_date", sa.Date(), nullable=False),
        sa.Column(
            "original_recurrence_id",
            sa.String(26),
            sa.ForeignKey("recurrence_rules.id"),
            nullable=False,
        ),
        sa.Column("original_lessons_remaining", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("original_day_of_week", sa.String(10), nullable=True),
        sa.Column("original_time", sa.Time(), nullable=True),
        sa.Column(
            "original_lesson_dates", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")
        ),
        sa.Column("original_teacher_id", sa.String(26), nullable=True),
        sa.Column("original_location_id", sa.String(26), nullable=True),
        sa.Column("lesson_duration_mins", sa.Integer(), nullable=False),
        sa.Column(
            "new_recurrence_id", sa.String(26), sa.ForeignKey("recurrence_rules.id"), nullable=True
        ),
        sa.Column("new_lessons_count", sa.Integer(), nullable=True),
        sa.Column("new_day_of_week", sa.String(10), nullable=True),
        sa.Column("new_time", sa.Time(), nullable=True),
        sa.Column("new_teacher_id", sa.String(26), nullable=True),
        sa.Column("new_location_id", sa.String(26), nullable=True),
        sa.Column(
            "new_lesson_dates", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")
        ),
        sa.Column("lesson_rate_minor", sa.Integer(), nullable=False),
        sa.Column("rate_source", sa.String(30), nullable=True),
        sa.Column("lessons_difference", sa.Integer(), nullable=False),
        sa.Column("adjustment_amount_minor", sa.Integer(), nullable=False),
        sa.Column("vat_rate", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("vat_amount_minor", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_adjustment_minor", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("currency_code", sa.String(3), nullable=False),
        sa.Column("related_invoice_id", sa.String(26), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(26), nullable=False),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_by", sa.String(26), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "cancelled_lesson_ids", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")
        ),
        sa.Column(
            "created_lesson_ids", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")
        ),
        sa.Column(
            "credit_note_invoice_id", sa.String(26), sa.ForeignKey("invoices.id"), nullable=True
        ),
        sa.CheckConstraint(
            "status IN ('draft', 'confirmed')", name="ck_term_adjustments_status"
        ),
        sa.CheckConstraint(
            "adjustment_type IN ('withdrawal', 'day_change')", name="ck_term_adjustments_type"
        ),
    )
    op.create_index("ix_term_adjustments_org_status", "term_adjustments", ["org_id", "status"])
    op.create_index("ix_term_adjustments_student", "term_adjustments", ["student_id"])

    op.create_table(
        "audit_log",
        _id(),
        sa.Column("org_id", sa.String(26), nullable=True, index=True),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("action", sa.String(30), nullable=False),
        sa.Column("actor_id", sa.String(26), nullable=True),
        sa.Column("actor_role", sa.String(30), nullable=True),
        sa.Column(
            "occurred_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")
        ),
        sa.Column("before", JSONB(), nullable=True),
        sa.Column("after", JSONB(), nullable=True),
    )
    op.create_index("ix_audit_log_entity", "audit_log", ["entity_type", "entity_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_log_entity", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_index("ix_term_adjustments_student", table_name="term_adjustments")
    op.drop_index("ix_term_adjustments_org_status", table_name="term_adjustments")
    op.drop_table("term_adjustments")
    op.drop_table("invoice_items")
    op.drop_table("invoices")
    op.drop_table("attendance_records")
    op.drop_table("lesson_participants")
    op.drop_index("ix_lessons_recurrence_status_start", table_name="lessons")
    op.drop_table("lessons")
    op.drop_table("recurrence_rules")
    op.drop_table("student_guardians")
    op.drop_table("guardians")
    op.drop_table("students")
    op.drop_table("rate_cards")
    op.drop_index("ix_terms_org_window", table_name="terms")
    op.drop_table("terms")
    op.drop_index("ix_closure_dates_org_date", table_name="closure_dates")
    op.drop_table("closure_dates")
    op.drop_table("locations")
    op.drop_table("org_memberships")
    op.drop_table("profiles")
    op.drop_table("organisations")
