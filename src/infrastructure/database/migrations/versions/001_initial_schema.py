# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial school database schema.

Creates students, attendance, progress snapshots, daily activities,
student goals and notifications.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2025-01-06
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=False),
        server_default=sa.text("gen_random_uuid()"),
        primary_key=True,
    )


def _timestamp_columns() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def _student_fk() -> sa.Column:
    return sa.Column(
        "student_id",
        postgresql.UUID(as_uuid=False),
        sa.ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    """Create school database tables."""
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    # =========================================================================
    # STUDENTS AND PERFORMANCE DATA
    # =========================================================================

    op.create_table(
        "students",
        _id_column(),
        sa.Column("user_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("admission_no", sa.String(50), nullable=True, unique=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("display_name", sa.String(200), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        *_timestamp_columns(),
    )

    op.create_table(
        "attendance_records",
        _id_column(),
        _student_fk(),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        # 'PRESENT', 'ABSENT', 'LATE', 'HALF_DAY', 'EXCUSED'
        *_timestamp_columns(),
    )
    op.create_index(
        "ix_attendance_student_date", "attendance_records", ["student_id", "date"]
    )

    op.create_table(
        "student_progress_snapshots",
        _id_column(),
        sa.Column(
            "student_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("students.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("overall_homework_completion_rate", sa.Float, nullable=True),
        sa.Column("average_behavior_rating", sa.Float, nullable=True),
        sa.Column("current_reading_level", sa.Float, nullable=True),
        sa.Column("current_writing_level", sa.Float, nullable=True),
        sa.Column("computed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamp_columns(),
    )

    op.create_table(
        "daily_activities",
        _id_column(),
        _student_fk(),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("subjects_studied", postgresql.JSONB, nullable=True),
        *_timestamp_columns(),
    )
    op.create_index(
        "ix_daily_activity_student_date", "daily_activities", ["student_id", "date"]
    )

    # =========================================================================
    # GOALS
    # =========================================================================

    op.create_table(
        "student_goals",
        _id_column(),
        _student_fk(),
        sa.Column("teacher_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("goal_type", sa.String(50), nullable=False),
        sa.Column("category", sa.String(50), nullable=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("metric", sa.String(100), nullable=True),
        sa.Column("unit", sa.String(50), nullable=True),
        sa.Column("target_value", sa.Float, nullable=False),
        sa.Column("current_value", sa.Float, nullable=False, server_default="0"),
        sa.Column("baseline_value", sa.Float, nullable=True),
        sa.Column("progress", sa.Float, nullable=False, server_default="0"),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("target_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="IN_PROGRESS"),
        sa.Column("achieved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_checked", sa.DateTime(timezone=True), nullable=True),
        sa.Column("check_frequency", sa.String(20), nullable=False, server_default="WEEKLY"),
        sa.Column("milestones", postgresql.JSONB, nullable=True),
        sa.Column("support_actions", postgresql.JSONB, nullable=True),
        sa.Column("visible_to_student", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("visible_to_parent", sa.Boolean, nullable=False, server_default="true"),
        *_timestamp_columns(),
        sa.CheckConstraint("target_date > start_date", name="ck_student_goals_window"),
    )
    op.create_index(
        "ix_student_goals_student_status", "student_goals", ["student_id", "status"]
    )
    op.create_index(
        "ix_student_goals_status_last_checked", "student_goals", ["status", "last_checked"]
    )

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    op.create_table(
        "notifications",
        _id_column(),
        sa.Column(
            "student_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("students.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("recipient_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("recipient_type", sa.String(20), nullable=False),
        sa.Column("notification_type", sa.String(50), nullable=False),
        sa.Column("category", sa.String(50), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("data", postgresql.JSONB, nullable=True),
        sa.Column("priority", sa.String(10), nullable=False, server_default="NORMAL"),
        sa.Column("channels", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("delivery_status", postgresql.JSONB, nullable=True),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamp_columns(),
    )
    op.create_index(
        "ix_notifications_recipient_read", "notifications", ["recipient_id", "is_read"]
    )


def downgrade() -> None:
    """Drop school database tables."""
    op.drop_table("notifications")
    op.drop_table("student_goals")
    op.drop_table("daily_activities")
    op.drop_table("student_progress_snapshots")
    op.drop_table("attendance_records")
    op.drop_table("students")
