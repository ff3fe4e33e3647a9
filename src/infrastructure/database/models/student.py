# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student and performance data models.

These tables are written by the attendance, daily activity and snapshot
subsystems. The goal tracker only reads them.
"""

import datetime as dt
from typing import Any
from uuid import uuid4

from sqlalchemy import Date, DateTime, Float, ForeignKey, Index, String
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin


class Student(Base, TimestampMixin):
    """Student record."""

    __tablename__ = "students"

    id: Mapped[str] = mapped_column(
        postgresql.UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid4())
    )
    user_id: Mapped[str | None] = mapped_column(postgresql.UUID(as_uuid=False), nullable=True)
    admission_no: Mapped[str | None] = mapped_column(String(50), nullable=True, unique=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")

    @property
    def full_name(self) -> str:
        """Display name, falling back to first and last name."""
        return self.display_name or f"{self.first_name} {self.last_name}".strip()


class Attendance(Base, TimestampMixin):
    """Daily attendance record.

    status is one of PRESENT, ABSENT, LATE, HALF_DAY, EXCUSED.
    """

    __tablename__ = "attendance_records"
    __table_args__ = (Index("ix_attendance_student_date", "student_id", "date"),)

    id: Mapped[str] = mapped_column(
        postgresql.UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid4())
    )
    student_id: Mapped[str] = mapped_column(
        postgresql.UUID(as_uuid=False), ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)


class StudentProgressSnapshot(Base, TimestampMixin):
    """Precomputed per-student performance aggregate (one row per student)."""

    __tablename__ = "student_progress_snapshots"

    id: Mapped[str] = mapped_column(
        postgresql.UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid4())
    )
    student_id: Mapped[str] = mapped_column(
        postgresql.UUID(as_uuid=False),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    overall_homework_completion_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    average_behavior_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    current_reading_level: Mapped[float | None] = mapped_column(Float, nullable=True)
    current_writing_level: Mapped[float | None] = mapped_column(Float, nullable=True)
    computed_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class DailyActivity(Base, TimestampMixin):
    """Teacher-recorded daily activity for a student.

    subjects_studied holds a list of {"subjectId", "understandingLevel", ...}
    entries.
    """

    __tablename__ = "daily_activities"
    __table_args__ = (Index("ix_daily_activity_student_date", "student_id", "date"),)

    id: Mapped[str] = mapped_column(
        postgresql.UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid4())
    )
    student_id: Mapped[str] = mapped_column(
        postgresql.UUID(as_uuid=False), ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    subjects_studied: Mapped[list[dict[str, Any]] | None] = mapped_column(
        postgresql.JSONB, nullable=True
    )
