# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student goal model."""

from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Enum, Float, ForeignKey, Index, String, Text
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin
from src.models.goal import CheckFrequency, GoalStatus, GoalType


class StudentGoal(Base, TimestampMixin):
    """A time-boxed target on a measurable metric for one student."""

    __tablename__ = "student_goals"
    __table_args__ = (
        Index("ix_student_goals_student_status", "student_id", "status"),
        Index("ix_student_goals_status_last_checked", "status", "last_checked"),
    )

    id: Mapped[str] = mapped_column(
        postgresql.UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid4())
    )
    student_id: Mapped[str] = mapped_column(
        postgresql.UUID(as_uuid=False), ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    teacher_id: Mapped[str | None] = mapped_column(postgresql.UUID(as_uuid=False), nullable=True)

    goal_type: Mapped[GoalType] = mapped_column(
        Enum(GoalType, name="goal_type", native_enum=False, length=50), nullable=False
    )
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    metric: Mapped[str | None] = mapped_column(String(100), nullable=True)
    unit: Mapped[str | None] = mapped_column(String(50), nullable=True)

    target_value: Mapped[float] = mapped_column(Float, nullable=False)
    current_value: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    baseline_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    progress: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    target_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[GoalStatus] = mapped_column(
        Enum(GoalStatus, name="goal_status", native_enum=False, length=20),
        nullable=False,
        default=GoalStatus.IN_PROGRESS,
    )
    achieved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_checked: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    check_frequency: Mapped[CheckFrequency] = mapped_column(
        Enum(CheckFrequency, name="check_frequency", native_enum=False, length=20),
        nullable=False,
        default=CheckFrequency.WEEKLY,
    )

    milestones: Mapped[list[dict[str, Any]] | None] = mapped_column(postgresql.JSONB, nullable=True)
    support_actions: Mapped[list[str] | None] = mapped_column(postgresql.JSONB, nullable=True)
    visible_to_student: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    visible_to_parent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
