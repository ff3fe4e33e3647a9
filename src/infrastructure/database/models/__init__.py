# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models for the school database."""

from src.infrastructure.database.models.base import Base, TimestampMixin
from src.infrastructure.database.models.goal import StudentGoal
from src.infrastructure.database.models.notification import Notification
from src.infrastructure.database.models.student import (
    Attendance,
    DailyActivity,
    Student,
    StudentProgressSnapshot,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "Student",
    "Attendance",
    "StudentProgressSnapshot",
    "DailyActivity",
    "StudentGoal",
    "Notification",
]
