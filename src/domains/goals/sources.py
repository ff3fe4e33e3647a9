# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Collaborator contracts consumed by the goal tracker.

The tracker never talks to the database or the notification transport
directly; it depends on these protocols. SQLAlchemy implementations live in
src/domains/goals/repository.py and the notification service in
src/infrastructure/notifications/.
"""

from datetime import datetime
from typing import Any, Protocol, Sequence
from uuid import UUID

from src.models.goal import GoalListFilter, GoalRecord, ProgressSnapshot, SubjectSample
from src.models.notification import NotificationRequest


class GoalStore(Protocol):
    """Persistence of student goals."""

    async def create(self, fields: dict[str, Any]) -> GoalRecord: ...

    async def find_by_id(self, goal_id: UUID) -> GoalRecord | None: ...

    async def update(self, goal_id: UUID, fields: dict[str, Any]) -> GoalRecord | None:
        """Apply all fields to one goal in a single write."""
        ...

    async def delete(self, goal_id: UUID) -> bool: ...

    async def find_many(
        self,
        goal_filter: GoalListFilter,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[GoalRecord]: ...

    async def count(self, goal_filter: GoalListFilter) -> int: ...

    async def find_due_for_check(self, stale_before: datetime) -> list[GoalRecord]:
        """Auto-evaluated active goals never checked, or checked before stale_before."""
        ...


class AttendanceSource(Protocol):
    """Read access to attendance records."""

    async def count(
        self,
        student_id: UUID,
        since: datetime,
        statuses: Sequence[str] | None = None,
    ) -> int:
        """Count records on or after since, optionally filtered by status."""
        ...


class ProgressSnapshotSource(Protocol):
    """Read access to precomputed progress snapshots."""

    async def get_latest(self, student_id: UUID) -> ProgressSnapshot | None: ...


class DailyActivitySource(Protocol):
    """Read access to daily activity records."""

    async def recent_subject_samples(
        self,
        student_id: UUID,
        since: datetime,
        limit: int,
    ) -> list[list[SubjectSample]]:
        """Subject entries of the most recent activities, newest first."""
        ...


class StudentDirectory(Protocol):
    """Read access to student names."""

    async def get_display_name(self, student_id: UUID) -> str | None: ...


class NotificationSink(Protocol):
    """Hands notifications to the delivery transport."""

    async def emit(self, request: NotificationRequest) -> Any: ...
