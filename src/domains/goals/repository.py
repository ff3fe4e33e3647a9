# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy implementations of the goal tracker's collaborators.

Each class opens its own short session per call through
DatabaseManager.get_session(), so they can be shared by concurrent batch
evaluations. Rows are converted to the Pydantic read models before they
leave this module.
"""

import logging
from datetime import datetime
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import Select, delete, func, or_, select, update

from src.infrastructure.database.connection import DatabaseManager
from src.infrastructure.database.models import (
    Attendance,
    DailyActivity,
    Student,
    StudentGoal,
    StudentProgressSnapshot,
)
from src.models.goal import (
    ACTIVE_GOAL_STATUSES,
    GoalListFilter,
    GoalRecord,
    GoalType,
    ProgressSnapshot,
    SubjectSample,
)

logger = logging.getLogger(__name__)


def _apply_goal_filter(stmt: Select, goal_filter: GoalListFilter) -> Select:
    """Add WHERE clauses for the populated fields of a goal filter."""
    if goal_filter.student_id is not None:
        stmt = stmt.where(StudentGoal.student_id == str(goal_filter.student_id))
    if goal_filter.teacher_id is not None:
        stmt = stmt.where(StudentGoal.teacher_id == str(goal_filter.teacher_id))
    if goal_filter.status is not None:
        stmt = stmt.where(StudentGoal.status == goal_filter.status)
    if goal_filter.statuses:
        stmt = stmt.where(StudentGoal.status.in_(goal_filter.statuses))
    if goal_filter.goal_type is not None:
        stmt = stmt.where(StudentGoal.goal_type == goal_filter.goal_type)
    if goal_filter.visible_to_student is not None:
        stmt = stmt.where(StudentGoal.visible_to_student == goal_filter.visible_to_student)
    if goal_filter.visible_to_parent is not None:
        stmt = stmt.where(StudentGoal.visible_to_parent == goal_filter.visible_to_parent)
    return stmt


def _to_column_values(fields: dict[str, Any]) -> dict[str, Any]:
    """Convert UUID values to the string form stored in UUID columns."""
    return {key: str(value) if isinstance(value, UUID) else value for key, value in fields.items()}


class SqlAlchemyGoalStore:
    """Goal store backed by the student_goals table."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def create(self, fields: dict[str, Any]) -> GoalRecord:
        async with self._db.get_session() as session:
            goal = StudentGoal(**_to_column_values(fields))
            session.add(goal)
            await session.flush()
            await session.refresh(goal)
            return GoalRecord.model_validate(goal)

    async def find_by_id(self, goal_id: UUID) -> GoalRecord | None:
        async with self._db.get_session() as session:
            goal = await session.get(StudentGoal, str(goal_id))
            return GoalRecord.model_validate(goal) if goal else None

    async def update(self, goal_id: UUID, fields: dict[str, Any]) -> GoalRecord | None:
        """Apply all fields to one goal with a single UPDATE statement.

        Args:
            goal_id: Goal to update.
            fields: Column values to set.

        Returns:
            The updated goal, or None if it does not exist.
        """
        stmt = (
            update(StudentGoal)
            .where(StudentGoal.id == str(goal_id))
            .values(**_to_column_values(fields))
            .returning(StudentGoal)
        )
        async with self._db.get_session() as session:
            result = await session.execute(stmt)
            goal = result.scalar_one_or_none()
            return GoalRecord.model_validate(goal) if goal else None

    async def delete(self, goal_id: UUID) -> bool:
        async with self._db.get_session() as session:
            result = await session.execute(
                delete(StudentGoal).where(StudentGoal.id == str(goal_id))
            )
            return result.rowcount > 0

    async def find_many(
        self,
        goal_filter: GoalListFilter,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[GoalRecord]:
        stmt = _apply_goal_filter(select(StudentGoal), goal_filter)
        stmt = stmt.order_by(StudentGoal.target_date.asc(), StudentGoal.id).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self._db.get_session() as session:
            result = await session.execute(stmt)
            return [GoalRecord.model_validate(g) for g in result.scalars().all()]

    async def count(self, goal_filter: GoalListFilter) -> int:
        stmt = _apply_goal_filter(select(StudentGoal), goal_filter)
        count_stmt = select(func.count()).select_from(stmt.subquery())
        async with self._db.get_session() as session:
            result = await session.execute(count_stmt)
            return result.scalar() or 0

    async def find_due_for_check(self, stale_before: datetime) -> list[GoalRecord]:
        """Auto-evaluated active goals never checked or checked before stale_before.

        Oldest checks come first so an interrupted run resumes where the
        previous one stopped.
        """
        stmt = (
            select(StudentGoal)
            .where(
                StudentGoal.status.in_(sorted(ACTIVE_GOAL_STATUSES)),
                StudentGoal.goal_type != GoalType.MANUAL,
                or_(
                    StudentGoal.last_checked.is_(None),
                    StudentGoal.last_checked < stale_before,
                ),
            )
            .order_by(StudentGoal.last_checked.asc().nulls_first(), StudentGoal.id)
        )
        async with self._db.get_session() as session:
            result = await session.execute(stmt)
            goals = [GoalRecord.model_validate(g) for g in result.scalars().all()]

        logger.debug("Found %d goals due for check (stale before %s)", len(goals), stale_before)
        return goals


class SqlAlchemyAttendanceSource:
    """Attendance counts from the attendance_records table."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def count(
        self,
        student_id: UUID,
        since: datetime,
        statuses: Sequence[str] | None = None,
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(Attendance)
            .where(
                Attendance.student_id == str(student_id),
                Attendance.date >= since.date(),
            )
        )
        if statuses is not None:
            stmt = stmt.where(Attendance.status.in_(list(statuses)))

        async with self._db.get_session() as session:
            result = await session.execute(stmt)
            return result.scalar() or 0


class SqlAlchemyProgressSnapshotSource:
    """Latest row of student_progress_snapshots for a student."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def get_latest(self, student_id: UUID) -> ProgressSnapshot | None:
        stmt = (
            select(StudentProgressSnapshot)
            .where(StudentProgressSnapshot.student_id == str(student_id))
            .order_by(StudentProgressSnapshot.computed_at.desc().nulls_last())
            .limit(1)
        )
        async with self._db.get_session() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()

        if row is None:
            return None
        return ProgressSnapshot(
            student_id=row.student_id,
            homework_completion_rate=row.overall_homework_completion_rate,
            average_behavior_rating=row.average_behavior_rating,
            current_reading_level=row.current_reading_level,
            current_writing_level=row.current_writing_level,
        )


class SqlAlchemyDailyActivitySource:
    """Subject entries from the daily_activities table."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def recent_subject_samples(
        self,
        student_id: UUID,
        since: datetime,
        limit: int,
    ) -> list[list[SubjectSample]]:
        stmt = (
            select(DailyActivity.subjects_studied)
            .where(
                DailyActivity.student_id == str(student_id),
                DailyActivity.date >= since.date(),
            )
            .order_by(DailyActivity.date.desc())
            .limit(limit)
        )
        async with self._db.get_session() as session:
            result = await session.execute(stmt)
            rows = result.scalars().all()

        return [self._parse_subjects(subjects) for subjects in rows]

    @staticmethod
    def _parse_subjects(subjects: list[dict[str, Any]] | None) -> list[SubjectSample]:
        samples = []
        for entry in subjects or []:
            if not isinstance(entry, dict) or not entry.get("subjectId"):
                continue
            samples.append(
                SubjectSample(
                    subject_id=str(entry["subjectId"]),
                    understanding_level=entry.get("understandingLevel"),
                )
            )
        return samples


class SqlAlchemyStudentDirectory:
    """Student display names from the students table."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def get_display_name(self, student_id: UUID) -> str | None:
        async with self._db.get_session() as session:
            student = await session.get(Student, str(student_id))
            return student.full_name if student else None
