# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across unit tests:
- A fixed evaluation clock
- A goal factory
- An in-memory goal store
"""

import os
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID, uuid4

import pytest

from src.models.goal import GoalListFilter, GoalRecord, GoalStatus, GoalType

# Actor modules configure a broker on import; never reach for Redis in tests
os.environ.setdefault("DRAMATIQ_TEST_MODE", "true")


NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires services)"
    )


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def now() -> datetime:
    """Provide the fixed evaluation time used by tests."""
    return NOW


@pytest.fixture
def clock(now: datetime) -> Callable[[], datetime]:
    """Provide a clock that always returns the fixed evaluation time."""
    return lambda: now


@pytest.fixture
def sample_student_id() -> UUID:
    """Provide a sample student ID for testing."""
    return UUID("550e8400-e29b-41d4-a716-446655440001")


@pytest.fixture
def sample_teacher_id() -> UUID:
    """Provide a sample teacher ID for testing."""
    return UUID("550e8400-e29b-41d4-a716-446655440002")


@pytest.fixture
def make_goal(
    now: datetime,
    sample_student_id: UUID,
    sample_teacher_id: UUID,
) -> Callable[..., GoalRecord]:
    """Provide a factory for goals.

    Defaults to an IN_PROGRESS homework goal, ten days into a thirty day
    window, with no progress yet.
    """

    def _make(**overrides: Any) -> GoalRecord:
        start = overrides.pop("start_date", now - timedelta(days=10))
        fields: dict[str, Any] = {
            "id": uuid4(),
            "student_id": sample_student_id,
            "teacher_id": sample_teacher_id,
            "goal_type": GoalType.HOMEWORK_COMPLETION,
            "metric": "homework",
            "title": "Complete homework",
            "target_value": 100.0,
            "current_value": 0.0,
            "progress": 0.0,
            "start_date": start,
            "target_date": start + timedelta(days=30),
            "status": GoalStatus.IN_PROGRESS,
        }
        fields.update(overrides)
        return GoalRecord(**fields)

    return _make


class InMemoryGoalStore:
    """Goal store keeping records in a dict and logging every update."""

    def __init__(self, goals: list[GoalRecord] | None = None) -> None:
        self.goals: dict[UUID, GoalRecord] = {g.id: g for g in goals or []}
        self.updates: list[tuple[UUID, dict[str, Any]]] = []
        self.due: list[GoalRecord] | None = None

    def add(self, *goals: GoalRecord) -> None:
        for goal in goals:
            self.goals[goal.id] = goal

    async def create(self, fields: dict[str, Any]) -> GoalRecord:
        goal = GoalRecord(id=uuid4(), **fields)
        self.goals[goal.id] = goal
        return goal

    async def find_by_id(self, goal_id: UUID) -> GoalRecord | None:
        return self.goals.get(goal_id)

    async def update(self, goal_id: UUID, fields: dict[str, Any]) -> GoalRecord | None:
        self.updates.append((goal_id, dict(fields)))
        goal = self.goals.get(goal_id)
        if goal is None:
            return None
        updated = goal.model_copy(update=fields)
        self.goals[goal_id] = updated
        return updated

    async def delete(self, goal_id: UUID) -> bool:
        return self.goals.pop(goal_id, None) is not None

    def _matching(self, goal_filter: GoalListFilter) -> list[GoalRecord]:
        goals = list(self.goals.values())
        if goal_filter.student_id is not None:
            goals = [g for g in goals if g.student_id == goal_filter.student_id]
        if goal_filter.status is not None:
            goals = [g for g in goals if g.status is goal_filter.status]
        if goal_filter.statuses:
            goals = [g for g in goals if g.status in goal_filter.statuses]
        if goal_filter.goal_type is not None:
            goals = [g for g in goals if g.goal_type is goal_filter.goal_type]
        return goals

    async def find_many(
        self,
        goal_filter: GoalListFilter,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[GoalRecord]:
        goals = self._matching(goal_filter)[offset:]
        return goals if limit is None else goals[:limit]

    async def count(self, goal_filter: GoalListFilter) -> int:
        return len(self._matching(goal_filter))

    async def find_due_for_check(self, stale_before: datetime) -> list[GoalRecord]:
        if self.due is not None:
            return list(self.due)
        return [
            g
            for g in self.goals.values()
            if g.is_auto_evaluated
            and not g.status.is_terminal
            and (g.last_checked is None or g.last_checked < stale_before)
        ]


@pytest.fixture
def goal_store() -> InMemoryGoalStore:
    """Provide an empty in-memory goal store."""
    return InMemoryGoalStore()
