# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Evaluator strategy table for auto-evaluated goals.

Each goal type has exactly one evaluator that reads a single current value
for a student from the metric sources:

| Goal type             | Source                         | Value                          |
|-----------------------|--------------------------------|--------------------------------|
| ATTENDANCE_RATE       | attendance, trailing window    | present-or-late % of records   |
| HOMEWORK_COMPLETION   | latest progress snapshot       | homework completion rate       |
| BEHAVIOR_SCORE        | latest progress snapshot       | average behavior rating        |
| SUBJECT_UNDERSTANDING | recent daily activities        | mean understanding for subject |
| READING_SKILL         | latest progress snapshot       | current reading level          |
| WRITING_SKILL         | latest progress snapshot       | current writing level          |
| MANUAL                | none                           | not evaluable                  |

Evaluators return a MetricReading: either Measured(value) or
NotEvaluable(reason). The registry must cover every GoalType; gaps are
reported when the registry is built, not when a goal is evaluated.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from src.domains.goals.exceptions import EvaluatorConfigurationError, UnknownGoalTypeError
from src.domains.goals.progress import round2
from src.domains.goals.sources import (
    AttendanceSource,
    DailyActivitySource,
    ProgressSnapshotSource,
)
from src.models.goal import GoalRecord, GoalType, ProgressSnapshot
from src.utils.datetime import days_before

logger = logging.getLogger(__name__)


# Attendance statuses that count as attended
ATTENDED_STATUSES = ("PRESENT", "LATE", "HALF_DAY")

DEFAULT_WINDOW_DAYS = 30
DEFAULT_SUBJECT_SAMPLE_LIMIT = 20


@dataclass(frozen=True)
class Measured:
    """A current value read from the metric sources."""

    value: float


@dataclass(frozen=True)
class NotEvaluable:
    """The goal has no automatic metric; the pipeline stops here."""

    reason: str


MetricReading = Measured | NotEvaluable


class BaseEvaluator(ABC):
    """Abstract base class for goal evaluators."""

    def __init__(self) -> None:
        """Initialize the evaluator."""
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    @abstractmethod
    def goal_type(self) -> GoalType:
        """Return the goal type this evaluator handles."""
        ...

    @abstractmethod
    async def read(self, goal: GoalRecord, now: datetime) -> MetricReading:
        """Read the current value for a goal.

        Args:
            goal: Goal being evaluated.
            now: Evaluation time; trailing windows end here.

        Returns:
            Measured value, or NotEvaluable for goals without a metric.
        """
        ...


class AttendanceRateEvaluator(BaseEvaluator):
    """Percentage of attended days over the trailing window."""

    def __init__(self, attendance: AttendanceSource, window_days: int = DEFAULT_WINDOW_DAYS) -> None:
        super().__init__()
        self._attendance = attendance
        self._window_days = window_days

    @property
    def goal_type(self) -> GoalType:
        return GoalType.ATTENDANCE_RATE

    async def read(self, goal: GoalRecord, now: datetime) -> MetricReading:
        since = days_before(now, self._window_days)
        attended = await self._attendance.count(goal.student_id, since, ATTENDED_STATUSES)
        total = await self._attendance.count(goal.student_id, since)

        if total == 0:
            return Measured(0.0)
        return Measured(round2(attended / total * 100))


class SnapshotFieldEvaluator(BaseEvaluator):
    """Reads one field of the student's latest progress snapshot."""

    def __init__(
        self,
        goal_type: GoalType,
        field_name: str,
        snapshots: ProgressSnapshotSource,
    ) -> None:
        super().__init__()
        if field_name not in ProgressSnapshot.model_fields:
            raise EvaluatorConfigurationError(f"Unknown snapshot field: {field_name}")
        self._goal_type = goal_type
        self._field_name = field_name
        self._snapshots = snapshots

    @property
    def goal_type(self) -> GoalType:
        return self._goal_type

    async def read(self, goal: GoalRecord, now: datetime) -> MetricReading:
        snapshot = await self._snapshots.get_latest(goal.student_id)
        if snapshot is None:
            return Measured(0.0)
        return Measured(float(getattr(snapshot, self._field_name) or 0))


class SubjectUnderstandingEvaluator(BaseEvaluator):
    """Mean understanding level for the goal's subject in recent activities.

    The goal's metric holds the subject id. Entries without an
    understanding level are ignored.
    """

    def __init__(
        self,
        activities: DailyActivitySource,
        window_days: int = DEFAULT_WINDOW_DAYS,
        sample_limit: int = DEFAULT_SUBJECT_SAMPLE_LIMIT,
    ) -> None:
        super().__init__()
        self._activities = activities
        self._window_days = window_days
        self._sample_limit = sample_limit

    @property
    def goal_type(self) -> GoalType:
        return GoalType.SUBJECT_UNDERSTANDING

    async def read(self, goal: GoalRecord, now: datetime) -> MetricReading:
        recent = await self._activities.recent_subject_samples(
            goal.student_id,
            days_before(now, self._window_days),
            self._sample_limit,
        )

        levels: list[float] = []
        for subjects in recent:
            match = next((s for s in subjects if s.subject_id == goal.metric), None)
            if match is not None and match.understanding_level:
                levels.append(match.understanding_level)

        if not levels:
            return Measured(0.0)
        return Measured(round2(sum(levels) / len(levels)))


class ManualEvaluator(BaseEvaluator):
    """Manual goals are only changed by people."""

    @property
    def goal_type(self) -> GoalType:
        return GoalType.MANUAL

    async def read(self, goal: GoalRecord, now: datetime) -> MetricReading:
        return NotEvaluable("manual goal")


class EvaluatorRegistry:
    """Exhaustive mapping from goal type to evaluator.

    Attributes:
        _evaluators: Dictionary mapping goal types to evaluators.
    """

    def __init__(self, evaluators: Iterable[BaseEvaluator]) -> None:
        """Build the registry.

        Args:
            evaluators: One evaluator per goal type.

        Raises:
            EvaluatorConfigurationError: If a type is covered twice or not at all.
        """
        self._evaluators: dict[GoalType, BaseEvaluator] = {}
        for evaluator in evaluators:
            if evaluator.goal_type in self._evaluators:
                raise EvaluatorConfigurationError(
                    f"Duplicate evaluator for {evaluator.goal_type.value}"
                )
            self._evaluators[evaluator.goal_type] = evaluator

        missing = [t.value for t in GoalType if t not in self._evaluators]
        if missing:
            raise EvaluatorConfigurationError(
                f"No evaluator registered for: {', '.join(missing)}"
            )

    def get(self, goal_type: GoalType | str) -> BaseEvaluator:
        """Get the evaluator for a goal type.

        Args:
            goal_type: Goal type or its string value.

        Returns:
            The registered evaluator.

        Raises:
            UnknownGoalTypeError: If goal_type is not a known goal type.
        """
        try:
            return self._evaluators[GoalType(goal_type)]
        except ValueError as e:
            raise UnknownGoalTypeError(f"Unknown goal type: {goal_type!r}") from e

    def __len__(self) -> int:
        return len(self._evaluators)


def build_evaluator_registry(
    attendance: AttendanceSource,
    snapshots: ProgressSnapshotSource,
    activities: DailyActivitySource,
    window_days: int = DEFAULT_WINDOW_DAYS,
    subject_sample_limit: int = DEFAULT_SUBJECT_SAMPLE_LIMIT,
) -> EvaluatorRegistry:
    """Create the standard registry over the given metric sources.

    Args:
        attendance: Attendance source.
        snapshots: Progress snapshot source.
        activities: Daily activity source.
        window_days: Trailing window for attendance and activities.
        subject_sample_limit: Recent activities sampled per subject goal.

    Returns:
        Registry covering every goal type.
    """
    return EvaluatorRegistry(
        [
            AttendanceRateEvaluator(attendance, window_days),
            SnapshotFieldEvaluator(
                GoalType.HOMEWORK_COMPLETION, "homework_completion_rate", snapshots
            ),
            SnapshotFieldEvaluator(
                GoalType.BEHAVIOR_SCORE, "average_behavior_rating", snapshots
            ),
            SubjectUnderstandingEvaluator(activities, window_days, subject_sample_limit),
            SnapshotFieldEvaluator(GoalType.READING_SKILL, "current_reading_level", snapshots),
            SnapshotFieldEvaluator(GoalType.WRITING_SKILL, "current_writing_level", snapshots),
            ManualEvaluator(),
        ]
    )
