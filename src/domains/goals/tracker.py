# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Goal tracker.

Runs the evaluation pipeline for goals:

    evaluator lookup -> metric read -> evaluate_progress -> has_material_change
        -> single store update -> status-change notification

Two entry points drive it:
- evaluate_for_student: targeted, sequential, called when a student's
  activity data changes.
- run_batch_evaluation: periodic sweep over goals not checked recently,
  processed in chunks with bounded concurrency. Per-goal failures are
  counted, never raised.

Example:
    tracker = build_goal_tracker(db_manager, settings)
    summary = await tracker.run_batch_evaluation()
    print(summary.to_dict())
"""

import asyncio
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Callable
from uuid import UUID

from src.core.config.settings import GoalTrackingSettings, Settings
from src.domains.goals.evaluators import EvaluatorRegistry, NotEvaluable
from src.domains.goals.exceptions import MetricReadError
from src.domains.goals.notifier import GoalNotifier
from src.domains.goals.progress import AtRiskThresholds, evaluate_progress, has_material_change
from src.domains.goals.sources import GoalStore
from src.models.goal import ACTIVE_GOAL_STATUSES, GoalListFilter, GoalRecord
from src.utils.datetime import days_before, utc_now

logger = logging.getLogger(__name__)


class EvaluationOutcome(str, Enum):
    """Result of evaluating a single goal."""

    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"


@dataclass
class EvaluationSummary:
    """Aggregate counts of an evaluation run.

    Attributes:
        total: Goals considered.
        updated: Goals whose value or status was written.
        errors: Goals that failed and were skipped.
    """

    total: int = 0
    updated: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class GoalTracker:
    """Evaluates goals and persists their progress.

    Attributes:
        _store: Goal persistence.
        _registry: Evaluator lookup by goal type.
        _notifier: Status-change notifications.
        _config: Goal tracking settings.
        _clock: Returns the current UTC time.
    """

    def __init__(
        self,
        store: GoalStore,
        registry: EvaluatorRegistry,
        notifier: GoalNotifier,
        config: GoalTrackingSettings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the tracker.

        Args:
            store: Goal persistence.
            registry: Evaluator lookup by goal type.
            notifier: Status-change notifications.
            config: Goal tracking settings (defaults when None).
            clock: Source of the evaluation time.
        """
        self._store = store
        self._registry = registry
        self._notifier = notifier
        self._config = config or GoalTrackingSettings()
        self._clock = clock
        self._thresholds = AtRiskThresholds(
            progress_below=self._config.at_risk_progress_threshold,
            time_used_above=self._config.at_risk_time_used_threshold,
        )

    async def evaluate_goal(self, goal: GoalRecord) -> EvaluationOutcome:
        """Evaluate one goal and persist the result.

        Args:
            goal: Goal as currently stored.

        Returns:
            UPDATED if value or status was written, UNCHANGED if only the
            check time was refreshed, SKIPPED if the goal is not evaluable.

        Raises:
            MetricReadError: If reading the metric failed. Nothing is written.
            DatabaseError: If persisting the result failed.
        """
        if goal.status.is_terminal:
            logger.debug("Goal %s is %s, skipping", goal.id, goal.status.value)
            return EvaluationOutcome.SKIPPED

        evaluator = self._registry.get(goal.goal_type)
        now = self._clock()

        try:
            reading = await evaluator.read(goal, now)
        except Exception as e:
            raise MetricReadError(goal.id, goal.goal_type, e) from e

        if isinstance(reading, NotEvaluable):
            logger.debug("Goal %s not evaluable: %s", goal.id, reading.reason)
            return EvaluationOutcome.SKIPPED

        evaluation = evaluate_progress(goal, reading.value, now, self._thresholds)

        if not has_material_change(goal, evaluation, self._config.change_tolerance):
            await self._store.update(goal.id, {"last_checked": now})
            return EvaluationOutcome.UNCHANGED

        await self._store.update(
            goal.id,
            {
                "current_value": evaluation.current_value,
                "progress": evaluation.progress,
                "status": evaluation.status,
                "achieved_at": evaluation.achieved_at,
                "last_checked": now,
            },
        )

        if evaluation.status is not goal.status:
            logger.info(
                "Goal %s moved %s -> %s (progress %.2f%%)",
                goal.id,
                goal.status.value,
                evaluation.status.value,
                evaluation.progress,
            )
            await self._notifier.notify_status_change(goal, evaluation)

        return EvaluationOutcome.UPDATED

    async def evaluate_for_student(self, student_id: UUID) -> EvaluationSummary:
        """Evaluate a student's active goals, one at a time.

        Metric-read failures are logged, counted and skipped. Persistence
        failures propagate.

        Args:
            student_id: Student whose goals to evaluate.

        Returns:
            EvaluationSummary for the student.
        """
        goals = await self._store.find_many(
            GoalListFilter(student_id=student_id, statuses=sorted(ACTIVE_GOAL_STATUSES)),
            limit=self._config.student_goal_limit,
        )

        summary = EvaluationSummary(total=len(goals))
        for goal in goals:
            try:
                outcome = await self.evaluate_goal(goal)
            except MetricReadError as e:
                logger.warning("Skipping goal %s for student %s: %s", goal.id, student_id, e)
                summary.errors += 1
                continue
            if outcome is EvaluationOutcome.UPDATED:
                summary.updated += 1

        logger.info(
            "Evaluated %d goals for student %s: %d updated, %d errors",
            summary.total,
            student_id,
            summary.updated,
            summary.errors,
        )
        return summary

    async def run_batch_evaluation(self) -> EvaluationSummary:
        """Evaluate every active goal that is due for a check.

        A goal is due when it was never checked or was last checked before
        the recheck interval. Goals are processed in chunks; within a chunk
        at most max_concurrency evaluations run at once. Any per-goal
        failure is logged and counted.

        Returns:
            EvaluationSummary for the run.
        """
        stale_before = days_before(self._clock(), self._config.recheck_interval_days)
        due = await self._store.find_due_for_check(stale_before)

        goals = list(
            {
                g.id: g for g in due if g.is_auto_evaluated and not g.status.is_terminal
            }.values()
        )
        summary = EvaluationSummary(total=len(goals))
        if not goals:
            logger.info("No goals due for evaluation")
            return summary

        logger.info("Batch evaluation started: %d goals due", len(goals))

        semaphore = asyncio.Semaphore(self._config.max_concurrency)
        batch_size = self._config.batch_size

        for start in range(0, len(goals), batch_size):
            chunk = goals[start : start + batch_size]
            outcomes = await asyncio.gather(
                *(self._evaluate_guarded(goal, semaphore) for goal in chunk)
            )
            for outcome in outcomes:
                if outcome is None:
                    summary.errors += 1
                elif outcome is EvaluationOutcome.UPDATED:
                    summary.updated += 1

            has_more = start + batch_size < len(goals)
            if has_more and self._config.batch_pause_seconds > 0:
                await asyncio.sleep(self._config.batch_pause_seconds)

        logger.info(
            "Batch evaluation completed: %d total, %d updated, %d errors",
            summary.total,
            summary.updated,
            summary.errors,
        )
        return summary

    async def _evaluate_guarded(
        self,
        goal: GoalRecord,
        semaphore: asyncio.Semaphore,
    ) -> EvaluationOutcome | None:
        """Evaluate a goal under the semaphore; None signals failure."""
        async with semaphore:
            try:
                return await self.evaluate_goal(goal)
            except Exception as e:
                logger.error("Batch evaluation failed for goal %s: %s", goal.id, e, exc_info=True)
                return None


def build_goal_tracker(db_manager, settings: Settings) -> GoalTracker:
    """Create a GoalTracker wired to the database and in-app notifications.

    Args:
        db_manager: DatabaseManager providing sessions.
        settings: Application settings.

    Returns:
        Configured GoalTracker.
    """
    from src.domains.goals.evaluators import build_evaluator_registry
    from src.domains.goals.repository import (
        SqlAlchemyAttendanceSource,
        SqlAlchemyDailyActivitySource,
        SqlAlchemyGoalStore,
        SqlAlchemyProgressSnapshotSource,
        SqlAlchemyStudentDirectory,
    )
    from src.infrastructure.notifications import NotificationService

    config = settings.goals
    registry = build_evaluator_registry(
        attendance=SqlAlchemyAttendanceSource(db_manager),
        snapshots=SqlAlchemyProgressSnapshotSource(db_manager),
        activities=SqlAlchemyDailyActivitySource(db_manager),
        window_days=config.metric_window_days,
        subject_sample_limit=config.subject_sample_limit,
    )
    notifier = GoalNotifier(
        sink=NotificationService(db_manager),
        directory=SqlAlchemyStudentDirectory(db_manager),
        enabled=config.notifications_enabled,
    )
    return GoalTracker(
        store=SqlAlchemyGoalStore(db_manager),
        registry=registry,
        notifier=notifier,
        config=config,
    )
