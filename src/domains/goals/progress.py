# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Progress and status computation for goals.

Pure functions only: callers pass the evaluation time in and perform all
persistence and notification themselves.

State machine:
    IN_PROGRESS -> ACHIEVED   progress >= 100 (checked first)
    IN_PROGRESS -> FAILED     deadline passed
    IN_PROGRESS -> AT_RISK    low progress late in the window
    AT_RISK     -> ACHIEVED / FAILED under the same rules
    ACHIEVED, FAILED, CANCELLED are absorbing
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from src.models.goal import GoalRecord, GoalStatus
from src.utils.datetime import ensure_utc

ONE_DAY = timedelta(days=1)

DEFAULT_CHANGE_TOLERANCE = 0.01


def round2(value: float) -> float:
    """Round half-up to two decimal places."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def compute_progress(current_value: float, target_value: float) -> float:
    """Percentage of target reached, capped at 100.

    Args:
        current_value: Current metric value.
        target_value: Goal target value.

    Returns:
        Progress in [0, 100]; 0 when the target is not positive.
    """
    if target_value <= 0:
        return 0.0
    return max(0.0, min(100.0, round2(current_value / target_value * 100)))


@dataclass(frozen=True)
class AtRiskThresholds:
    """A goal is at risk below progress_below % with more than time_used_above % elapsed."""

    progress_below: float = 30.0
    time_used_above: float = 70.0


@dataclass(frozen=True)
class GoalEvaluation:
    """Result of evaluating a goal at a point in time.

    Attributes:
        current_value: Value the evaluation was computed from.
        progress: Percentage of target reached.
        status: Status after applying the state machine.
        achieved_at: Achievement time (unchanged unless just achieved).
        days_left: Whole days until the target date (negative once passed).
        time_used_percent: Share of the goal window elapsed.
    """

    current_value: float
    progress: float
    status: GoalStatus
    achieved_at: datetime | None
    days_left: int
    time_used_percent: float


def days_left_until(target_date: datetime, now: datetime) -> int:
    """Whole days remaining until target_date, rounded up."""
    return math.ceil((ensure_utc(target_date) - ensure_utc(now)) / ONE_DAY)


def time_used_percent(start_date: datetime, target_date: datetime, now: datetime) -> float:
    """Share of the goal window elapsed at now, in percent.

    An empty or inverted window counts as fully used.
    """
    window = ensure_utc(target_date) - ensure_utc(start_date)
    if window <= timedelta(0):
        return 100.0
    return (ensure_utc(now) - ensure_utc(start_date)) / window * 100


def evaluate_progress(
    goal: GoalRecord,
    current_value: float,
    now: datetime,
    thresholds: AtRiskThresholds | None = None,
) -> GoalEvaluation:
    """Compute progress and the next status for a goal.

    Args:
        goal: Goal as currently stored.
        current_value: Freshly read metric value.
        now: Evaluation time.
        thresholds: At-risk thresholds (defaults to 30% / 70%).

    Returns:
        GoalEvaluation with the new progress, status and achieved_at.
    """
    thresholds = thresholds or AtRiskThresholds()

    progress = compute_progress(current_value, goal.target_value)
    days_left = days_left_until(goal.target_date, now)
    used = time_used_percent(goal.start_date, goal.target_date, now)

    status = goal.status
    achieved_at = goal.achieved_at

    if not goal.status.is_terminal:
        if progress >= 100:
            status = GoalStatus.ACHIEVED
            achieved_at = now
        elif days_left < 0:
            status = GoalStatus.FAILED
        elif (
            goal.status is GoalStatus.IN_PROGRESS
            and progress < thresholds.progress_below
            and used > thresholds.time_used_above
        ):
            status = GoalStatus.AT_RISK

    return GoalEvaluation(
        current_value=current_value,
        progress=progress,
        status=status,
        achieved_at=achieved_at,
        days_left=days_left,
        time_used_percent=used,
    )


def has_material_change(
    goal: GoalRecord,
    evaluation: GoalEvaluation,
    tolerance: float = DEFAULT_CHANGE_TOLERANCE,
) -> bool:
    """Whether an evaluation differs enough from stored state to write it.

    Args:
        goal: Goal as currently stored.
        evaluation: Fresh evaluation.
        tolerance: Value changes at or below this are noise.

    Returns:
        True if the value moved beyond tolerance or the status changed.
    """
    value_moved = abs(evaluation.current_value - goal.current_value) > tolerance
    return value_moved or evaluation.status is not goal.status
