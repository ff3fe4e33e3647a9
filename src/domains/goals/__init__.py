# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Goals domain.

This domain provides:
- Evaluators that read a goal's current value from attendance, progress
  snapshots and daily activities
- The progress and status state machine
- Status-change notifications
- GoalTracker for targeted and batch evaluation
- GoalService for goal management by teachers

Usage:
    from src.domains.goals import build_goal_tracker

    tracker = build_goal_tracker(db_manager, settings)
    summary = await tracker.evaluate_for_student(student_id)
"""

from src.domains.goals.evaluators import (
    ATTENDED_STATUSES,
    AttendanceRateEvaluator,
    BaseEvaluator,
    EvaluatorRegistry,
    ManualEvaluator,
    Measured,
    MetricReading,
    NotEvaluable,
    SnapshotFieldEvaluator,
    SubjectUnderstandingEvaluator,
    build_evaluator_registry,
)
from src.domains.goals.exceptions import (
    EvaluatorConfigurationError,
    GoalNotFoundError,
    GoalTrackingError,
    InvalidGoalError,
    MetricReadError,
    UnknownGoalTypeError,
)
from src.domains.goals.notifier import GoalNotifier
from src.domains.goals.progress import (
    AtRiskThresholds,
    GoalEvaluation,
    compute_progress,
    evaluate_progress,
    has_material_change,
    round2,
)
from src.domains.goals.service import GoalService
from src.domains.goals.tracker import (
    EvaluationOutcome,
    EvaluationSummary,
    GoalTracker,
    build_goal_tracker,
)

__all__ = [
    # Evaluators
    "ATTENDED_STATUSES",
    "AttendanceRateEvaluator",
    "BaseEvaluator",
    "EvaluatorRegistry",
    "ManualEvaluator",
    "Measured",
    "MetricReading",
    "NotEvaluable",
    "SnapshotFieldEvaluator",
    "SubjectUnderstandingEvaluator",
    "build_evaluator_registry",
    # Exceptions
    "EvaluatorConfigurationError",
    "GoalNotFoundError",
    "GoalTrackingError",
    "InvalidGoalError",
    "MetricReadError",
    "UnknownGoalTypeError",
    # Progress
    "AtRiskThresholds",
    "GoalEvaluation",
    "compute_progress",
    "evaluate_progress",
    "has_material_change",
    "round2",
    # Services
    "GoalNotifier",
    "GoalService",
    "GoalTracker",
    "EvaluationOutcome",
    "EvaluationSummary",
    "build_goal_tracker",
]
