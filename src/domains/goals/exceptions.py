# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exceptions raised by the goal tracking domain."""

from typing import Any


class GoalTrackingError(Exception):
    """Base exception for goal tracking errors."""

    pass


class MetricReadError(GoalTrackingError):
    """Raised when a metric source cannot be read for a goal.

    Attributes:
        goal_id: Goal whose metric could not be read.
        goal_type: Goal type being evaluated.
        original_error: The underlying exception.
    """

    def __init__(self, goal_id: Any, goal_type: Any, original_error: Exception) -> None:
        """Initialize the error.

        Args:
            goal_id: Goal whose metric could not be read.
            goal_type: Goal type being evaluated.
            original_error: The underlying exception.
        """
        super().__init__(f"Failed to read {goal_type} metric for goal {goal_id}: {original_error}")
        self.goal_id = goal_id
        self.goal_type = goal_type
        self.original_error = original_error


class UnknownGoalTypeError(GoalTrackingError, ValueError):
    """Raised when a goal type has no evaluator."""

    pass


class EvaluatorConfigurationError(GoalTrackingError):
    """Raised when the evaluator registry does not cover every goal type."""

    pass


class GoalNotFoundError(GoalTrackingError):
    """Raised when a goal does not exist."""

    pass


class InvalidGoalError(GoalTrackingError):
    """Raised when a goal update would violate goal invariants."""

    pass
