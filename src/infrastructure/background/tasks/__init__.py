# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background task actors for the goal tracker.

Usage:
    from src.infrastructure.background.tasks import evaluate_student_goals

    # Send a task
    evaluate_student_goals.send("student-id")

    # Get all actors for worker registration
    actors = get_all_actors()

Running Workers:
    dramatiq src.infrastructure.background.tasks --processes 2 --threads 4
"""

from src.infrastructure.background.tasks.goals import (
    evaluate_student_goals,
    get_goal_actors,
    goal_batch_evaluation_job,
)

# Re-export run_async for convenience
from src.infrastructure.background.tasks.base import run_async

__all__ = [
    # Goals
    "evaluate_student_goals",
    "goal_batch_evaluation_job",
    # Utilities
    "run_async",
    "get_all_actors",
]


def get_all_actors() -> list:
    """Get list of all defined actors.

    Returns:
        List of all Dramatiq actors.
    """
    return list(get_goal_actors())
