# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Goal evaluation background tasks.

Available actors:
- evaluate_student_goals: Re-evaluate one student's active goals. Enqueued
  by activity ingestion whenever attendance, activity or snapshot data for
  the student changes.
- goal_batch_evaluation_job: Periodic sweep over goals that have not been
  checked recently. Triggered by the APScheduler cron job.
"""

import logging
from typing import Any
from uuid import UUID, uuid4

import dramatiq

from src.core.config import get_settings
from src.domains.goals.tracker import EvaluationSummary, build_goal_tracker
from src.infrastructure.background.broker import Priority, Queues, setup_dramatiq
from src.infrastructure.background.tasks.base import run_async
from src.infrastructure.database.connection import get_worker_db_manager
from src.utils.logging import bind_context, clear_context

# Setup broker before defining actors
setup_dramatiq()

logger = logging.getLogger(__name__)


async def evaluate_goals_for_student(student_id: str) -> EvaluationSummary:
    """Evaluate a student's active goals with the worker's database manager."""
    tracker = build_goal_tracker(get_worker_db_manager(), get_settings())
    return await tracker.evaluate_for_student(UUID(student_id))


async def run_goal_batch_evaluation() -> EvaluationSummary:
    """Run the batch sweep with the worker's database manager."""
    tracker = build_goal_tracker(get_worker_db_manager(), get_settings())
    return await tracker.run_batch_evaluation()


@dramatiq.actor(
    queue_name=Queues.GOALS,
    max_retries=3,
    time_limit=120000,  # 2 minutes
    priority=Priority.HIGH,
)
def evaluate_student_goals(student_id: str) -> dict[str, Any]:
    """Re-evaluate a student's active goals.

    Metric-read failures are counted in the result. Persistence failures
    are raised so Dramatiq retries the message.

    Args:
        student_id: Student identifier.

    Returns:
        Evaluation summary with total, updated and errors counts.

    Example:
        evaluate_student_goals.send("student-uuid")
    """
    bind_context(job="evaluate_student_goals", student_id=student_id)
    try:
        summary = run_async(evaluate_goals_for_student(student_id))
        return {"student_id": student_id, **summary.to_dict()}
    except Exception as e:
        logger.error(
            "Goal evaluation failed: student=%s, error=%s",
            student_id,
            str(e),
            exc_info=True,
        )
        raise
    finally:
        clear_context()


@dramatiq.actor(
    queue_name=Queues.GOALS,
    max_retries=1,
    time_limit=1800000,  # 30 minutes
    priority=Priority.NORMAL,
)
def goal_batch_evaluation_job() -> dict[str, Any]:
    """Scheduler job: evaluate all goals due for a check.

    This actor is called by the APScheduler cron job (daily at 08:00 by
    default). An interrupted run is harmless: unprocessed goals stay due
    and are picked up by the next run.

    Returns:
        Execution statistics with total, updated and errors counts.
    """
    bind_context(job="goal_batch_evaluation", run_id=str(uuid4()))
    logger.info("Goal batch evaluation job triggered")

    try:
        summary = run_async(run_goal_batch_evaluation())
        logger.info(
            "Goal batch evaluation job completed: %d goals, %d updated, %d errors",
            summary.total,
            summary.updated,
            summary.errors,
        )
        return {"status": "completed", **summary.to_dict()}
    except Exception as e:
        logger.error("Goal batch evaluation job failed: %s", e, exc_info=True)
        return {"status": "failed", "error": str(e)}
    finally:
        clear_context()


def get_goal_actors() -> list:
    """Get all goal evaluation actors.

    Returns:
        List of goal actor functions.
    """
    return [
        evaluate_student_goals,
        goal_batch_evaluation_job,
    ]
