# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background task infrastructure for the goal tracker.

Provides background task processing with Dramatiq:
- Redis broker for message persistence and durability
- Actors for targeted and batch goal evaluation
- APScheduler integration for the periodic batch run

Quick Start:
    # Setup broker (call once at startup)
    from src.infrastructure.background import setup_dramatiq
    setup_dramatiq()

    # Send tasks
    from src.infrastructure.background.tasks import evaluate_student_goals

    evaluate_student_goals.send("student-id")

Running Workers:
    dramatiq src.infrastructure.background.tasks --processes 2 --threads 4

Scheduler:
    from src.infrastructure.background import start_scheduler, stop_scheduler

    await start_scheduler()
    await stop_scheduler()
"""

from src.infrastructure.background.broker import (
    BrokerManager,
    Priority,
    Queues,
    get_broker,
    get_broker_manager,
    setup_dramatiq,
    shutdown_dramatiq,
)
from src.infrastructure.background.scheduler import (
    DramatiqScheduler,
    ScheduledTask,
    get_scheduler,
    start_scheduler,
    stop_scheduler,
)

# Tasks are imported lazily to avoid circular imports
# Use: from src.infrastructure.background.tasks import evaluate_student_goals

__all__ = [
    # Broker
    "BrokerManager",
    "Priority",
    "Queues",
    "get_broker",
    "get_broker_manager",
    "setup_dramatiq",
    "shutdown_dramatiq",
    # Scheduler
    "DramatiqScheduler",
    "ScheduledTask",
    "get_scheduler",
    "start_scheduler",
    "stop_scheduler",
]
