# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scheduler process entry point.

Runs the cron scheduler that enqueues the goal batch evaluation job. The
goal actors themselves run in Dramatiq workers:

    dramatiq src.infrastructure.background.tasks --processes 2 --threads 4

Startup order:
- Logging
- Database migrations (optional)
- Database connectivity check
- Dramatiq broker
- APScheduler with the goal batch job

Example:
    $ goal-tracker-scheduler --migrate
"""

import argparse
import asyncio
import logging
import signal

from src.core.config import get_settings
from src.infrastructure.background import (
    setup_dramatiq,
    shutdown_dramatiq,
    start_scheduler,
    stop_scheduler,
)
from src.infrastructure.database.connection import DatabaseManager
from src.infrastructure.database.migrations.runner import run_migrations
from src.utils.logging import setup_logging

logger = logging.getLogger(__name__)


async def run(migrate: bool = False) -> None:
    """Start the scheduler and block until SIGINT or SIGTERM.

    Args:
        migrate: Apply pending database migrations before starting.
    """
    settings = get_settings()
    setup_logging(settings)
    logger.info("Starting goal tracker scheduler (environment=%s)", settings.environment)

    if migrate:
        applied = await run_migrations(settings.database.url)
        logger.info("Applied %d migrations", len(applied))

    db_manager = DatabaseManager(settings)
    if not await db_manager.check_connection():
        logger.warning("School database is not reachable at startup")
    await db_manager.close()

    setup_dramatiq()
    await start_scheduler()

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    try:
        await stop_event.wait()
    finally:
        await stop_scheduler()
        shutdown_dramatiq()
        logger.info("Goal tracker scheduler stopped")


def main() -> None:
    """Console script entry point."""
    parser = argparse.ArgumentParser(description="Goal tracker scheduler")
    parser.add_argument(
        "--migrate",
        action="store_true",
        help="apply pending database migrations before starting",
    )
    args = parser.parse_args()
    asyncio.run(run(migrate=args.migrate))


if __name__ == "__main__":
    main()
