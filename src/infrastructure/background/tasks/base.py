# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Async bridge for Dramatiq actors.

Dramatiq actors are synchronous and run on worker threads. The goal tracker
is async and talks to PostgreSQL through asyncpg, whose connections belong
to the event loop that opened them. Every worker thread therefore keeps one
long-lived event loop, and the thread's DatabaseManager is reset whenever a
fresh loop has to be created.
"""

import asyncio
import logging
import threading
from typing import Any, Coroutine, TypeVar

from src.infrastructure.database.connection import _clear_thread_db_connections

logger = logging.getLogger(__name__)

T = TypeVar("T")

_thread_local = threading.local()


def _get_thread_event_loop() -> asyncio.AbstractEventLoop:
    """Return this thread's event loop, creating it on first use.

    A new loop invalidates any engine the thread cached for a previous loop.
    """
    loop = getattr(_thread_local, "event_loop", None)
    if loop is not None and not loop.is_closed():
        return loop

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    _thread_local.event_loop = loop
    _clear_thread_db_connections()

    logger.debug("Created event loop for worker thread %s", threading.current_thread().name)
    return loop


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine to completion on the worker thread's loop.

    Args:
        coro: Coroutine to run.

    Returns:
        Result of the coroutine.

    Example:
        @dramatiq.actor
        def evaluate(student_id: str):
            async def _run():
                tracker = build_goal_tracker(get_worker_db_manager(), get_settings())
                return await tracker.evaluate_for_student(UUID(student_id))

            return run_async(_run()).to_dict()
    """
    return _get_thread_event_loop().run_until_complete(coro)


def close_thread_event_loop() -> None:
    """Close this thread's event loop, if it has one."""
    loop = getattr(_thread_local, "event_loop", None)
    if loop is not None and not loop.is_closed():
        loop.close()
    _thread_local.event_loop = None
