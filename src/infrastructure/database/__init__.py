# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for PostgreSQL connections.

This package provides SQLAlchemy async database access to the school
database (students, attendance, snapshots, activities, goals,
notifications).

Example:
    from src.infrastructure.database import DatabaseManager

    manager = DatabaseManager(settings)
    async with manager.get_session() as session:
        result = await session.execute(select(StudentGoal))
"""

from src.infrastructure.database.connection import (
    DatabaseError,
    DatabaseManager,
    _clear_thread_db_connections,
    get_worker_db_manager,
    reset_worker_db_manager,
)

__all__ = [
    "DatabaseError",
    "DatabaseManager",
    "_clear_thread_db_connections",
    "get_worker_db_manager",
    "reset_worker_db_manager",
]
