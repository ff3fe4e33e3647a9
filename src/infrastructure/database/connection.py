# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""School database connection management using SQLAlchemy async.

The school database stores students, attendance, progress snapshots, daily
activities, goals and notifications. Uses the SQLAlchemy 2.0 async API with
the asyncpg driver.

Two access paths are provided:
1. DatabaseManager: owns one engine and sessionmaker, lazily created.
2. get_worker_db_manager(): a thread-local manager for Dramatiq worker
   threads, each of which runs its own event loop.

Example:
    from src.infrastructure.database.connection import DatabaseManager

    manager = DatabaseManager(settings)
    async with manager.get_session() as session:
        result = await session.execute(select(StudentGoal))
        goals = result.scalars().all()
    await manager.close()
"""

import threading
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from src.core.config.settings import Settings


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the database error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class DatabaseManager:
    """Owns the async engine and sessionmaker for the school database.

    The engine is created on first use so a manager can be constructed
    outside of a running event loop.

    Attributes:
        _settings: Application settings.
        _engine: Cached async engine.
        _sessionmaker: Cached sessionmaker bound to _engine.
    """

    def __init__(self, settings: "Settings", url: str | None = None) -> None:
        """Initialize the manager.

        Args:
            settings: Application settings containing database configuration.
            url: Optional URL overriding the one built from settings.
        """
        self._settings = settings
        self._url = url or settings.database.url
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    def _get_or_create_engine(self) -> AsyncEngine:
        """Get or create the async engine.

        Returns:
            AsyncEngine for the school database.

        Raises:
            DatabaseError: If engine creation fails.
        """
        if self._engine is None:
            try:
                if self._url.startswith("sqlite"):
                    self._engine = create_async_engine(self._url, echo=self._settings.debug)
                else:
                    self._engine = create_async_engine(
                        self._url,
                        pool_size=self._settings.database.pool_size,
                        max_overflow=self._settings.database.max_overflow,
                        pool_pre_ping=True,
                        pool_recycle=1800,
                        echo=self._settings.debug,
                    )
            except SQLAlchemyError as e:
                raise DatabaseError("Failed to initialize database connection", e) from e

        return self._engine

    def _get_or_create_sessionmaker(self) -> async_sessionmaker[AsyncSession]:
        """Get or create the sessionmaker.

        Returns:
            async_sessionmaker bound to the engine.
        """
        if self._sessionmaker is None:
            self._sessionmaker = async_sessionmaker(
                bind=self._get_or_create_engine(),
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )

        return self._sessionmaker

    @property
    def engine(self) -> AsyncEngine:
        """Get the async engine, creating it if needed."""
        return self._get_or_create_engine()

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[AsyncSession]:
        """Get an async session for the school database.

        The session is automatically committed on success and rolled back
        on exception.

        Yields:
            AsyncSession for database operations.

        Raises:
            DatabaseError: If a database operation fails.
        """
        sessionmaker = self._get_or_create_sessionmaker()

        async with sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError("Database operation failed", e) from e
            except Exception:
                await session.rollback()
                raise

    async def check_connection(self) -> bool:
        """Check if the database is reachable.

        Returns:
            True if the database is reachable, False otherwise.
        """
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, DatabaseError):
            return False

    def forget_connections(self) -> None:
        """Drop cached engine references without awaiting disposal.

        Used when the owning event loop has been replaced; the old pool
        cannot be disposed from the new loop.
        """
        self._engine = None
        self._sessionmaker = None

    async def close(self) -> None:
        """Dispose the engine and its connection pool."""
        if self._engine is not None:
            await self._engine.dispose()
        self.forget_connections()


# =============================================================================
# WORKER THREAD-LOCAL MANAGER
# =============================================================================

# Each Dramatiq worker thread gets its own manager instance
_thread_local_manager = threading.local()


def get_worker_db_manager() -> DatabaseManager:
    """Get the DatabaseManager for the current worker thread.

    SQLAlchemy async engines are bound to the event loop they are created
    in, and each Dramatiq worker thread runs its own persistent loop (see
    background/tasks/base.py), so engines are never shared across threads.

    Returns:
        Thread-local DatabaseManager instance.
    """
    manager = getattr(_thread_local_manager, "db_manager", None)

    if manager is None:
        from src.core.config import get_settings

        manager = DatabaseManager(get_settings())
        _thread_local_manager.db_manager = manager

    return manager


def _clear_thread_db_connections() -> None:
    """Clear database connections for current thread.

    Called by run_async() when a new event loop is created for a thread.
    Safe to call even if no manager exists for the thread.
    """
    manager = getattr(_thread_local_manager, "db_manager", None)
    if manager is not None:
        manager.forget_connections()


def reset_worker_db_manager() -> None:
    """Reset worker DB manager for current thread.

    Primarily used for testing to ensure clean state between tests.
    """
    manager = getattr(_thread_local_manager, "db_manager", None)
    if manager is not None:
        manager.forget_connections()
        _thread_local_manager.db_manager = None
