# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for the goal
tracker. Settings are loaded from environment variables with sensible
defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> settings.goals.batch_size
    25
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_DB_PASSWORD = "goaltracker_password"


class DatabaseSettings(BaseSettings):
    """School database configuration.

    The school database holds students, attendance records, progress
    snapshots, daily activities, goals and notifications.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        extra="ignore",
    )

    user: str = "goaltracker"
    password: SecretStr = SecretStr(DEFAULT_DB_PASSWORD)
    host: str = "localhost"
    port: int = 5432
    database: str = "school"
    pool_size: int = 10
    max_overflow: int = 20

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"

    @property
    def sync_url(self) -> str:
        """Build the sync database URL for migrations."""
        pwd = self.password.get_secret_value()
        return f"postgresql://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class RedisSettings(BaseSettings):
    """Redis configuration for the Dramatiq broker and result backend.

    Attributes:
        host: Redis server host.
        port: Redis server port.
        password: Redis password.
        database: Redis database number.
    """

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        extra="ignore",
    )

    host: str = "localhost"
    port: int = 6379
    password: SecretStr = SecretStr("")
    database: int = 0

    @property
    def url(self) -> str:
        """Build the Redis connection URL."""
        pwd = self.password.get_secret_value()
        if pwd:
            return f"redis://:{pwd}@{self.host}:{self.port}/{self.database}"
        return f"redis://{self.host}:{self.port}/{self.database}"


class WorkerSettings(BaseSettings):
    """Background worker configuration.

    Attributes:
        processes: Number of worker processes.
        threads: Number of threads per process.
    """

    model_config = SettingsConfigDict(
        env_prefix="WORKER_",
        extra="ignore",
    )

    processes: int = 2
    threads: int = 4


class GoalTrackingSettings(BaseSettings):
    """Goal auto-evaluation configuration.

    Attributes:
        recheck_interval_days: Goals checked more recently than this are
            not due for the batch sweep.
        batch_size: Number of goals per batch chunk.
        max_concurrency: Maximum in-flight goal evaluations during a batch.
        batch_pause_seconds: Pause between batch chunks (0 disables).
        student_goal_limit: Maximum active goals evaluated per student.
        metric_window_days: Trailing window for attendance and activity reads.
        subject_sample_limit: Number of recent daily activities sampled for
            subject understanding.
        at_risk_progress_threshold: Progress (%) below which a goal may be
            flagged at risk.
        at_risk_time_used_threshold: Elapsed time (%) above which a goal may
            be flagged at risk.
        change_tolerance: Minimum value delta that counts as a change.
        batch_cron: Cron expression for the batch evaluation job.
        notifications_enabled: Whether status transitions emit notifications.
    """

    model_config = SettingsConfigDict(
        env_prefix="GOALS_",
        extra="ignore",
    )

    recheck_interval_days: int = Field(default=7, ge=1)
    batch_size: int = Field(default=25, ge=1)
    max_concurrency: int = Field(default=25, ge=1)
    batch_pause_seconds: float = Field(default=0.1, ge=0.0)
    student_goal_limit: int = Field(default=50, ge=1)
    metric_window_days: int = Field(default=30, ge=1)
    subject_sample_limit: int = Field(default=20, ge=1)
    at_risk_progress_threshold: float = Field(default=30.0, ge=0.0, le=100.0)
    at_risk_time_used_threshold: float = Field(default=70.0, ge=0.0, le=100.0)
    change_tolerance: float = Field(default=0.01, ge=0.0)
    batch_cron: str = "0 8 * * *"
    notifications_enabled: bool = True


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        database: School database settings.
        redis: Redis settings.
        worker: Background worker settings.
        goals: Goal tracking settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    # Subsettings - loaded with their own env prefixes
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    worker: WorkerSettings = Field(default_factory=WorkerSettings)
    goals: GoalTrackingSettings = Field(default_factory=GoalTrackingSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            if self.database.password.get_secret_value() == DEFAULT_DB_PASSWORD:
                raise ValueError(
                    "Database password must be changed from default in production. "
                    "Set DB_PASSWORD environment variable."
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
