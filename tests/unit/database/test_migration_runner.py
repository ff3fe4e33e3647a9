# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the programmatic migration runner."""

import pytest

from src.infrastructure.database.migrations.runner import (
    MIGRATIONS,
    MigrationError,
    _load_upgrade,
    get_pending_migrations,
)


class TestGetPendingMigrations:
    """Tests for pending revision resolution."""

    def test_fresh_database_gets_everything(self):
        """A database without a version applies every revision."""
        assert get_pending_migrations(None) == MIGRATIONS

    def test_up_to_date(self):
        """A database at the latest revision has nothing pending."""
        assert get_pending_migrations(MIGRATIONS[-1]) == []

    def test_target_revision_is_inclusive(self):
        """Migrating to a target stops after that revision."""
        assert get_pending_migrations(None, MIGRATIONS[0]) == [MIGRATIONS[0]]

    def test_unknown_current_revision(self):
        """A database at an unknown revision is an error."""
        with pytest.raises(MigrationError, match="unknown revision"):
            get_pending_migrations("999_from_the_future")

    def test_unknown_target_revision(self):
        """An unknown target revision is an error."""
        with pytest.raises(MigrationError, match="Unknown target"):
            get_pending_migrations(None, "999_from_the_future")


class TestLoadUpgrade:
    """Tests for revision module loading."""

    def test_loads_initial_schema(self):
        """Every listed revision exposes upgrade()."""
        for revision in MIGRATIONS:
            assert callable(_load_upgrade(revision))

    def test_missing_module(self):
        """Unknown modules raise MigrationError."""
        with pytest.raises(MigrationError, match="Cannot import"):
            _load_upgrade("999_missing")
