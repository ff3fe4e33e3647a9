# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Infrastructure layer for external service integrations.

This package contains clients and managers for:
- Database connections and schema migrations (PostgreSQL)
- Background task processing (Dramatiq, APScheduler)
- Notifications
"""
