# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for the goal tracker.

This package contains domain services that encapsulate business logic.

Domains:
    goals: Goal evaluation engine, notifications and goal management.
"""
