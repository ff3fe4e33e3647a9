# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core package for the goal tracker.

This package contains cross-cutting configuration:
- config: Application configuration and settings
"""
