"""School Goal Tracker.

Automatic evaluation of personalised student goals: metric collection,
progress and lifecycle tracking, and status-change notifications.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
