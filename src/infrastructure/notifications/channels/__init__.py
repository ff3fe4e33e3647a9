# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification channels for delivering notifications.

- InAppChannel: Creates notification records in the database

Usage:
    from src.infrastructure.notifications.channels import (
        InAppChannel,
        NotificationPayload,
    )

    in_app = InAppChannel()
    in_app.set_session(session)
    result = await in_app.send(payload)
"""

from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryStatus,
    NotificationPayload,
)
from src.infrastructure.notifications.channels.in_app import InAppChannel

__all__ = [
    # Base types
    "BaseChannel",
    "ChannelResult",
    "ChannelType",
    "DeliveryStatus",
    "NotificationPayload",
    # Channels
    "InAppChannel",
]
