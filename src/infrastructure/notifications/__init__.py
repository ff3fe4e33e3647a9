# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification delivery for the goal tracker.

Key Components:
- NotificationService: Expands a NotificationRequest per recipient and
  delivers it through the enabled channels
- Channels: InAppChannel
- NotificationPayload: Data structure for notification content

Usage:
    from src.infrastructure.notifications import NotificationService

    service = NotificationService(db_manager)
    results = await service.emit(request)
"""

from src.infrastructure.notifications.channels import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryStatus,
    InAppChannel,
    NotificationPayload,
)
from src.infrastructure.notifications.service import NotificationService

__all__ = [
    # Service
    "NotificationService",
    # Channel types
    "BaseChannel",
    "ChannelResult",
    "ChannelType",
    "DeliveryStatus",
    "NotificationPayload",
    # Channels
    "InAppChannel",
]
