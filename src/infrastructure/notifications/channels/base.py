# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base classes for notification channels.

This module defines the abstract base class and shared types
for all notification channels. Each channel handles delivery
through a specific medium.

Channel implementations must be async and report failures through
ChannelResult instead of raising.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from src.models.notification import NotificationPriority, RecipientType
from src.utils.datetime import utc_now


class ChannelType(str, Enum):
    """Available notification channel types."""

    IN_APP = "in_app"


class DeliveryStatus(str, Enum):
    """Delivery status for a channel."""

    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class NotificationPayload:
    """Payload for sending a notification to one recipient.

    Attributes:
        notification_type: Type of notification (e.g. GOAL_ACHIEVED).
        title: Notification title.
        message: Notification message body.
        recipient_id: ID of the recipient.
        recipient_type: Whether the recipient is a teacher, student or parent.
        student_id: Student this notification is about.
        category: Grouping shown in the notification center.
        priority: Notification priority.
        data: Additional data for the notification.
    """

    notification_type: str
    title: str
    message: str
    recipient_id: UUID
    recipient_type: RecipientType
    student_id: UUID | None = None
    category: str | None = None
    priority: NotificationPriority = NotificationPriority.NORMAL
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class ChannelResult:
    """Result of a channel send operation.

    Attributes:
        channel: Which channel was used.
        status: Delivery status.
        message_id: Channel-specific message ID (if available).
        error_message: Error message if failed.
        sent_at: When message was sent.
        metadata: Additional result metadata.
    """

    channel: ChannelType
    status: DeliveryStatus
    message_id: str | None = None
    error_message: str | None = None
    sent_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status in (DeliveryStatus.SENT, DeliveryStatus.DELIVERED)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage.

        Returns:
            Dictionary representation for JSONB storage.
        """
        return {
            "channel": self.channel.value,
            "status": self.status.value,
            "message_id": self.message_id,
            "error_message": self.error_message,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "metadata": self.metadata,
        }


class BaseChannel(ABC):
    """Abstract base class for notification channels.

    Attributes:
        channel_type: The type of this channel.
    """

    def __init__(self) -> None:
        """Initialize the channel."""
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    @abstractmethod
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        ...

    @abstractmethod
    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Send a notification through this channel.

        Args:
            payload: The notification payload to send.

        Returns:
            ChannelResult with delivery status.
        """
        ...

    def create_success_result(
        self,
        message_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ChannelResult:
        """Create a successful channel result.

        Args:
            message_id: Channel-specific message ID.
            metadata: Additional metadata.

        Returns:
            ChannelResult with SENT status.
        """
        return ChannelResult(
            channel=self.channel_type,
            status=DeliveryStatus.SENT,
            message_id=message_id,
            sent_at=utc_now(),
            metadata=metadata or {},
        )

    def create_failure_result(
        self,
        error_message: str,
        metadata: dict[str, Any] | None = None,
    ) -> ChannelResult:
        """Create a failed channel result.

        Args:
            error_message: Error description.
            metadata: Additional metadata.

        Returns:
            ChannelResult with FAILED status.
        """
        return ChannelResult(
            channel=self.channel_type,
            status=DeliveryStatus.FAILED,
            error_message=error_message,
            sent_at=utc_now(),
            metadata=metadata or {},
        )
