# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-app notification channel.

This channel creates notification records in the database
that are displayed within the application UI.
"""

import logging
from datetime import timedelta
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models.notification import Notification
from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryStatus,
    NotificationPayload,
)
from src.utils.datetime import format_iso, utc_now

logger = logging.getLogger(__name__)


class InAppChannel(BaseChannel):
    """In-app notification channel.

    Creates notification records in the notifications table.
    These are displayed in the application's notification center.

    This channel requires a database session to be set before
    sending notifications via set_session().
    """

    # Default expiration time for notifications (30 days)
    DEFAULT_EXPIRATION_DAYS = 30

    def __init__(self) -> None:
        """Initialize the in-app channel."""
        super().__init__()
        self._session: AsyncSession | None = None

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.IN_APP

    def set_session(self, session: AsyncSession) -> None:
        """Set the database session for this channel.

        Must be called before send() when using this channel.

        Args:
            session: Async database session.
        """
        self._session = session

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Create an in-app notification record.

        Args:
            payload: The notification payload.

        Returns:
            ChannelResult with delivery status.
        """
        if self._session is None:
            return self.create_failure_result(
                "Database session not set. Call set_session() first."
            )

        now = utc_now()

        try:
            notification = Notification(
                id=str(uuid4()),
                student_id=str(payload.student_id) if payload.student_id else None,
                recipient_id=str(payload.recipient_id),
                recipient_type=payload.recipient_type.value,
                notification_type=payload.notification_type,
                category=payload.category,
                title=payload.title,
                message=payload.message,
                data=payload.data,
                priority=payload.priority.value,
                channels=[ChannelType.IN_APP.value],
                delivery_status={
                    ChannelType.IN_APP.value: {
                        "status": DeliveryStatus.SENT.value,
                        "sent_at": format_iso(now),
                    }
                },
                expires_at=now + timedelta(days=self.DEFAULT_EXPIRATION_DAYS),
            )

            self._session.add(notification)
            await self._session.flush()

            self.logger.info(
                "Created in-app notification %s for %s %s",
                notification.id,
                payload.recipient_type.value.lower(),
                payload.recipient_id,
            )

            return self.create_success_result(
                message_id=notification.id,
                metadata={"notification_id": notification.id},
            )

        except Exception as e:
            self.logger.error(
                "Failed to create in-app notification for %s: %s",
                payload.recipient_id,
                str(e),
                exc_info=True,
            )
            return self.create_failure_result(f"Database error: {str(e)}")
