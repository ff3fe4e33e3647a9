# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification service for orchestrating notification delivery.

This service handles the notification flow for a NotificationRequest:
1. Expanding the request into one payload per recipient
2. Sending each payload through the enabled channels
3. Committing the created records in one session

The goal tracker uses it as its notification sink.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.connection import DatabaseManager
from src.infrastructure.notifications.channels import (
    BaseChannel,
    ChannelResult,
    InAppChannel,
    NotificationPayload,
)
from src.models.notification import NotificationRequest

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for sending notifications to users.

    Channels are built per emit() and bound to that call's session.
    """

    def __init__(self, db_manager: DatabaseManager) -> None:
        """Initialize the notification service.

        Args:
            db_manager: Database manager providing sessions.
        """
        self._db = db_manager

    def build_channels(self, session: AsyncSession) -> list[BaseChannel]:
        """Create the delivery channels for one session.

        Args:
            session: Database session the records are written to.

        Returns:
            Enabled channels, bound to the session.
        """
        in_app = InAppChannel()
        in_app.set_session(session)
        return [in_app]

    def build_payloads(self, request: NotificationRequest) -> list[NotificationPayload]:
        """Expand a request into one payload per distinct recipient.

        Args:
            request: Notification request.

        Returns:
            Payloads in recipient order, duplicates removed.
        """
        payloads: list[NotificationPayload] = []
        seen_ids: set[str] = set()

        for recipient_id, recipient_type in zip(request.recipient_ids, request.recipient_types):
            if str(recipient_id) in seen_ids:
                continue
            seen_ids.add(str(recipient_id))
            payloads.append(
                NotificationPayload(
                    notification_type=request.notification_type,
                    title=request.title,
                    message=request.message,
                    recipient_id=recipient_id,
                    recipient_type=recipient_type,
                    student_id=request.student_id,
                    category=request.category,
                    priority=request.priority,
                    data=dict(request.data),
                )
            )

        return payloads

    async def emit(self, request: NotificationRequest) -> list[ChannelResult]:
        """Deliver a notification request to all of its recipients.

        Args:
            request: Notification request.

        Returns:
            List of channel results, one per recipient and channel.
        """
        payloads = self.build_payloads(request)
        results: list[ChannelResult] = []

        async with self._db.get_session() as session:
            channels = self.build_channels(session)
            for payload in payloads:
                for channel in channels:
                    results.append(await channel.send(payload))

        failed = sum(1 for r in results if not r.succeeded)
        if failed:
            logger.warning(
                "%s notification: %d of %d channel sends failed",
                request.notification_type,
                failed,
                len(results),
            )
        else:
            logger.info(
                "Sent %s notification to %d recipients",
                request.notification_type,
                len(payloads),
            )

        return results

