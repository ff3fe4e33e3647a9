# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification emission models.

NotificationRequest is the contract between domain code that decides a
notification is due and the notification service that delivers it.
"""

from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class NotificationPriority(str, Enum):
    """Notification priority levels."""

    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class RecipientType(str, Enum):
    """Role of a notification recipient."""

    TEACHER = "TEACHER"
    STUDENT = "STUDENT"
    PARENT = "PARENT"


class NotificationRequest(BaseModel):
    """A notification to deliver to one or more recipients.

    Attributes:
        student_id: Student the notification is about.
        recipient_ids: Recipient identifiers.
        recipient_types: Recipient roles, parallel to recipient_ids.
        notification_type: Machine-readable type (e.g. GOAL_ACHIEVED).
        category: Grouping shown in the notification center.
        title: Short human-readable title.
        message: Human-readable body.
        priority: Delivery priority.
        data: Structured payload for clients.
    """

    student_id: UUID
    recipient_ids: list[UUID] = Field(min_length=1)
    recipient_types: list[RecipientType] = Field(min_length=1)
    notification_type: str
    category: str | None = None
    title: str
    message: str
    priority: NotificationPriority = NotificationPriority.NORMAL
    data: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_recipients(self) -> "NotificationRequest":
        if len(self.recipient_types) != len(self.recipient_ids):
            raise ValueError("recipient_types must match recipient_ids")
        return self
