# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-app notification model."""

from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin


class Notification(Base, TimestampMixin):
    """A notification shown in a recipient's notification center."""

    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_recipient_read", "recipient_id", "is_read"),)

    id: Mapped[str] = mapped_column(
        postgresql.UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid4())
    )
    student_id: Mapped[str | None] = mapped_column(
        postgresql.UUID(as_uuid=False), ForeignKey("students.id", ondelete="CASCADE"), nullable=True
    )
    recipient_id: Mapped[str] = mapped_column(postgresql.UUID(as_uuid=False), nullable=False)
    recipient_type: Mapped[str] = mapped_column(String(20), nullable=False)
    notification_type: Mapped[str] = mapped_column(String(50), nullable=False)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[dict[str, Any] | None] = mapped_column(postgresql.JSONB, nullable=True)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="NORMAL")
    channels: Mapped[list[str]] = mapped_column(postgresql.JSONB, nullable=False, default=list)
    delivery_status: Mapped[dict[str, Any] | None] = mapped_column(postgresql.JSONB, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
