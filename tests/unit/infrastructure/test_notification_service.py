# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the notification service and in-app channel."""

import asyncio
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from src.infrastructure.database.models.notification import Notification
from src.infrastructure.notifications import NotificationService
from src.infrastructure.notifications.channels import (
    ChannelType,
    DeliveryStatus,
    InAppChannel,
    NotificationPayload,
)
from src.models.notification import NotificationPriority, NotificationRequest, RecipientType


@pytest.fixture
def mock_session():
    """Create mock async database session."""
    session = MagicMock()
    session.add = MagicMock()
    session.flush = AsyncMock()
    return session


@pytest.fixture
def mock_db_manager(mock_session):
    """Create mock database manager yielding the mock session."""
    db_manager = MagicMock()
    db_manager.get_session.return_value.__aenter__.return_value = mock_session
    db_manager.get_session.return_value.__aexit__.return_value = False
    return db_manager


@pytest.fixture
def request_for(sample_student_id, sample_teacher_id):
    """Build notification requests for the sample teacher and student."""

    def _build(**overrides) -> NotificationRequest:
        fields = {
            "student_id": sample_student_id,
            "recipient_ids": [sample_teacher_id, sample_student_id],
            "recipient_types": [RecipientType.TEACHER, RecipientType.STUDENT],
            "notification_type": "GOAL_AT_RISK",
            "category": "GOALS",
            "title": "Goal At Risk: Read daily",
            "message": "Alice's goal is at risk.",
            "priority": NotificationPriority.HIGH,
            "data": {"goal_id": "g-1", "progress": 20.0, "days_left": 8},
        }
        fields.update(overrides)
        return NotificationRequest(**fields)

    return _build


@pytest.fixture
def payload(sample_student_id, sample_teacher_id):
    """Create a single-recipient payload."""
    return NotificationPayload(
        notification_type="GOAL_FAILED",
        title="Goal Not Achieved: Read daily",
        message="Alice's goal was not achieved.",
        recipient_id=sample_teacher_id,
        recipient_type=RecipientType.TEACHER,
        student_id=sample_student_id,
        category="GOALS",
        priority=NotificationPriority.NORMAL,
        data={"goal_id": "g-1"},
    )


class TestNotificationRequest:
    """Tests for request validation."""

    def test_recipient_lists_must_match(self, request_for, sample_teacher_id):
        """Each recipient needs a type."""
        with pytest.raises(ValueError):
            request_for(recipient_ids=[sample_teacher_id], recipient_types=[])


class TestBuildPayloads:
    """Tests for request expansion."""

    def test_one_payload_per_recipient(
        self, mock_db_manager, request_for, sample_teacher_id, sample_student_id
    ):
        """Recipients keep their order and roles."""
        service = NotificationService(mock_db_manager)

        payloads = service.build_payloads(request_for())

        assert [p.recipient_id for p in payloads] == [sample_teacher_id, sample_student_id]
        assert [p.recipient_type for p in payloads] == [
            RecipientType.TEACHER,
            RecipientType.STUDENT,
        ]
        assert all(p.category == "GOALS" for p in payloads)
        assert all(p.priority is NotificationPriority.HIGH for p in payloads)

    def test_duplicate_recipients_removed(self, mock_db_manager, request_for, sample_teacher_id):
        """The same recipient is notified once."""
        service = NotificationService(mock_db_manager)
        request = request_for(
            recipient_ids=[sample_teacher_id, sample_teacher_id],
            recipient_types=[RecipientType.TEACHER, RecipientType.TEACHER],
        )

        payloads = service.build_payloads(request)

        assert len(payloads) == 1

    def test_payload_data_is_copied(self, mock_db_manager, request_for):
        """Payloads do not share the request's data dict."""
        service = NotificationService(mock_db_manager)
        request = request_for()

        payloads = service.build_payloads(request)
        payloads[0].data["extra"] = True

        assert "extra" not in request.data
        assert "extra" not in payloads[1].data


class TestEmit:
    """Tests for notification delivery."""

    @pytest.mark.asyncio
    async def test_creates_record_per_recipient(self, mock_db_manager, mock_session, request_for):
        """One in-app record is created per recipient in one session."""
        service = NotificationService(mock_db_manager)

        results = await service.emit(request_for())

        assert len(results) == 2
        assert all(r.succeeded for r in results)
        assert mock_session.add.call_count == 2
        mock_db_manager.get_session.assert_called_once()

    @pytest.mark.asyncio
    async def test_reports_failed_sends(self, mock_db_manager, mock_session, request_for):
        """Channel failures are reported in the results."""
        mock_session.flush.side_effect = RuntimeError("constraint violated")
        service = NotificationService(mock_db_manager)

        results = await service.emit(request_for())

        assert [r.status for r in results] == [DeliveryStatus.FAILED, DeliveryStatus.FAILED]

    @pytest.mark.asyncio
    async def test_concurrent_emits_keep_their_sessions(self, request_for):
        """Interleaved emits write each record to its own session."""

        async def yield_once():
            await asyncio.sleep(0)

        def session_context(session):
            ctx = MagicMock()
            ctx.__aenter__ = AsyncMock(return_value=session)
            ctx.__aexit__ = AsyncMock(return_value=False)
            return ctx

        sessions = []
        for _ in range(2):
            session = MagicMock()
            session.flush = AsyncMock(side_effect=yield_once)
            sessions.append(session)
        db_manager = MagicMock()
        db_manager.get_session.side_effect = [session_context(s) for s in sessions]
        service = NotificationService(db_manager)

        await asyncio.gather(
            service.emit(request_for(notification_type="GOAL_AT_RISK")),
            service.emit(request_for(notification_type="GOAL_ACHIEVED")),
        )

        added = [
            [c.args[0].notification_type for c in s.add.call_args_list] for s in sessions
        ]
        assert added == [
            ["GOAL_AT_RISK", "GOAL_AT_RISK"],
            ["GOAL_ACHIEVED", "GOAL_ACHIEVED"],
        ]

    def test_channels_bound_per_session(self, mock_db_manager, mock_session):
        """Each call builds fresh channels bound to the given session."""
        service = NotificationService(mock_db_manager)

        first = service.build_channels(mock_session)
        second = service.build_channels(mock_session)

        assert [c.channel_type for c in first] == [ChannelType.IN_APP]
        assert first[0] is not second[0]
        assert first[0]._session is mock_session


class TestInAppChannel:
    """Tests for the in-app channel."""

    @pytest.mark.asyncio
    async def test_requires_session(self, payload):
        """Sending without a session fails cleanly."""
        channel = InAppChannel()

        result = await channel.send(payload)

        assert result.succeeded is False
        assert "set_session" in result.error_message

    @pytest.mark.asyncio
    async def test_creates_notification_record(self, mock_session, payload, sample_teacher_id):
        """The record carries recipient role, category and priority."""
        channel = InAppChannel()
        channel.set_session(mock_session)

        result = await channel.send(payload)

        assert result.succeeded is True
        assert result.channel is ChannelType.IN_APP
        record = mock_session.add.call_args.args[0]
        assert isinstance(record, Notification)
        assert record.recipient_id == str(sample_teacher_id)
        assert record.recipient_type == "TEACHER"
        assert record.category == "GOALS"
        assert record.priority == "NORMAL"
        assert record.channels == ["in_app"]
        assert record.delivery_status["in_app"]["status"] == "sent"
        assert record.expires_at is not None
        assert result.message_id == record.id

    @pytest.mark.asyncio
    async def test_flush_failure_returns_failure(self, mock_session, payload):
        """Database errors become failure results."""
        mock_session.flush.side_effect = RuntimeError("db down")
        channel = InAppChannel()
        channel.set_session(mock_session)

        result = await channel.send(payload)

        assert result.status is DeliveryStatus.FAILED
        assert "db down" in result.error_message

    @pytest.mark.asyncio
    async def test_payload_without_student(self, mock_session, sample_teacher_id):
        """Notifications need not be about a student."""
        channel = InAppChannel()
        channel.set_session(mock_session)

        await channel.send(
            NotificationPayload(
                notification_type="SYSTEM",
                title="Maintenance",
                message="Scheduled maintenance tonight.",
                recipient_id=uuid4(),
                recipient_type=RecipientType.TEACHER,
            )
        )

        assert mock_session.add.call_args.args[0].student_id is None
