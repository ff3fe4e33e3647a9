# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for goal status-change notifications."""

from unittest.mock import AsyncMock

import pytest

from src.domains.goals.notifier import GoalNotifier
from src.domains.goals.progress import GoalEvaluation
from src.models.goal import GoalStatus
from src.models.notification import NotificationPriority, RecipientType


def evaluation_for(status: GoalStatus, progress: float = 20.0, days_left: int = 8) -> GoalEvaluation:
    """Build an evaluation result carrying a new status."""
    return GoalEvaluation(
        current_value=progress,
        progress=progress,
        status=status,
        achieved_at=None,
        days_left=days_left,
        time_used_percent=75.0,
    )


@pytest.fixture
def sink():
    """Create mock notification sink."""
    return AsyncMock()


@pytest.fixture
def directory():
    """Create mock student directory."""
    mock = AsyncMock()
    mock.get_display_name.return_value = "Alice"
    return mock


@pytest.fixture
def notifier(sink, directory):
    """Create notifier under test."""
    return GoalNotifier(sink=sink, directory=directory)


class TestBuildRequest:
    """Tests for notification content."""

    def test_teacher_and_student_recipients(
        self, notifier, make_goal, sample_teacher_id, sample_student_id
    ):
        """The owning teacher and a student who can see the goal are notified."""
        goal = make_goal(title="Read daily")

        request = notifier.build_request(goal, evaluation_for(GoalStatus.AT_RISK), "Alice")

        assert request.recipient_ids == [sample_teacher_id, sample_student_id]
        assert request.recipient_types == [RecipientType.TEACHER, RecipientType.STUDENT]
        assert request.student_id == sample_student_id
        assert request.category == "GOALS"

    def test_hidden_goal_notifies_teacher_only(self, notifier, make_goal, sample_teacher_id):
        """Students are not told about goals hidden from them."""
        goal = make_goal(visible_to_student=False)

        request = notifier.build_request(goal, evaluation_for(GoalStatus.FAILED), "Alice")

        assert request.recipient_ids == [sample_teacher_id]
        assert request.recipient_types == [RecipientType.TEACHER]

    def test_no_recipients(self, notifier, make_goal):
        """Without a teacher or a visible student there is nothing to send."""
        goal = make_goal(teacher_id=None, visible_to_student=False)

        assert notifier.build_request(goal, evaluation_for(GoalStatus.FAILED), "Alice") is None

    def test_status_without_template(self, notifier, make_goal):
        """IN_PROGRESS and CANCELLED transitions are not announced."""
        goal = make_goal(status=GoalStatus.AT_RISK)

        assert notifier.build_request(goal, evaluation_for(GoalStatus.IN_PROGRESS), "A") is None
        assert notifier.build_request(goal, evaluation_for(GoalStatus.CANCELLED), "A") is None

    def test_achieved_content(self, notifier, make_goal):
        """Achievement notifications are high priority with the full progress."""
        goal = make_goal(title="Read daily")

        request = notifier.build_request(
            goal, evaluation_for(GoalStatus.ACHIEVED, progress=100.0), "Alice"
        )

        assert request.notification_type == "GOAL_ACHIEVED"
        assert request.title == "Goal Achieved: Read daily"
        assert request.message == 'Alice has achieved their goal "Read daily" with 100% completion!'
        assert request.priority is NotificationPriority.HIGH

    def test_at_risk_content(self, notifier, make_goal):
        """At-risk notifications show progress to one decimal and days left."""
        goal = make_goal(title="Read daily")

        request = notifier.build_request(
            goal, evaluation_for(GoalStatus.AT_RISK, progress=22.44, days_left=6), "Alice"
        )

        assert request.notification_type == "GOAL_AT_RISK"
        assert request.title == "Goal At Risk: Read daily"
        assert request.message == (
            "Alice's goal \"Read daily\" is at risk. Only 22.4% complete with 6 days remaining."
        )
        assert request.priority is NotificationPriority.HIGH
        assert request.data == {"goal_id": str(goal.id), "progress": 22.44, "days_left": 6}

    def test_failed_content(self, notifier, make_goal):
        """Failure notifications are normal priority."""
        goal = make_goal(title="Read daily")

        request = notifier.build_request(goal, evaluation_for(GoalStatus.FAILED), "Alice")

        assert request.notification_type == "GOAL_FAILED"
        assert request.title == "Goal Not Achieved: Read daily"
        assert request.message == 'Alice\'s goal "Read daily" was not achieved by the target date.'
        assert request.priority is NotificationPriority.NORMAL


class TestNotifyStatusChange:
    """Tests for emission behaviour."""

    @pytest.mark.asyncio
    async def test_emits_once(self, notifier, sink, make_goal):
        """A transition hands exactly one request to the sink."""
        goal = make_goal()

        sent = await notifier.notify_status_change(goal, evaluation_for(GoalStatus.AT_RISK))

        assert sent is True
        sink.emit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_same_status_not_emitted(self, notifier, sink, make_goal):
        """No transition, no notification."""
        goal = make_goal(status=GoalStatus.AT_RISK)

        sent = await notifier.notify_status_change(goal, evaluation_for(GoalStatus.AT_RISK))

        assert sent is False
        sink.emit.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_recipients_not_emitted(self, notifier, sink, make_goal):
        """Requests with nobody to notify are dropped."""
        goal = make_goal(teacher_id=None, visible_to_student=False)

        sent = await notifier.notify_status_change(goal, evaluation_for(GoalStatus.FAILED))

        assert sent is False
        sink.emit.assert_not_called()

    @pytest.mark.asyncio
    async def test_sink_errors_swallowed(self, notifier, sink, make_goal):
        """Delivery failures are logged, not raised."""
        sink.emit.side_effect = ConnectionError("transport down")
        goal = make_goal()

        sent = await notifier.notify_status_change(goal, evaluation_for(GoalStatus.FAILED))

        assert sent is False

    @pytest.mark.asyncio
    async def test_disabled(self, sink, directory, make_goal):
        """A disabled notifier never emits."""
        notifier = GoalNotifier(sink=sink, directory=directory, enabled=False)

        sent = await notifier.notify_status_change(make_goal(), evaluation_for(GoalStatus.FAILED))

        assert sent is False
        sink.emit.assert_not_called()
        directory.get_display_name.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "lookup",
        [AsyncMock(return_value=None), AsyncMock(side_effect=RuntimeError("lookup failed"))],
    )
    async def test_student_name_fallback(self, notifier, sink, directory, make_goal, lookup):
        """Unknown or unreadable names fall back to a generic label."""
        directory.get_display_name = lookup
        goal = make_goal(title="Read daily")

        await notifier.notify_status_change(goal, evaluation_for(GoalStatus.FAILED))

        request = sink.emit.await_args.args[0]
        assert request.message.startswith("Student's goal")
