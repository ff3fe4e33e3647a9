# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Goal status-change notifications.

Translates a goal status transition into a NotificationRequest and hands it
to the notification sink. Delivery is best effort: the goal's stored state is
the source of truth, so a failed delivery is logged and never propagated.
"""

import logging
from dataclasses import dataclass

from src.domains.goals.progress import GoalEvaluation
from src.domains.goals.sources import NotificationSink, StudentDirectory
from src.models.goal import GoalRecord, GoalStatus
from src.models.notification import NotificationPriority, NotificationRequest, RecipientType

logger = logging.getLogger(__name__)

GOALS_CATEGORY = "GOALS"
DEFAULT_STUDENT_NAME = "Student"


@dataclass(frozen=True)
class _Template:
    title: str
    message: str
    priority: NotificationPriority


STATUS_TEMPLATES: dict[GoalStatus, _Template] = {
    GoalStatus.ACHIEVED: _Template(
        title="Goal Achieved: {title}",
        message='{student_name} has achieved their goal "{title}" with {progress:g}% completion!',
        priority=NotificationPriority.HIGH,
    ),
    GoalStatus.AT_RISK: _Template(
        title="Goal At Risk: {title}",
        message=(
            '{student_name}\'s goal "{title}" is at risk. Only {progress:.1f}% complete '
            "with {days_left} days remaining."
        ),
        priority=NotificationPriority.HIGH,
    ),
    GoalStatus.FAILED: _Template(
        title="Goal Not Achieved: {title}",
        message='{student_name}\'s goal "{title}" was not achieved by the target date.',
        priority=NotificationPriority.NORMAL,
    ),
}


class GoalNotifier:
    """Emits one notification per observed goal status transition.

    Attributes:
        _sink: Notification transport.
        _directory: Student name lookup.
        _enabled: When False, transitions are logged but not emitted.
    """

    def __init__(
        self,
        sink: NotificationSink,
        directory: StudentDirectory,
        enabled: bool = True,
    ) -> None:
        """Initialize the notifier.

        Args:
            sink: Notification transport.
            directory: Student name lookup.
            enabled: Whether to emit notifications at all.
        """
        self._sink = sink
        self._directory = directory
        self._enabled = enabled

    def build_request(
        self,
        goal: GoalRecord,
        evaluation: GoalEvaluation,
        student_name: str,
    ) -> NotificationRequest | None:
        """Build the notification for a goal's new status.

        Args:
            goal: Goal as it was before the transition.
            evaluation: Evaluation carrying the new status.
            student_name: Display name used in the message.

        Returns:
            NotificationRequest, or None if the status has no notification
            or there is nobody to notify.
        """
        template = STATUS_TEMPLATES.get(evaluation.status)
        if template is None:
            return None

        recipient_ids = []
        recipient_types = []
        if goal.teacher_id is not None:
            recipient_ids.append(goal.teacher_id)
            recipient_types.append(RecipientType.TEACHER)
        if goal.visible_to_student:
            recipient_ids.append(goal.student_id)
            recipient_types.append(RecipientType.STUDENT)

        if not recipient_ids:
            return None

        fields = {
            "title": goal.title,
            "student_name": student_name,
            "progress": evaluation.progress,
            "days_left": evaluation.days_left,
        }

        return NotificationRequest(
            student_id=goal.student_id,
            recipient_ids=recipient_ids,
            recipient_types=recipient_types,
            notification_type=f"GOAL_{evaluation.status.value}",
            category=GOALS_CATEGORY,
            title=template.title.format(**fields),
            message=template.message.format(**fields),
            priority=template.priority,
            data={
                "goal_id": str(goal.id),
                "progress": evaluation.progress,
                "days_left": evaluation.days_left,
            },
        )

    async def notify_status_change(self, goal: GoalRecord, evaluation: GoalEvaluation) -> bool:
        """Notify stakeholders that a goal changed status.

        Args:
            goal: Goal as it was before the transition.
            evaluation: Evaluation carrying the new status.

        Returns:
            True if a notification was handed to the sink.
        """
        if evaluation.status is goal.status:
            return False

        if not self._enabled:
            logger.debug(
                "Notifications disabled, skipping goal %s transition to %s",
                goal.id,
                evaluation.status.value,
            )
            return False

        student_name = await self._resolve_student_name(goal)
        request = self.build_request(goal, evaluation, student_name)
        if request is None:
            logger.debug(
                "No notification for goal %s transition %s -> %s",
                goal.id,
                goal.status.value,
                evaluation.status.value,
            )
            return False

        try:
            await self._sink.emit(request)
        except Exception as e:
            logger.error(
                "Failed to emit %s notification for goal %s: %s",
                request.notification_type,
                goal.id,
                e,
                exc_info=True,
            )
            return False

        logger.info(
            "Emitted %s notification for goal %s to %d recipients",
            request.notification_type,
            goal.id,
            len(request.recipient_ids),
        )
        return True

    async def _resolve_student_name(self, goal: GoalRecord) -> str:
        """Look up the student's display name, falling back to a generic label."""
        try:
            name = await self._directory.get_display_name(goal.student_id)
        except Exception as e:
            logger.warning("Could not resolve name for student %s: %s", goal.student_id, e)
            return DEFAULT_STUDENT_NAME
        return name or DEFAULT_STUDENT_NAME
