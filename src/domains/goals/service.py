# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Goal management service.

This module provides the GoalService used by teachers and administrators:
- Goal CRUD operations
- Manual progress updates and status overrides
- Filtered, paginated goal listing

Manual updates keep the same invariants as automatic evaluation: progress
is always derived from current and target value, and reaching the target
on an active goal marks it ACHIEVED and notifies stakeholders.

Example:
    >>> service = GoalService(store, notifier)
    >>> goal = await service.create_goal(request, teacher_id=teacher.id)
    >>> goal = await service.update_goal(goal.id, UpdateGoalRequest(current_value=12))
"""

import logging
from datetime import datetime
from typing import Any, Callable
from uuid import UUID

from src.domains.goals.exceptions import GoalNotFoundError, InvalidGoalError
from src.domains.goals.notifier import GoalNotifier
from src.domains.goals.progress import (
    GoalEvaluation,
    compute_progress,
    days_left_until,
    time_used_percent,
)
from src.domains.goals.sources import GoalStore
from src.models.goal import (
    CreateGoalRequest,
    GoalListFilter,
    GoalListResponse,
    GoalRecord,
    GoalStatus,
    UpdateGoalRequest,
)
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class GoalService:
    """Service for managing student goals.

    Attributes:
        _store: Goal persistence.
        _notifier: Status-change notifications.
        _clock: Returns the current UTC time.
    """

    def __init__(
        self,
        store: GoalStore,
        notifier: GoalNotifier,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the goal service.

        Args:
            store: Goal persistence.
            notifier: Status-change notifications.
            clock: Source of the current time.
        """
        self._store = store
        self._notifier = notifier
        self._clock = clock

    async def create_goal(
        self,
        request: CreateGoalRequest,
        teacher_id: UUID | None = None,
    ) -> GoalRecord:
        """Create a goal for a student.

        The starting value becomes the baseline and progress is computed
        from it.

        Args:
            request: Goal creation request.
            teacher_id: Teacher who assigns the goal.

        Returns:
            Created goal.
        """
        fields: dict[str, Any] = {
            "student_id": request.student_id,
            "teacher_id": teacher_id,
            "goal_type": request.goal_type,
            "category": request.category,
            "title": request.title,
            "description": request.description,
            "metric": request.metric,
            "unit": request.unit,
            "target_value": request.target_value,
            "current_value": request.current_value,
            "baseline_value": request.current_value,
            "progress": compute_progress(request.current_value, request.target_value),
            "start_date": request.start_date,
            "target_date": request.target_date,
            "status": GoalStatus.IN_PROGRESS,
            "check_frequency": request.check_frequency,
            "visible_to_student": request.visible_to_student,
            "visible_to_parent": request.visible_to_parent,
            "support_actions": request.support_actions,
            "milestones": (
                [m.model_dump(mode="json") for m in request.milestones]
                if request.milestones
                else None
            ),
        }

        goal = await self._store.create(fields)
        logger.info(
            "Goal created: %s (student=%s, type=%s)",
            goal.id,
            goal.student_id,
            goal.goal_type.value,
        )
        return goal

    async def get_goal(self, goal_id: UUID) -> GoalRecord:
        """Get a goal by ID.

        Raises:
            GoalNotFoundError: If the goal does not exist.
        """
        goal = await self._store.find_by_id(goal_id)
        if goal is None:
            raise GoalNotFoundError(f"Goal {goal_id} not found")
        return goal

    async def update_goal(self, goal_id: UUID, request: UpdateGoalRequest) -> GoalRecord:
        """Update a goal.

        Progress is recomputed whenever current or target value changes. An
        active goal whose progress reaches 100 becomes ACHIEVED, overriding
        any explicit status in the request.

        Args:
            goal_id: Goal identifier.
            request: Fields to change.

        Returns:
            Updated goal.

        Raises:
            GoalNotFoundError: If the goal does not exist.
            InvalidGoalError: If the new target date is not after the start date.
        """
        goal = await self.get_goal(goal_id)
        now = self._clock()

        fields = request.model_dump(exclude_unset=True, exclude={"milestones"})
        if "milestones" in request.model_fields_set:
            fields["milestones"] = (
                [m.model_dump(mode="json") for m in request.milestones]
                if request.milestones is not None
                else None
            )

        target_date = fields.get("target_date", goal.target_date)
        if target_date is None or target_date <= goal.start_date:
            raise InvalidGoalError("target_date must be after start_date")

        current_value = fields.get("current_value", goal.current_value)
        target_value = fields.get("target_value", goal.target_value)
        if current_value is None or target_value is None:
            raise InvalidGoalError("current_value and target_value cannot be cleared")

        status = fields.get("status") or goal.status
        progress = goal.progress
        if "current_value" in fields or "target_value" in fields:
            progress = compute_progress(current_value, target_value)
            fields["progress"] = progress
            if progress >= 100 and not goal.status.is_terminal:
                status = GoalStatus.ACHIEVED

        fields["status"] = status
        if status is GoalStatus.ACHIEVED and goal.achieved_at is None:
            fields["achieved_at"] = now

        updated = await self._store.update(goal_id, fields)
        if updated is None:
            raise GoalNotFoundError(f"Goal {goal_id} not found")

        logger.info("Goal updated: %s", goal_id)

        if status is not goal.status:
            logger.info(
                "Goal %s status set %s -> %s",
                goal_id,
                goal.status.value,
                status.value,
            )
            evaluation = GoalEvaluation(
                current_value=current_value,
                progress=progress,
                status=status,
                achieved_at=updated.achieved_at,
                days_left=days_left_until(updated.target_date, now),
                time_used_percent=time_used_percent(updated.start_date, updated.target_date, now),
            )
            await self._notifier.notify_status_change(goal, evaluation)

        return updated

    async def delete_goal(self, goal_id: UUID) -> None:
        """Delete a goal.

        Raises:
            GoalNotFoundError: If the goal does not exist.
        """
        deleted = await self._store.delete(goal_id)
        if not deleted:
            raise GoalNotFoundError(f"Goal {goal_id} not found")
        logger.info("Goal deleted: %s", goal_id)

    async def list_goals(
        self,
        goal_filter: GoalListFilter | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> GoalListResponse:
        """List goals matching a filter.

        Args:
            goal_filter: Filter criteria (all goals when None).
            page: 1-based page number.
            limit: Page size.

        Returns:
            Page of goals with the total match count.
        """
        goal_filter = goal_filter or GoalListFilter()
        page = max(page, 1)

        total = await self._store.count(goal_filter)
        items = await self._store.find_many(goal_filter, offset=(page - 1) * limit, limit=limit)

        return GoalListResponse(items=items, total=total, page=page, limit=limit)
