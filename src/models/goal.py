# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Goal models.

Enumerations and Pydantic models for student goals:
- GoalType / GoalStatus: the closed sets the evaluation engine works on
- GoalRecord: a goal as read from the goal store
- ProgressSnapshot / SubjectSample: metric source read models
- Create/update/list request models for the goal management service
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.utils.datetime import ensure_utc


class GoalType(str, Enum):
    """Goal types. Every type except MANUAL is auto-evaluated."""

    ATTENDANCE_RATE = "ATTENDANCE_RATE"
    HOMEWORK_COMPLETION = "HOMEWORK_COMPLETION"
    BEHAVIOR_SCORE = "BEHAVIOR_SCORE"
    SUBJECT_UNDERSTANDING = "SUBJECT_UNDERSTANDING"
    READING_SKILL = "READING_SKILL"
    WRITING_SKILL = "WRITING_SKILL"
    MANUAL = "MANUAL"


class GoalStatus(str, Enum):
    """Goal lifecycle states."""

    IN_PROGRESS = "IN_PROGRESS"
    AT_RISK = "AT_RISK"
    ACHIEVED = "ACHIEVED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        """Whether the engine may no longer move a goal out of this state."""
        return self not in ACTIVE_GOAL_STATUSES


ACTIVE_GOAL_STATUSES: frozenset[GoalStatus] = frozenset(
    {GoalStatus.IN_PROGRESS, GoalStatus.AT_RISK}
)


class CheckFrequency(str, Enum):
    """How often a goal is meant to be reviewed (informational)."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class GoalRecord(BaseModel):
    """A student goal as stored by the goal store."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    student_id: UUID
    teacher_id: UUID | None = None
    goal_type: GoalType
    metric: str | None = None
    category: str | None = None
    title: str
    description: str | None = None
    unit: str | None = None
    target_value: float
    current_value: float = 0.0
    baseline_value: float | None = None
    start_date: datetime
    target_date: datetime
    status: GoalStatus = GoalStatus.IN_PROGRESS
    achieved_at: datetime | None = None
    progress: float = 0.0
    last_checked: datetime | None = None
    check_frequency: CheckFrequency = CheckFrequency.WEEKLY
    visible_to_student: bool = True
    visible_to_parent: bool = True
    milestones: list[dict[str, Any]] | None = None
    support_actions: list[str] | None = None

    @field_validator("current_value", mode="before")
    @classmethod
    def _default_current_value(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @field_validator("start_date", "target_date", "achieved_at", "last_checked")
    @classmethod
    def _normalize_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    @property
    def is_auto_evaluated(self) -> bool:
        """Whether the engine computes current_value for this goal."""
        return self.goal_type is not GoalType.MANUAL


class ProgressSnapshot(BaseModel):
    """Latest precomputed performance aggregate for a student."""

    model_config = ConfigDict(from_attributes=True)

    student_id: UUID
    homework_completion_rate: float | None = None
    average_behavior_rating: float | None = None
    current_reading_level: float | None = None
    current_writing_level: float | None = None


class SubjectSample(BaseModel):
    """One subject entry recorded in a daily activity."""

    subject_id: str
    understanding_level: float | None = None


class MilestoneModel(BaseModel):
    """Intermediate milestone attached to a goal."""

    title: str = Field(min_length=1, max_length=200)
    target_value: float
    target_date: datetime | None = None


class CreateGoalRequest(BaseModel):
    """Request to create a goal for a student."""

    student_id: UUID
    goal_type: GoalType
    category: str | None = Field(default=None, max_length=50)
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=500)
    metric: str = Field(min_length=1, max_length=100)
    target_value: float = Field(gt=0)
    current_value: float = Field(default=0.0, ge=0)
    unit: str = Field(min_length=1, max_length=50)
    start_date: datetime
    target_date: datetime
    milestones: list[MilestoneModel] | None = None
    check_frequency: CheckFrequency = CheckFrequency.WEEKLY
    visible_to_student: bool = True
    visible_to_parent: bool = True
    support_actions: list[str] | None = None

    @field_validator("start_date", "target_date")
    @classmethod
    def _normalize_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _check_window(self) -> "CreateGoalRequest":
        if self.target_date <= self.start_date:
            raise ValueError("target_date must be after start_date")
        return self


class UpdateGoalRequest(BaseModel):
    """Partial update of a goal by a teacher or administrator."""

    current_value: float | None = Field(default=None, ge=0)
    target_value: float | None = Field(default=None, gt=0)
    status: GoalStatus | None = None
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=500)
    target_date: datetime | None = None
    milestones: list[MilestoneModel] | None = None
    support_actions: list[str] | None = None
    visible_to_student: bool | None = None
    visible_to_parent: bool | None = None

    @field_validator("target_date")
    @classmethod
    def _normalize_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _require_one_field(self) -> "UpdateGoalRequest":
        if not self.model_fields_set:
            raise ValueError("At least one field required")
        return self


class GoalListFilter(BaseModel):
    """Filter for listing goals."""

    student_id: UUID | None = None
    teacher_id: UUID | None = None
    status: GoalStatus | None = None
    statuses: list[GoalStatus] | None = None
    goal_type: GoalType | None = None
    visible_to_student: bool | None = None
    visible_to_parent: bool | None = None


class GoalListResponse(BaseModel):
    """Paginated list of goals."""

    items: list[GoalRecord]
    total: int
    page: int
    limit: int
