"""Milestone engine contract — Pydantic v2 models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.milestones.units import WeightUnit


class MilestoneType(str, Enum):
    quarter = "25"
    half = "50"
    three_quarter = "75"
    complete = "100"
    approaching = "approaching"  # Distance-based, not percentage-based

    @property
    def threshold(self) -> float | None:
        """Percentage threshold, None for approaching."""
        return _THRESHOLDS[self]

    @property
    def rank(self) -> int:
        """Position in the "highest wins" order (approaching lowest)."""
        return _RANKS[self]

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def celebration_message(self) -> str:
        return _CELEBRATIONS[self]

    @classmethod
    def percentage_milestones(cls) -> list[MilestoneType]:
        """Percentage milestones in ascending threshold order."""
        return [cls.quarter, cls.half, cls.three_quarter, cls.complete]


_THRESHOLDS: dict[MilestoneType, float | None] = {
    MilestoneType.quarter: 25.0,
    MilestoneType.half: 50.0,
    MilestoneType.three_quarter: 75.0,
    MilestoneType.complete: 100.0,
    MilestoneType.approaching: None,
}

_RANKS: dict[MilestoneType, int] = {
    MilestoneType.approaching: 0,
    MilestoneType.quarter: 1,
    MilestoneType.half: 2,
    MilestoneType.three_quarter: 3,
    MilestoneType.complete: 4,
}

_DISPLAY_NAMES: dict[MilestoneType, str] = {
    MilestoneType.quarter: "25% Progress",
    MilestoneType.half: "Halfway There",
    MilestoneType.three_quarter: "75% Progress",
    MilestoneType.complete: "Goal Achieved",
    MilestoneType.approaching: "Approaching Goal",
}

_CELEBRATIONS: dict[MilestoneType, str] = {
    MilestoneType.quarter: "You're making progress! 25% of the way to your goal.",
    MilestoneType.half: "Halfway there! Keep up the great work!",
    MilestoneType.three_quarter: "Almost there! Just 25% left to reach your goal.",
    MilestoneType.complete: "Congratulations! You've reached your goal weight!",
    MilestoneType.approaching: "You're so close! Just a few more to go.",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime | None) -> datetime | None:
    """Naive timestamps are taken as UTC so they compare with aware ones."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class WeightMeasurement(BaseModel):
    """A single logged weight. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    weight: float
    unit: WeightUnit = WeightUnit.lb

    @field_validator("timestamp")
    @classmethod
    def _utc_timestamp(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @model_validator(mode="after")
    def _check_range(self) -> WeightMeasurement:
        if not self.unit.is_valid_weight(self.weight):
            raise ValueError(
                f"weight {self.weight} {self.unit.value} outside "
                f"{self.unit.min_weight}-{self.unit.max_weight}"
            )
        return self

    def weight_in(self, unit: WeightUnit) -> float:
        return self.unit.convert(self.weight, unit)


class Goal(BaseModel):
    """Target weight; a changed target is a new Goal, not an edit."""

    model_config = ConfigDict(frozen=True)

    target_weight: float
    unit: WeightUnit = WeightUnit.lb
    set_at: datetime | None = None  # None when the app never recorded it

    @field_validator("set_at")
    @classmethod
    def _utc_set_at(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    @model_validator(mode="after")
    def _check_range(self) -> Goal:
        if not self.unit.is_valid_weight(self.target_weight):
            raise ValueError(
                f"goal {self.target_weight} {self.unit.value} outside "
                f"{self.unit.min_weight}-{self.unit.max_weight}"
            )
        return self

    def weight_in(self, unit: WeightUnit) -> float:
        return self.unit.convert(self.target_weight, unit)


class MilestoneAchievement(BaseModel):
    """Ledger record. Only `notification_sent` ever changes, and only to True."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    milestone_type: MilestoneType
    weight_at_achievement: float
    goal_weight_at_time: float
    start_weight_at_time: float
    progress_percentage: float
    unit: WeightUnit = WeightUnit.lb
    achieved_at: datetime = Field(default_factory=_utcnow)
    notification_sent: bool = False

    @field_validator("achieved_at")
    @classmethod
    def _utc_achieved_at(cls, value: datetime) -> datetime:
        return _as_utc(value)

    def goal_weight_in(self, unit: WeightUnit) -> float:
        return self.unit.convert(self.goal_weight_at_time, unit)


class ProgressResult(BaseModel):
    current_weight: float
    start_weight: float
    goal_weight: float
    progress_percentage: float | None = None  # None = start and goal coincide
    weight_remaining: float = 0.0  # Always >= 0
    unit: WeightUnit = WeightUnit.lb
    is_losing_weight: bool = True
    newly_reached_milestones: list[MilestoneType] = Field(default_factory=list)


class NotificationRequest(BaseModel):
    """What the host's notification collaborator should show. Fire immediately."""

    identifier: str  # "milestone_<raw>" | "approaching_goal"
    milestone_type: MilestoneType
    achievement_id: str
    title: str
    body: str


class NotificationPreferences(BaseModel):
    reminders_enabled: bool = True
    goal_notifications_enabled: bool = True
    milestone_notifications_enabled: bool = True
    approaching_notifications_enabled: bool = True

    @property
    def milestones_allowed(self) -> bool:
        return self.reminders_enabled and self.goal_notifications_enabled and self.milestone_notifications_enabled

    @property
    def approaching_allowed(self) -> bool:
        return (
            self.reminders_enabled
            and self.goal_notifications_enabled
            and self.approaching_notifications_enabled
        )


class CycleOutcome(BaseModel):
    """Result of one post-measurement evaluation cycle.

    status:
      - "no_entries": nothing logged yet
      - "undefined_progress": start and goal coincide
      - "no_change": progress computed, nothing new crossed
      - "recorded": one or two achievements written
      - "ledger_write_failed": a write failed; nothing was notified
      - "ledger_read_failed": history unavailable; nothing was evaluated
    """

    status: str
    progress: ProgressResult | None = None
    new_milestones: list[MilestoneType] = Field(default_factory=list)
    recorded: list[MilestoneAchievement] = Field(default_factory=list)
    notifications: list[NotificationRequest] = Field(default_factory=list)
    delivered: list[str] = Field(default_factory=list)  # achievement ids confirmed
    warnings: list[str] = Field(default_factory=list)
