"""Milestone policy constants — passed explicitly into every evaluation.

Built from Settings at the HTTP boundary; library callers may construct
their own. Nothing under app/milestones reads app.config directly.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.config import Settings
from app.milestones.models import NotificationPreferences


@dataclass(frozen=True, slots=True)
class MilestonePolicy:
    progress_epsilon: float = 0.1
    goal_match_tolerance: float = 0.1
    goal_change_threshold: float = 0.10
    approaching_threshold_lb: float = 5.0
    completion_tolerance: float = 0.1

    @classmethod
    def from_settings(cls, s: Settings) -> MilestonePolicy:
        return cls(
            progress_epsilon=s.progress_epsilon,
            goal_match_tolerance=s.goal_match_tolerance,
            goal_change_threshold=s.goal_change_threshold,
            approaching_threshold_lb=s.approaching_threshold_lb,
            completion_tolerance=s.completion_tolerance,
        )


DEFAULT_POLICY = MilestonePolicy()


def default_preferences(s: Settings) -> NotificationPreferences:
    return NotificationPreferences(
        reminders_enabled=s.notify_reminders_enabled,
        goal_notifications_enabled=s.notify_goal_enabled,
        milestone_notifications_enabled=s.notify_milestones_enabled,
        approaching_notifications_enabled=s.notify_approaching_enabled,
    )
