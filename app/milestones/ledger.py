"""Achievement ledger contract plus an in-memory implementation.

Append-only: records are inserted, queried, and have their
`notification_sent` flag flipped. No delete operation exists.
"""

from __future__ import annotations

from typing import Protocol

from app.milestones.evaluator import goal_matches
from app.milestones.models import MilestoneAchievement, MilestoneType
from app.milestones.policy import DEFAULT_POLICY
from app.milestones.units import WeightUnit


class LedgerError(Exception):
    """The ledger backend could not be reached or refused the operation."""


class LedgerWriteError(LedgerError):
    """Persisting an achievement (or its delivered flag) failed."""


class LedgerReadError(LedgerError):
    pass


class AchievementNotFound(LookupError):
    pass


class AchievementLedger(Protocol):
    async def record(self, achievement: MilestoneAchievement) -> MilestoneAchievement: ...

    async def achievements_for_goal(
        self,
        goal_weight: float,
        unit: WeightUnit,
        tolerance: float = DEFAULT_POLICY.goal_match_tolerance,
    ) -> list[MilestoneAchievement]: ...

    async def has_achieved(
        self,
        milestone: MilestoneType,
        goal_weight: float,
        unit: WeightUnit,
        tolerance: float = DEFAULT_POLICY.goal_match_tolerance,
    ) -> bool: ...

    async def most_recent(self) -> MilestoneAchievement | None: ...

    async def mark_notified(self, achievement_id: str) -> MilestoneAchievement: ...

    async def list_all(self) -> list[MilestoneAchievement]: ...


class InMemoryLedger:
    """List-backed ledger for tests and hosts that persist elsewhere."""

    def __init__(self, achievements: list[MilestoneAchievement] | None = None):
        self._items: list[MilestoneAchievement] = list(achievements or [])

    async def record(self, achievement: MilestoneAchievement) -> MilestoneAchievement:
        if any(a.id == achievement.id for a in self._items):
            raise LedgerWriteError(f"Achievement {achievement.id} already recorded")
        if await self.has_achieved(
            achievement.milestone_type, achievement.goal_weight_at_time, achievement.unit
        ):
            raise LedgerWriteError(
                f"{achievement.milestone_type.value} already recorded for goal "
                f"{achievement.goal_weight_at_time} {achievement.unit.value}"
            )
        self._items.append(achievement)
        return achievement

    async def achievements_for_goal(
        self,
        goal_weight: float,
        unit: WeightUnit,
        tolerance: float = DEFAULT_POLICY.goal_match_tolerance,
    ) -> list[MilestoneAchievement]:
        return [a for a in self._items if goal_matches(a, goal_weight, unit, tolerance)]

    async def has_achieved(
        self,
        milestone: MilestoneType,
        goal_weight: float,
        unit: WeightUnit,
        tolerance: float = DEFAULT_POLICY.goal_match_tolerance,
    ) -> bool:
        matches = await self.achievements_for_goal(goal_weight, unit, tolerance)
        return any(a.milestone_type == milestone for a in matches)

    async def most_recent(self) -> MilestoneAchievement | None:
        if not self._items:
            return None
        # max() keeps the first of equal timestamps; prefer the later insert
        return max(reversed(self._items), key=lambda a: a.achieved_at)

    async def mark_notified(self, achievement_id: str) -> MilestoneAchievement:
        for a in self._items:
            if a.id == achievement_id:
                a.notification_sent = True
                return a
        raise AchievementNotFound(achievement_id)

    async def list_all(self) -> list[MilestoneAchievement]:
        return list(self._items)
