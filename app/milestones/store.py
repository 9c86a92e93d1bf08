"""SQL-backed achievement ledger — async access to milestone_achievements.

Table layout (one row per achievement, never deleted):
  id (text PK), profile_id (text), milestone_type (text: "25" | "50" | "75" |
  "100" | "approaching"), achieved_at (timestamptz), weight_at_achievement,
  goal_weight_at_time, start_weight_at_time, progress_percentage (float8),
  unit (text: "lb" | "kg"), notification_sent (bool)

Goal matching uses a tolerance across units, so rows are filtered in Python;
a profile holds a few dozen rows at most.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.milestones.evaluator import goal_matches
from app.milestones.ledger import AchievementNotFound, LedgerReadError, LedgerWriteError
from app.milestones.models import MilestoneAchievement, MilestoneType
from app.milestones.policy import DEFAULT_POLICY
from app.milestones.units import WeightUnit

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, milestone_type, achieved_at, weight_at_achievement, goal_weight_at_time, "
    "start_weight_at_time, progress_percentage, unit, notification_sent"
)


def _to_achievement(columns: Any, row: Any) -> MilestoneAchievement:
    return MilestoneAchievement.model_validate(dict(zip(columns, row)))


class SqlAchievementLedger:
    def __init__(self, session: AsyncSession, profile_id: str = "default"):
        self.session = session
        self.profile_id = profile_id

    async def record(self, achievement: MilestoneAchievement) -> MilestoneAchievement:
        params = achievement.model_dump()
        params["milestone_type"] = achievement.milestone_type.value
        params["unit"] = achievement.unit.value
        params["profile_id"] = self.profile_id
        try:
            await self.session.execute(
                text(
                    "INSERT INTO milestone_achievements "
                    f"(profile_id, {_COLUMNS}) VALUES "
                    "(:profile_id, :id, :milestone_type, :achieved_at, :weight_at_achievement, "
                    ":goal_weight_at_time, :start_weight_at_time, :progress_percentage, "
                    ":unit, :notification_sent)"
                ),
                params,
            )
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("Failed to record %s achievement for %s: %s",
                         achievement.milestone_type.value, self.profile_id, exc)
            raise LedgerWriteError(str(exc)) from exc
        return achievement

    async def _select(self, order: str) -> Any:
        try:
            return await self.session.execute(
                text(
                    f"SELECT {_COLUMNS} FROM milestone_achievements "
                    f"WHERE profile_id = :profile_id ORDER BY {order}"
                ),
                {"profile_id": self.profile_id},
            )
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("Failed to read achievements for %s: %s", self.profile_id, exc)
            raise LedgerReadError(str(exc)) from exc

    async def list_all(self) -> list[MilestoneAchievement]:
        result = await self._select("achieved_at")
        columns = result.keys()
        return [_to_achievement(columns, r) for r in result.fetchall()]

    async def achievements_for_goal(
        self,
        goal_weight: float,
        unit: WeightUnit,
        tolerance: float = DEFAULT_POLICY.goal_match_tolerance,
    ) -> list[MilestoneAchievement]:
        rows = await self.list_all()
        return [a for a in rows if goal_matches(a, goal_weight, unit, tolerance)]

    async def has_achieved(
        self,
        milestone: MilestoneType,
        goal_weight: float,
        unit: WeightUnit,
        tolerance: float = DEFAULT_POLICY.goal_match_tolerance,
    ) -> bool:
        rows = await self.achievements_for_goal(goal_weight, unit, tolerance)
        return any(a.milestone_type == milestone for a in rows)

    async def most_recent(self) -> MilestoneAchievement | None:
        result = await self._select("achieved_at DESC LIMIT 1")
        row = result.fetchone()
        if row is None:
            return None
        return _to_achievement(result.keys(), row)

    async def mark_notified(self, achievement_id: str) -> MilestoneAchievement:
        try:
            result = await self.session.execute(
                text(
                    "UPDATE milestone_achievements SET notification_sent = TRUE "
                    "WHERE id = :id AND profile_id = :profile_id "
                    f"RETURNING {_COLUMNS}"
                ),
                {"id": achievement_id, "profile_id": self.profile_id},
            )
            row = result.fetchone()
            columns = result.keys()
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise LedgerWriteError(str(exc)) from exc
        if row is None:
            raise AchievementNotFound(achievement_id)
        return _to_achievement(columns, row)
