"""Milestone HTTP router — progress, evaluation cycles, ledger queries."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import verify_api_key
from app.config import settings
from app.db import get_session
from app.milestones import dispatch
from app.milestones.intervals import IntervalProgress, MilestoneInterval, milestone_progress
from app.milestones.ledger import (
    AchievementLedger,
    AchievementNotFound,
    LedgerReadError,
    LedgerWriteError,
)
from app.milestones.models import (
    CycleOutcome,
    Goal,
    MilestoneAchievement,
    NotificationPreferences,
    ProgressResult,
    WeightMeasurement,
)
from app.milestones.policy import MilestonePolicy, default_preferences
from app.milestones.progress import build_progress
from app.milestones.store import SqlAchievementLedger
from app.milestones.units import WeightUnit, parse_unit

router = APIRouter(prefix="/goals", tags=["goals"])


class ProgressRequest(BaseModel):
    entries: list[WeightMeasurement]
    goal: Goal
    unit: WeightUnit | None = None  # Display unit; defaults to settings.default_unit


class EvaluateRequest(ProgressRequest):
    preferences: NotificationPreferences | None = None


class GoalChangeRequest(BaseModel):
    previous_goal: float
    new_goal: float


class IntervalRequest(BaseModel):
    current_weight: float
    start_weight: float
    goal_weight: float
    unit: WeightUnit | None = None
    interval: MilestoneInterval = MilestoneInterval.five
    completed: list[float] = []


def get_policy() -> MilestonePolicy:
    return MilestonePolicy.from_settings(settings)


async def get_ledger(
    session: AsyncSession = Depends(get_session),
    profile_id: str = Query(default="default", description="Ledger owner"),
) -> AchievementLedger:
    return SqlAchievementLedger(session, profile_id)


def _unit(unit: WeightUnit | None) -> WeightUnit:
    return unit or parse_unit(settings.default_unit)


# ---------------------------------------------------------------------------
# /goals/progress — widget timeline, voice intents
# ---------------------------------------------------------------------------


@router.post("/progress", response_model=ProgressResult)
async def get_progress(
    body: ProgressRequest,
    policy: MilestonePolicy = Depends(get_policy),
    _: str = Depends(verify_api_key),
) -> ProgressResult:
    result = build_progress(body.entries, body.goal, _unit(body.unit), policy=policy)
    if result is None:
        raise HTTPException(status_code=404, detail="No weight entries logged")
    return result


# ---------------------------------------------------------------------------
# /goals/milestones/evaluate — post-save hook
# ---------------------------------------------------------------------------


@router.post("/milestones/evaluate", response_model=CycleOutcome)
async def evaluate_milestones(
    body: EvaluateRequest,
    ledger: AchievementLedger = Depends(get_ledger),
    policy: MilestonePolicy = Depends(get_policy),
    _: str = Depends(verify_api_key),
) -> CycleOutcome:
    """Run one cycle. Notification requests come back to the caller, who
    confirms each via /goals/achievements/{id}/delivered once scheduled."""
    return await dispatch.run_cycle(
        ledger,
        body.entries,
        body.goal,
        _unit(body.unit),
        notifier=None,
        policy=policy,
        preferences=body.preferences or default_preferences(settings),
    )


@router.post("/goal-change")
async def goal_change(
    body: GoalChangeRequest,
    policy: MilestonePolicy = Depends(get_policy),
    _: str = Depends(verify_api_key),
) -> dict[str, bool]:
    return {"significant": dispatch.handle_goal_change(body.previous_goal, body.new_goal, policy)}


@router.post("/interval-milestones", response_model=IntervalProgress)
async def interval_milestones(
    body: IntervalRequest,
    _: str = Depends(verify_api_key),
) -> IntervalProgress:
    return milestone_progress(
        body.current_weight,
        body.start_weight,
        body.goal_weight,
        _unit(body.unit),
        completed=body.completed,
        interval=body.interval,
    )


# ---------------------------------------------------------------------------
# /goals/achievements — ledger
# ---------------------------------------------------------------------------


@router.get("/achievements", response_model=list[MilestoneAchievement])
async def list_achievements(
    ledger: AchievementLedger = Depends(get_ledger),
    policy: MilestonePolicy = Depends(get_policy),
    _: str = Depends(verify_api_key),
    goal_weight: float | None = Query(default=None, description="Only this goal (±tolerance)"),
    unit: WeightUnit | None = Query(default=None),
) -> list[MilestoneAchievement]:
    try:
        if goal_weight is None:
            return await ledger.list_all()
        return await ledger.achievements_for_goal(goal_weight, _unit(unit), policy.goal_match_tolerance)
    except LedgerReadError as exc:
        raise HTTPException(status_code=503, detail=f"Could not read achievements: {exc}")


@router.get("/achievements/latest", response_model=MilestoneAchievement)
async def latest_achievement(
    ledger: AchievementLedger = Depends(get_ledger),
    _: str = Depends(verify_api_key),
) -> MilestoneAchievement:
    try:
        achievement = await ledger.most_recent()
    except LedgerReadError as exc:
        raise HTTPException(status_code=503, detail=f"Could not read achievements: {exc}")
    if achievement is None:
        raise HTTPException(status_code=404, detail="No achievements recorded")
    return achievement


@router.post("/achievements/{achievement_id}/delivered", response_model=MilestoneAchievement)
async def confirm_delivery(
    achievement_id: str,
    ledger: AchievementLedger = Depends(get_ledger),
    _: str = Depends(verify_api_key),
) -> MilestoneAchievement:
    try:
        return await ledger.mark_notified(achievement_id)
    except AchievementNotFound:
        raise HTTPException(status_code=404, detail=f"Unknown achievement: {achievement_id}")
    except LedgerWriteError as exc:
        raise HTTPException(status_code=503, detail=f"Could not update achievement: {exc}")
