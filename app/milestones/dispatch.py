"""Post-measurement milestone cycle.

plan_cycle() is pure: it decides which achievements a new measurement earns.
run_cycle() applies a plan against a ledger and, optionally, a notifier:

  progress -> crossed -> new for this goal -> highest only -> record -> notify

At most one percentage achievement and one approaching achievement are
recorded per cycle. A notification is only requested for an achievement
whose ledger write succeeded, and `notification_sent` is only set once the
notifier confirms scheduling.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol, Sequence

from app.milestones.evaluator import (
    approaching_threshold,
    crossed_milestones,
    goal_matches,
    has_goal_changed_significantly,
    highest_milestone,
    is_approaching_goal,
    new_milestones,
)
from app.milestones.ledger import AchievementLedger, LedgerReadError, LedgerWriteError
from app.milestones.models import (
    CycleOutcome,
    Goal,
    MilestoneAchievement,
    MilestoneType,
    NotificationPreferences,
    NotificationRequest,
    ProgressResult,
    WeightMeasurement,
)
from app.milestones.policy import DEFAULT_POLICY, MilestonePolicy
from app.milestones.progress import build_progress
from app.milestones.units import WeightUnit

logger = logging.getLogger(__name__)

APPROACHING_IDENTIFIER = "approaching_goal"


class Notifier(Protocol):
    async def schedule(self, request: NotificationRequest) -> bool:
        """Schedule an immediate notification. False when scheduling failed."""
        ...


@dataclass
class CyclePlan:
    status: str
    progress: ProgressResult | None = None
    new_milestones: list[MilestoneType] = field(default_factory=list)
    to_record: list[MilestoneAchievement] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def notification_identifier(milestone: MilestoneType) -> str:
    if milestone is MilestoneType.approaching:
        return APPROACHING_IDENTIFIER
    return f"milestone_{milestone.value}"


def build_notification(achievement: MilestoneAchievement) -> NotificationRequest:
    milestone = achievement.milestone_type
    unit = achievement.unit.value
    if milestone is MilestoneType.approaching:
        remaining = abs(achievement.weight_at_achievement - achievement.goal_weight_at_time)
        body = f"You're so close! Just {remaining:.1f} {unit} to go."
    else:
        body = f"{milestone.celebration_message} Now at {achievement.weight_at_achievement:.1f} {unit}."
    return NotificationRequest(
        identifier=notification_identifier(milestone),
        milestone_type=milestone,
        achievement_id=achievement.id,
        title=milestone.display_name,
        body=body,
    )


def _achievement(
    milestone: MilestoneType,
    progress: ProgressResult,
    achieved_at: datetime,
) -> MilestoneAchievement:
    return MilestoneAchievement(
        milestone_type=milestone,
        weight_at_achievement=progress.current_weight,
        goal_weight_at_time=progress.goal_weight,
        start_weight_at_time=progress.start_weight,
        progress_percentage=progress.progress_percentage or 0.0,
        unit=progress.unit,
        achieved_at=achieved_at,
    )


def plan_cycle(
    entries: Sequence[WeightMeasurement],
    goal: Goal,
    unit: WeightUnit,
    existing: Sequence[MilestoneAchievement],
    policy: MilestonePolicy = DEFAULT_POLICY,
    now: datetime | None = None,
) -> CyclePlan:
    """Decide what the latest measurement earns. Never raises, never writes."""
    if not entries:
        return CyclePlan(status="no_entries")

    target = goal.weight_in(unit)
    already = {
        a.milestone_type
        for a in existing
        if goal_matches(a, target, unit, policy.goal_match_tolerance)
    }

    progress = build_progress(entries, goal, unit, already, policy)
    if progress is None:
        return CyclePlan(status="no_entries")
    if progress.progress_percentage is None:
        return CyclePlan(status="undefined_progress", progress=progress)

    achieved_at = now or datetime.now(timezone.utc)
    plan = CyclePlan(status="no_change", progress=progress)

    crossed = crossed_milestones(progress.progress_percentage)
    fresh = new_milestones(crossed, existing, target, unit, policy.goal_match_tolerance)
    plan.new_milestones.extend(fresh)
    top = highest_milestone(fresh)
    if top is not None:
        plan.to_record.append(_achievement(top, progress, achieved_at))

    # Approaching runs independently of the percentage family
    if approaching_threshold(unit, policy) is None:
        plan.warnings.append("Approaching-goal check skipped: invalid threshold conversion.")
    elif (
        progress.progress_percentage < 100.0
        and MilestoneType.approaching not in already
        and is_approaching_goal(progress.current_weight, target, unit, policy)
    ):
        plan.new_milestones.append(MilestoneType.approaching)
        plan.to_record.append(_achievement(MilestoneType.approaching, progress, achieved_at))

    progress.newly_reached_milestones = list(plan.new_milestones)
    if plan.to_record:
        plan.status = "recorded"
    return plan


async def run_cycle(
    ledger: AchievementLedger,
    entries: Sequence[WeightMeasurement],
    goal: Goal,
    unit: WeightUnit,
    notifier: Notifier | None = None,
    policy: MilestonePolicy = DEFAULT_POLICY,
    preferences: NotificationPreferences | None = None,
    now: datetime | None = None,
) -> CycleOutcome:
    """Evaluate one newly saved measurement end to end.

    Without a notifier the notification requests are returned for the caller
    to deliver; it confirms each one through ledger.mark_notified().
    The host must not run two cycles for the same profile concurrently.
    """
    prefs = preferences or NotificationPreferences()
    try:
        existing = await ledger.achievements_for_goal(
            goal.weight_in(unit), unit, policy.goal_match_tolerance
        )
    except LedgerReadError as exc:
        logger.error("Milestone cycle skipped: ledger unreadable (%s)", exc)
        return CycleOutcome(
            status="ledger_read_failed",
            warnings=["Achievements could not be loaded; milestones not evaluated."],
        )
    plan = plan_cycle(entries, goal, unit, existing, policy, now)
    outcome = CycleOutcome(
        status=plan.status,
        progress=plan.progress,
        new_milestones=plan.new_milestones,
        warnings=plan.warnings,
    )
    if not plan.to_record:
        logger.debug("Milestone cycle: %s", plan.status)
        return outcome

    for achievement in plan.to_record:
        try:
            await ledger.record(achievement)
        except LedgerWriteError as exc:
            logger.error("Not notifying %s: ledger write failed (%s)",
                         achievement.milestone_type.value, exc)
            outcome.status = "ledger_write_failed"
            outcome.warnings.append(
                f"Could not record {achievement.milestone_type.display_name}; "
                "it will be evaluated again on the next measurement."
            )
            continue
        logger.info("Recorded milestone %s at %.1f%% (goal %.1f %s)",
                    achievement.milestone_type.value, achievement.progress_percentage,
                    achievement.goal_weight_at_time, achievement.unit.value)
        outcome.recorded.append(achievement)

    for achievement in outcome.recorded:
        allowed = (
            prefs.approaching_allowed
            if achievement.milestone_type is MilestoneType.approaching
            else prefs.milestones_allowed
        )
        if allowed:
            outcome.notifications.append(build_notification(achievement))

    if notifier is None:
        return outcome

    for request in outcome.notifications:
        if not await notifier.schedule(request):
            logger.warning("Notifier declined %s", request.identifier)
            continue
        try:
            await ledger.mark_notified(request.achievement_id)
        except LedgerWriteError as exc:
            logger.error("Delivered %s but could not flag it: %s", request.identifier, exc)
            outcome.warnings.append(f"Delivery of {request.identifier} not recorded.")
            continue
        outcome.delivered.append(request.achievement_id)
        for achievement in outcome.recorded:
            if achievement.id == request.achievement_id:
                achievement.notification_sent = True

    return outcome


def handle_goal_change(
    previous_goal: float,
    new_goal: float,
    policy: MilestonePolicy = DEFAULT_POLICY,
) -> bool:
    """Report whether a goal change is significant. History is never touched.

    Milestones are keyed by goal weight, so any goal outside the matching
    tolerance starts earning afresh regardless of the answer.
    """
    significant = has_goal_changed_significantly(new_goal, previous_goal, policy.goal_change_threshold)
    logger.info("Goal changed %.1f -> %.1f (significant=%s)", previous_goal, new_goal, significant)
    return significant
