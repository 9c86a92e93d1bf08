"""Milestone threshold detection — pure functions, never raise.

Each threshold is judged independently against the same progress reading;
duplicate suppression is a set difference against the ledger records that
belong to the current goal.
"""

from __future__ import annotations

import math
from typing import Iterable

from app.milestones.models import MilestoneAchievement, MilestoneType
from app.milestones.policy import DEFAULT_POLICY, MilestonePolicy
from app.milestones.units import WeightUnit


def crossed_milestones(progress: float | None) -> list[MilestoneType]:
    """Percentage milestones with threshold <= progress, ascending.

    Undefined or negative progress crosses nothing.
    """
    if progress is None or math.isnan(progress) or progress < 0:
        return []
    return [m for m in MilestoneType.percentage_milestones() if m.threshold <= progress]


def approaching_threshold(
    unit: WeightUnit,
    policy: MilestonePolicy = DEFAULT_POLICY,
) -> float | None:
    """The "approaching" distance in `unit`, derived from the canonical lb value.

    Returns None when the conversion yields a non-finite or negative number,
    which disables the approaching check for that cycle.
    """
    value = WeightUnit.lb.convert(policy.approaching_threshold_lb, unit)
    if not math.isfinite(value) or value < 0:
        return None
    return value


def is_approaching_goal(
    current_weight: float,
    goal_weight: float,
    unit: WeightUnit,
    policy: MilestonePolicy = DEFAULT_POLICY,
) -> bool:
    """True when within the approaching distance but not yet at the goal."""
    threshold = approaching_threshold(unit, policy)
    if threshold is None:
        return False
    distance = abs(current_weight - goal_weight)
    if distance <= policy.completion_tolerance:
        return False
    return distance <= threshold


def milestones_reached(
    progress: float | None,
    weight_remaining: float,
    unit: WeightUnit,
    policy: MilestonePolicy = DEFAULT_POLICY,
) -> list[MilestoneType]:
    """Every milestone reached at this reading, approaching included.

    Approaching is judged on the remaining distance alone and only while
    the goal itself is not complete.
    """
    reached = crossed_milestones(progress)
    if MilestoneType.complete in reached:
        return reached
    threshold = approaching_threshold(unit, policy)
    if threshold is not None and policy.completion_tolerance < weight_remaining <= threshold:
        reached.insert(0, MilestoneType.approaching)
    return reached


def goal_matches(
    achievement: MilestoneAchievement,
    goal_weight: float,
    unit: WeightUnit,
    tolerance: float = DEFAULT_POLICY.goal_match_tolerance,
) -> bool:
    """Whether an achievement was earned under `goal_weight` (within tolerance)."""
    return abs(achievement.goal_weight_in(unit) - goal_weight) <= tolerance


def new_milestones(
    crossed: Iterable[MilestoneType],
    existing: Iterable[MilestoneAchievement],
    goal_weight: float,
    unit: WeightUnit = WeightUnit.lb,
    tolerance: float = DEFAULT_POLICY.goal_match_tolerance,
) -> list[MilestoneType]:
    """`crossed` minus the milestone types already recorded for this goal.

    Records for other goals are ignored, so a changed goal can earn the
    same milestone type again. Order of `crossed` is preserved.
    """
    achieved = {
        a.milestone_type for a in existing if goal_matches(a, goal_weight, unit, tolerance)
    }
    result: list[MilestoneType] = []
    for m in crossed:
        if m not in achieved and m not in result:
            result.append(m)
    return result


def highest_milestone(milestones: Iterable[MilestoneType]) -> MilestoneType | None:
    """complete > three_quarter > half > quarter > approaching. Empty -> None."""
    return max(milestones, key=lambda m: m.rank, default=None)


def has_goal_changed_significantly(
    current_goal: float,
    previous_goal: float,
    threshold: float = DEFAULT_POLICY.goal_change_threshold,
) -> bool:
    """Relative change strictly greater than `threshold` (10% by default).

    The change is measured against the new goal: 200 -> 180 is 20/180 = 11.1%
    (significant), 160 -> 150 is 10/150 = 6.67% (not).
    """
    if current_goal == 0:
        return previous_goal != 0
    return abs(current_goal - previous_goal) / abs(current_goal) > threshold
