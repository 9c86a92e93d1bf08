"""Pure progress calculations — math only, never raises."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Sequence

from app.milestones.evaluator import milestones_reached
from app.milestones.models import Goal, MilestoneType, ProgressResult, WeightMeasurement
from app.milestones.policy import DEFAULT_POLICY, MilestonePolicy
from app.milestones.units import WeightUnit


def ordered(entries: Iterable[WeightMeasurement]) -> list[WeightMeasurement]:
    """Oldest first. Equal timestamps keep their insertion order (stable sort)."""
    return sorted(entries, key=lambda e: e.timestamp)


def calculate_progress(
    start_weight: float,
    current_weight: float,
    goal_weight: float,
    epsilon: float = DEFAULT_POLICY.progress_epsilon,
) -> float | None:
    """Percentage of the start→goal distance covered.

    Direction-agnostic: dividing by the signed total distance handles loss
    and gain goals alike. Can exceed 100 (past goal) or go negative (moved
    away). Returns None when start and goal coincide within `epsilon`.
    """
    total = start_weight - goal_weight
    if abs(total) < epsilon:
        return None
    return (start_weight - current_weight) / total * 100.0


def weight_remaining(current_weight: float, goal_weight: float) -> float:
    return abs(current_weight - goal_weight)


def determine_start_weight(
    entries: Sequence[WeightMeasurement],
    goal_set_date: datetime | None,
    unit: WeightUnit | None = None,
) -> float | None:
    """Weight to anchor progress against.

    First measurement at or after `goal_set_date`; the earliest measurement
    overall when the date is unknown or nothing was logged since. None if
    there are no measurements.
    """
    if not entries:
        return None
    history = ordered(entries)
    anchor = history[0]
    if goal_set_date is not None:
        anchor = next((e for e in history if e.timestamp >= goal_set_date), history[0])
    return anchor.weight_in(unit) if unit is not None else anchor.weight


def current_weight(
    entries: Sequence[WeightMeasurement],
    unit: WeightUnit | None = None,
) -> float | None:
    """Most recent measurement (last inserted wins a timestamp tie)."""
    if not entries:
        return None
    latest = ordered(entries)[-1]
    return latest.weight_in(unit) if unit is not None else latest.weight


def build_progress(
    entries: Sequence[WeightMeasurement],
    goal: Goal,
    unit: WeightUnit,
    previous_milestones: Iterable[MilestoneType] = (),
    policy: MilestonePolicy = DEFAULT_POLICY,
) -> ProgressResult | None:
    """Full progress snapshot in `unit`. None when no measurements exist.

    `newly_reached_milestones` lists everything reached at this reading
    (approaching included) that is not in `previous_milestones`.
    """
    start = determine_start_weight(entries, goal.set_at, unit)
    current = current_weight(entries, unit)
    if start is None or current is None:
        return None

    target = goal.weight_in(unit)
    pct = calculate_progress(start, current, target, policy.progress_epsilon)
    remaining = weight_remaining(current, target)

    already = set(previous_milestones)
    newly: list[MilestoneType] = []
    if pct is not None:
        newly = [m for m in milestones_reached(pct, remaining, unit, policy) if m not in already]

    return ProgressResult(
        current_weight=current,
        start_weight=start,
        goal_weight=target,
        progress_percentage=pct,
        weight_remaining=remaining,
        unit=unit,
        is_losing_weight=target < start,
        newly_reached_milestones=newly,
    )
