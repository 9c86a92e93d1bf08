"""Round-number weight milestones between start and goal (e.g. every 5 lb).

Complements the percentage milestones: the dashboard shows "3.6 lb to 175"
rather than "18.6 lb to 160".
"""

from __future__ import annotations

import math
from enum import Enum

from pydantic import BaseModel, Field

from app.milestones.units import WeightUnit


class MilestoneInterval(str, Enum):
    five = "5"
    ten = "10"
    fifteen = "15"

    @property
    def pounds(self) -> float:
        return {"5": 5.0, "10": 10.0, "15": 15.0}[self.value]

    @property
    def kilograms(self) -> float:
        # Rounded for clean kg steps rather than exact conversions
        return {"5": 2.0, "10": 5.0, "15": 7.0}[self.value]

    def value_for(self, unit: WeightUnit) -> float:
        return self.pounds if unit is WeightUnit.lb else self.kilograms

    def display_label(self, unit: WeightUnit) -> str:
        return f"{int(self.value_for(unit))} {unit.value}"


class IntervalProgress(BaseModel):
    current_weight: float
    next_milestone: float
    previous_milestone: float
    goal_weight: float
    unit: WeightUnit = WeightUnit.lb
    completed_milestones: list[float] = Field(default_factory=list)
    progress_to_next: float = 0.0  # 0–1 within the current segment
    weight_to_next: float = 0.0
    has_reached_goal: bool = False


def generate_milestones(
    start_weight: float,
    goal_weight: float,
    unit: WeightUnit,
    interval: MilestoneInterval = MilestoneInterval.five,
) -> list[float]:
    """Interval multiples strictly between start and goal, in travel order, then the goal."""
    step = interval.value_for(unit)
    milestones: list[float] = []
    if goal_weight < start_weight:
        k = math.floor(start_weight / step)
        while k * step > goal_weight:
            if k * step < start_weight:
                milestones.append(k * step)
            k -= 1
    else:
        k = math.ceil(start_weight / step)
        while k * step < goal_weight:
            if k * step > start_weight:
                milestones.append(k * step)
            k += 1
    milestones.append(goal_weight)
    return milestones


def _segment_progress(current: float, previous: float, nxt: float, losing: bool) -> float:
    """Fraction of the previous→next segment covered; 0 when moving the wrong way."""
    total = abs(previous - nxt)
    if total == 0:
        return 1.0
    traveled = previous - current if losing else current - previous
    if traveled < 0:
        return 0.0
    return min(1.0, traveled / total)


def milestone_progress(
    current_weight: float,
    start_weight: float,
    goal_weight: float,
    unit: WeightUnit,
    completed: list[float] | None = None,
    interval: MilestoneInterval = MilestoneInterval.five,
) -> IntervalProgress:
    """Where the current weight sits between interval milestones.

    The effective start is whichever of start/current is further from the
    goal, so a user who drifted past their start still sees intermediate
    milestones ahead of them.
    """
    losing = goal_weight < start_weight
    effective_start = max(start_weight, current_weight) if losing else min(start_weight, current_weight)
    milestones = generate_milestones(effective_start, goal_weight, unit, interval)

    if losing:
        nxt = next((m for m in milestones if m <= current_weight), goal_weight)
        previous = next((m for m in reversed(milestones) if m > current_weight), effective_start)
        reached = current_weight <= goal_weight
    else:
        nxt = next((m for m in milestones if m >= current_weight), goal_weight)
        previous = next((m for m in reversed(milestones) if m < current_weight), effective_start)
        reached = current_weight >= goal_weight

    return IntervalProgress(
        current_weight=current_weight,
        next_milestone=nxt,
        previous_milestone=previous,
        goal_weight=goal_weight,
        unit=unit,
        completed_milestones=sorted(set(completed or [])),
        progress_to_next=_segment_progress(current_weight, previous, nxt, losing),
        weight_to_next=abs(current_weight - nxt),
        has_reached_goal=reached,
    )
