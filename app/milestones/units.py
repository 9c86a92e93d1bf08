"""Weight units and the single conversion function the engine uses."""

from __future__ import annotations

from enum import Enum

LB_TO_KG = 0.453592
KG_TO_LB = 2.20462


class WeightUnit(str, Enum):
    lb = "lb"
    kg = "kg"

    def convert(self, value: float, to: WeightUnit) -> float:
        """Convert `value` expressed in this unit into `to`."""
        if self is to:
            return value
        if self is WeightUnit.lb:
            return value * LB_TO_KG
        return value * KG_TO_LB

    @property
    def default_weight(self) -> float:
        return 180.0 if self is WeightUnit.lb else 80.0

    @property
    def min_weight(self) -> float:
        return 1.0 if self is WeightUnit.lb else 0.5

    @property
    def max_weight(self) -> float:
        return 1500.0 if self is WeightUnit.lb else 680.0

    def is_valid_weight(self, value: float) -> bool:
        return self.min_weight <= value <= self.max_weight


def parse_unit(value: str | WeightUnit | None, default: WeightUnit = WeightUnit.lb) -> WeightUnit:
    """Lenient unit parsing: accepts "lbs"/"pounds"/"kilograms" too. Unknown -> default."""
    if isinstance(value, WeightUnit):
        return value
    if not value:
        return default
    key = value.strip().lower()
    if key in ("lb", "lbs", "pound", "pounds"):
        return WeightUnit.lb
    if key in ("kg", "kgs", "kilogram", "kilograms"):
        return WeightUnit.kg
    return default
