"""Daily nutrition targets derived from the diet planner answers."""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Any

ACTIVITY_MULTIPLIERS: dict[str, float] = {
    "sedentary": 1.2,
    "light": 1.375,
    "moderate": 1.55,
    "active": 1.725,
    "very_active": 1.9,
}

CALORIE_ADJUSTMENT = 500
BASE_SUGAR_LIMIT = 25
HIGH_SUGAR_THRESHOLD = 100
HIGH_SUGAR_FACTOR = 0.7


@dataclass
class DietProfile:
    """Answers collected by the diet planner."""

    height: float
    weight: float
    age: float
    gender: str
    activity_level: str = "moderate"
    goal: str = "lose"
    goal_weight: float | None = None
    sugar_level: float = 0

    def __post_init__(self) -> None:
        if self.activity_level not in ACTIVITY_MULTIPLIERS:
            raise ValueError(f"Unknown activity level {self.activity_level!r}.")
        if self.goal not in ("lose", "gain"):
            raise ValueError("goal must be 'lose' or 'gain'.")
        for name in ("height", "weight", "age"):
            value = float(getattr(self, name))
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be a positive number.")
        for name in ("goal_weight", "sugar_level"):
            value = getattr(self, name)
            if value is not None and not math.isfinite(float(value)):
                raise ValueError(f"{name} must be a finite number.")

    @classmethod
    def from_form(cls, form_data: dict[str, Any]) -> "DietProfile":
        try:
            return cls(
                height=float(form_data["height"]),
                weight=float(form_data["weight"]),
                age=float(form_data["age"]),
                gender=str(form_data.get("gender") or ""),
                activity_level=form_data.get("activity_level") or "moderate",
                goal=form_data.get("goal") or "lose",
                goal_weight=_optional_float(form_data.get("goal_weight")),
                sugar_level=_optional_float(form_data.get("sugar_level")) or 0,
            )
        except (KeyError, TypeError) as exc:
            raise ValueError("height, weight and age are required numbers.") from exc


@dataclass
class NutritionPlan:
    """Daily intake targets."""

    calories: int
    protein: int
    carbs: int
    fats: int
    sugar_limit: int
    vitamins: dict[str, float] = field(
        default_factory=lambda: {"a": 900, "c": 90, "d": 15, "e": 15, "b12": 2.4}
    )
    minerals: dict[str, float] = field(
        default_factory=lambda: {"zinc": 11, "iron": 18, "calcium": 1000}
    )

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def basal_metabolic_rate(profile: DietProfile) -> float:
    """Harris-Benedict BMR in kcal/day."""

    if profile.gender == "male":
        return 88.362 + 13.397 * profile.weight + 4.799 * profile.height - 5.677 * profile.age
    return 447.593 + 9.247 * profile.weight + 3.098 * profile.height - 4.33 * profile.age


def calculate_nutrition(profile: DietProfile) -> NutritionPlan:
    tdee = basal_metabolic_rate(profile) * ACTIVITY_MULTIPLIERS[profile.activity_level]
    if profile.goal == "lose":
        goal_calories = tdee - CALORIE_ADJUSTMENT
    else:
        goal_calories = tdee + CALORIE_ADJUSTMENT

    sugar_limit: float = BASE_SUGAR_LIMIT
    if profile.sugar_level > HIGH_SUGAR_THRESHOLD:
        sugar_limit = BASE_SUGAR_LIMIT * HIGH_SUGAR_FACTOR

    return NutritionPlan(
        calories=_round(goal_calories),
        protein=_round(goal_calories * 0.3 / 4),
        carbs=_round(goal_calories * 0.45 / 4),
        fats=_round(goal_calories * 0.25 / 9),
        sugar_limit=_round(sugar_limit),
    )


def _round(value: float) -> int:
    return math.floor(value + 0.5)


def _optional_float(value: Any) -> float | None:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
