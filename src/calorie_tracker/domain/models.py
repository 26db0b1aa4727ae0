"""Domain models for the calorie tracker."""

from dataclasses import dataclass, field
from enum import StrEnum


class Gender(StrEnum):
    """Biological sex used by the BMR formula."""

    MALE = "male"
    FEMALE = "female"


class ActivityLevel(StrEnum):
    """Self-reported physical activity level."""

    SEDENTARY = "sedentary"
    LIGHT = "light"
    MODERATE = "moderate"
    ACTIVE = "active"
    VERY_ACTIVE = "very_active"


class MealSlot(StrEnum):
    """Fixed meal categories of a daily log."""

    BREAKFAST = "breakfast"
    SNACK = "snack"
    LUNCH = "lunch"
    DINNER = "dinner"


MEAL_SLOTS: tuple[MealSlot, ...] = tuple(MealSlot)


@dataclass(frozen=True)
class UserProfile:
    """Body data and weight goal of the active user."""

    gender: Gender
    age: int
    weight_kg: float
    height_cm: int
    activity_level: ActivityLevel
    goal_weight_kg: float
    goal_timeframe_months: int


@dataclass(frozen=True)
class MealEntry:
    """Single meal added to a daily log."""

    id: str
    calories: int
    dish_name: str


def _empty_meals() -> dict[MealSlot, tuple[MealEntry, ...]]:
    return {slot: () for slot in MEAL_SLOTS}


@dataclass(frozen=True)
class DailyLog:
    """Meals and frozen calorie goal for one calendar day."""

    date: str
    goal_calories: int
    meals: dict[MealSlot, tuple[MealEntry, ...]] = field(default_factory=_empty_meals)

    @classmethod
    def empty(cls, date: str, goal_calories: int) -> "DailyLog":
        """Return a log with all four slots present and empty."""
        return cls(date=date, goal_calories=goal_calories)


@dataclass(frozen=True)
class WeightEntry:
    """Body weight recorded on a calendar day."""

    date: str
    weight_kg: float
