"""Domain models for derived statistics."""

from dataclasses import dataclass
from enum import StrEnum


class DayStatus(StrEnum):
    """Classification of a day against its calorie goal."""

    NO_DATA = "no_data"
    WITHIN_GOAL = "within_goal"
    OVER_GOAL = "over_goal"


@dataclass(frozen=True)
class Progress:
    """Consumed-to-goal ratio, raw and capped for progress bars."""

    raw: float
    capped: float


@dataclass(frozen=True)
class Remaining:
    """Calories left before (or beyond) the daily goal."""

    calories: int
    is_over_goal: bool


@dataclass(frozen=True)
class DaySummary:
    """Totals for one day of a weekly window."""

    date: str
    total_calories: int
    goal_calories: int
    has_log: bool
    status: DayStatus
