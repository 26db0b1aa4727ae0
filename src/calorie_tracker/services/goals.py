"""Daily calorie goal calculation (energy-balance model)."""

from dataclasses import dataclass

from calorie_tracker.domain.models import ActivityLevel, Gender, UserProfile
from calorie_tracker.services.rounding import round_half_up

KCAL_PER_KG = 7700
AVG_DAYS_PER_MONTH = 30.44

ACTIVITY_FACTORS: dict[ActivityLevel, float] = {
    ActivityLevel.SEDENTARY: 1.2,
    ActivityLevel.LIGHT: 1.375,
    ActivityLevel.MODERATE: 1.55,
    ActivityLevel.ACTIVE: 1.725,
    ActivityLevel.VERY_ACTIVE: 1.9,
}

_GENDER_OFFSETS: dict[Gender, float] = {
    Gender.MALE: 5.0,
    Gender.FEMALE: -161.0,
}


@dataclass(frozen=True)
class GoalSummary:
    """Direction and size of the weight goal."""

    direction: str
    difference_kg: float
    timeframe_months: int


def calculate_bmr(profile: UserProfile) -> float:
    """Return the basal metabolic rate using the Mifflin-St Jeor equation."""
    return (
        10 * profile.weight_kg
        + 6.25 * profile.height_cm
        - 5 * profile.age
        + _GENDER_OFFSETS[profile.gender]
    )


def calculate_tdee(profile: UserProfile) -> float:
    """Return total daily energy expenditure for the profile's activity level."""
    return calculate_bmr(profile) * ACTIVITY_FACTORS[profile.activity_level]


def calculate_daily_goal(profile: UserProfile) -> int:
    """Return the daily calorie goal that reaches the goal weight in time.

    The TDEE is shifted by the daily share of the energy needed to gain or lose
    the weight difference over the timeframe. A timeframe that yields no days
    falls back to the plain TDEE.
    """
    tdee = calculate_tdee(profile)
    delta_kg = profile.goal_weight_kg - profile.weight_kg
    if delta_kg == 0:
        return round_half_up(tdee)

    total_days = profile.goal_timeframe_months * AVG_DAYS_PER_MONTH
    if total_days <= 0:
        return round_half_up(tdee)

    daily_adjustment = delta_kg * KCAL_PER_KG / total_days
    return round_half_up(tdee + daily_adjustment)


def goal_summary(profile: UserProfile) -> GoalSummary:
    """Classify the weight goal as lose, gain or maintain."""
    delta_kg = profile.goal_weight_kg - profile.weight_kg
    if delta_kg < 0:
        direction = "lose"
    elif delta_kg > 0:
        direction = "gain"
    else:
        direction = "maintain"
    return GoalSummary(
        direction=direction,
        difference_kg=round(abs(delta_kg), 1),
        timeframe_months=profile.goal_timeframe_months,
    )
