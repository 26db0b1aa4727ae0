"""Conversion between domain models and persisted JSON records."""

import math
from collections.abc import Mapping
from uuid import uuid4

from calorie_tracker.domain.models import (
    MEAL_SLOTS,
    ActivityLevel,
    DailyLog,
    Gender,
    MealEntry,
    UserProfile,
    WeightEntry,
)
from calorie_tracker.services.rounding import round_half_up

LOGGED_MEAL_LABEL = "Logged meal"


class CorruptStateError(ValueError):
    """Raised when persisted state cannot be interpreted at all."""


def new_meal_id() -> str:
    """Return a fresh meal entry id."""
    return uuid4().hex


def profile_to_record(profile: UserProfile) -> dict[str, object]:
    return {
        "gender": profile.gender.value,
        "age": profile.age,
        "weightKg": profile.weight_kg,
        "heightCm": profile.height_cm,
        "activityLevel": profile.activity_level.value,
        "goalWeightKg": profile.goal_weight_kg,
        "goalTimeframeMonths": profile.goal_timeframe_months,
    }


def profile_from_record(record: object) -> UserProfile:
    """Parse a stored profile, raising CorruptStateError on bad data."""
    if not isinstance(record, Mapping):
        raise CorruptStateError("Stored profile is not an object")
    try:
        return UserProfile(
            gender=Gender(record["gender"]),
            age=int(record["age"]),
            weight_kg=float(record["weightKg"]),
            height_cm=int(record["heightCm"]),
            activity_level=ActivityLevel(record["activityLevel"]),
            goal_weight_kg=float(record["goalWeightKg"]),
            goal_timeframe_months=int(record["goalTimeframeMonths"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise CorruptStateError(f"Stored profile is invalid: {exc}") from exc


def meal_to_record(entry: MealEntry) -> dict[str, object]:
    return {"id": entry.id, "calories": entry.calories, "dishName": entry.dish_name}


def log_to_record(log: DailyLog) -> dict[str, object]:
    return {
        "date": log.date,
        "goalCalories": log.goal_calories,
        "meals": {
            slot.value: [meal_to_record(entry) for entry in log.meals[slot]]
            for slot in MEAL_SLOTS
        },
    }


def log_from_record(record: Mapping[str, object]) -> DailyLog:
    """Build a DailyLog from a record already in the current schema."""
    date = str(record["date"])
    raw_meals = record.get("meals")
    meals_record = raw_meals if isinstance(raw_meals, Mapping) else {}
    meals = {}
    for slot in MEAL_SLOTS:
        raw_entries = meals_record.get(slot.value)
        entries = raw_entries if isinstance(raw_entries, list) else []
        meals[slot] = tuple(
            _meal_from_record(raw)
            for raw in entries
            if isinstance(raw, Mapping)
        )
    return DailyLog(
        date=date,
        goal_calories=round_half_up(_to_number(record.get("goalCalories"))),
        meals=meals,
    )


def weight_to_record(entry: WeightEntry) -> dict[str, object]:
    return {"date": entry.date, "weightKg": entry.weight_kg}


def weights_from_records(records: object) -> list[WeightEntry]:
    """Parse stored weight entries, keeping the last write per date."""
    if not isinstance(records, list):
        raise CorruptStateError("Stored weight history is not a list")
    by_date: dict[str, WeightEntry] = {}
    for record in records:
        if not isinstance(record, Mapping) or "date" not in record:
            continue
        weight = _to_number(record.get("weightKg"))
        if weight <= 0:
            continue
        by_date[str(record["date"])] = WeightEntry(
            date=str(record["date"]), weight_kg=weight
        )
    return sorted(by_date.values(), key=lambda entry: entry.date)


def _meal_from_record(record: Mapping[str, object]) -> MealEntry:
    return MealEntry(
        id=str(record.get("id") or new_meal_id()),
        calories=max(round_half_up(_to_number(record.get("calories"))), 0),
        dish_name=str(record.get("dishName") or LOGGED_MEAL_LABEL),
    )


def _to_number(value: object) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0
