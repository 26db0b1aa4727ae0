"""Upgrades persisted daily log records to the current schema.

Older releases stored meals in several shapes:

* per-slot calorie numbers (``{"breakfast": 300, ...}``),
* a single ``currentCalories`` total with no ``meals`` at all,
* meal entries without a ``dishName``.

Each record runs through a chain of stages. A stage only touches records whose
shape it recognizes, so a record that is already current passes through
unchanged.
"""

import logging
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import cast

from calorie_tracker.domain.models import MEAL_SLOTS, DailyLog, MealSlot
from calorie_tracker.services.records import (
    LOGGED_MEAL_LABEL,
    CorruptStateError,
    log_from_record,
)
from calorie_tracker.services.rounding import round_half_up

_logger = logging.getLogger(__name__)

DEFAULT_GOAL_CALORIES = 2000
MIGRATED_MEAL_LABEL = "Migrated meal"

Record = dict[str, object]


@dataclass(frozen=True)
class MigrationStage:
    """A shape detector paired with the transform applied to matching records."""

    name: str
    matches: Callable[[Record], bool]
    apply: Callable[[Record], Record]


def migrate_records(raw_history: object) -> list[Record]:
    """Return persisted log records upgraded to the current schema.

    Raises CorruptStateError when the history as a whole is unusable.
    Individual records that cannot be interpreted are dropped.
    """
    if not isinstance(raw_history, list):
        raise CorruptStateError("Stored log history is not a list")

    migrated: list[Record] = []
    seen_dates: set[str] = set()
    for index, raw in enumerate(raw_history):
        if not isinstance(raw, Mapping) or not isinstance(raw.get("date"), str):
            _logger.warning("Dropping unreadable log record at index %s", index)
            continue
        record = migrate_record(dict(raw))
        date = str(record["date"])
        if date in seen_dates:
            _logger.warning("Dropping duplicate log record for %s", date)
            continue
        seen_dates.add(date)
        migrated.append(record)
    return migrated


def migrate_history(raw_history: object) -> list[DailyLog]:
    """Migrate persisted records and build typed daily logs."""
    return [log_from_record(record) for record in migrate_records(raw_history)]


def migrate_record(record: Record) -> Record:
    """Run a single record through every migration stage."""
    current = record
    for stage in MIGRATION_STAGES:
        if stage.matches(current):
            _logger.debug("Applying %s to log %s", stage.name, current.get("date"))
            current = stage.apply(current)
    return current


def _is_number(value: object) -> bool:
    return (
        isinstance(value, int | float)
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _has_numeric_slots(record: Record) -> bool:
    meals = record.get("meals")
    if not isinstance(meals, Mapping):
        return False
    return any(_is_number(meals.get(slot.value)) for slot in MEAL_SLOTS)


def _expand_numeric_slots(record: Record) -> Record:
    meals = cast(Mapping[str, object], record["meals"])
    expanded: dict[str, object] = {}
    for slot in MEAL_SLOTS:
        value = meals.get(slot.value)
        if _is_number(value):
            expanded[slot.value] = (
                [_migrated_entry(record, slot, value)] if value > 0 else []
            )
        else:
            expanded[slot.value] = value
    return {**record, "meals": expanded}


def _has_aggregate_total(record: Record) -> bool:
    total = record.get("currentCalories")
    return record.get("meals") is None and _is_number(total) and total > 0


def _expand_aggregate_total(record: Record) -> Record:
    meals: dict[str, object] = {slot.value: [] for slot in MEAL_SLOTS}
    meals[MealSlot.LUNCH.value] = [
        _migrated_entry(record, MealSlot.LUNCH, record["currentCalories"])
    ]
    return {
        "date": record["date"],
        "goalCalories": record.get("goalCalories"),
        "meals": meals,
    }


def _has_meals_mapping(record: Record) -> bool:
    return isinstance(record.get("meals"), Mapping)


def _complete_slots(record: Record) -> Record:
    meals = cast(Mapping[str, object], record["meals"])
    completed = {
        slot.value: meals.get(slot.value)
        if isinstance(meals.get(slot.value), list)
        else []
        for slot in MEAL_SLOTS
    }
    return {**record, "meals": completed}


def _lacks_meals(record: Record) -> bool:
    return not _has_meals_mapping(record)


def _synthesize_empty_log(record: Record) -> Record:
    return {
        "date": record["date"],
        "goalCalories": record.get("goalCalories") or DEFAULT_GOAL_CALORIES,
        "meals": {slot.value: [] for slot in MEAL_SLOTS},
    }


def _has_invalid_goal(record: Record) -> bool:
    goal = record.get("goalCalories")
    return not (_is_number(goal) and round_half_up(goal) > 0)


def _default_goal(record: Record) -> Record:
    return {**record, "goalCalories": DEFAULT_GOAL_CALORIES}


def _has_unnamed_entries(record: Record) -> bool:
    meals = record.get("meals")
    if not isinstance(meals, Mapping):
        return False
    return any(
        _is_unnamed(entry)
        for slot in MEAL_SLOTS
        for entry in meals.get(slot.value) or []
    )


def _is_unnamed(entry: object) -> bool:
    return isinstance(entry, Mapping) and not entry.get("dishName")


def _backfill_dish_names(record: Record) -> Record:
    meals = cast(Mapping[str, object], record["meals"])
    named = {
        slot.value: [
            {**entry, "dishName": LOGGED_MEAL_LABEL}
            if _is_unnamed(entry)
            else entry
            for entry in meals.get(slot.value) or []
        ]
        for slot in MEAL_SLOTS
    }
    return {**record, "meals": named}


def _migrated_entry(record: Record, slot: MealSlot, calories: object) -> Record:
    return {
        "id": f"mig-{record['date']}-{slot.value}",
        "calories": calories,
        "dishName": MIGRATED_MEAL_LABEL,
    }


MIGRATION_STAGES: tuple[MigrationStage, ...] = (
    MigrationStage("numeric-slots", _has_numeric_slots, _expand_numeric_slots),
    MigrationStage("aggregate-total", _has_aggregate_total, _expand_aggregate_total),
    MigrationStage("slot-completion", _has_meals_mapping, _complete_slots),
    MigrationStage("empty-log", _lacks_meals, _synthesize_empty_log),
    MigrationStage("goal-default", _has_invalid_goal, _default_goal),
    MigrationStage("dish-names", _has_unnamed_entries, _backfill_dish_names),
)
