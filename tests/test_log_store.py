"""Tests for the log store."""

import json
from dataclasses import replace
from datetime import date

import pytest

from calorie_tracker.domain.models import MealSlot
from calorie_tracker.services.log_store import (
    HISTORY_KEY,
    PROFILE_KEY,
    WEIGHTS_KEY,
    LogStore,
)
from calorie_tracker.services.records import profile_to_record
from calorie_tracker.services.stats import daily_total
from tests.conftest import FakeClock, InMemoryStateRepository


def test_load_empty_repository_has_no_profile(store) -> None:
    assert store.profile is None
    assert store.history == ()
    assert store.weights == ()
    assert store.today_log() is None


def test_save_profile_persists_and_clears_history(
    profiled_store, repository, profile
) -> None:
    profiled_store.add_meal(500, MealSlot.LUNCH, "Pasta")
    profiled_store.add_weight_entry(69.5)

    profiled_store.save_profile(replace(profile, age=31))

    assert profiled_store.profile.age == 31
    assert profiled_store.history == ()
    assert profiled_store.weights == ()
    assert repository.decoded(PROFILE_KEY)["age"] == 31
    assert repository.decoded(HISTORY_KEY) == []
    assert repository.decoded(WEIGHTS_KEY) == []
    assert set(repository.writes[-1]) == {PROFILE_KEY, HISTORY_KEY, WEIGHTS_KEY}


def test_reset_profile_clears_everything(profiled_store, repository) -> None:
    profiled_store.add_meal(500, MealSlot.LUNCH, "Pasta")

    profiled_store.reset_profile()

    assert profiled_store.profile is None
    assert profiled_store.history == ()
    assert repository.values == {}


def test_mutations_without_profile_are_noops(store, repository) -> None:
    assert store.add_meal(300, MealSlot.BREAKFAST, "Toast") is None
    assert store.update_goal_calories(1500) is None
    assert store.add_weight_entry(70) is None
    assert store.delete_meal(MealSlot.BREAKFAST, "missing") is False
    assert store.history == ()
    assert repository.writes == []


def test_add_meal_creates_today_log_with_computed_goal(
    profiled_store, repository
) -> None:
    entry = profiled_store.add_meal(452.6, MealSlot.DINNER, "Salmon")

    [log] = profiled_store.history
    assert log.date == "2024-03-15"
    assert log.goal_calories == 1785
    assert log.meals[MealSlot.DINNER] == (entry,)
    assert entry.calories == 453
    assert set(log.meals) == set(MealSlot)
    stored = repository.decoded(HISTORY_KEY)
    assert stored[0]["meals"]["dinner"][0]["dishName"] == "Salmon"


def test_add_meal_rounds_half_calories_up(profiled_store) -> None:
    assert profiled_store.add_meal(250.5, MealSlot.LUNCH, "Soup").calories == 251
    assert profiled_store.add_meal(0.5, MealSlot.SNACK, "Mint").calories == 1


def test_add_meal_appends_in_order_without_touching_other_slots(profiled_store) -> None:
    first = profiled_store.add_meal(300, MealSlot.LUNCH, "Soup")
    second = profiled_store.add_meal(200, MealSlot.LUNCH, "Bread")
    breakfast = profiled_store.add_meal(150, MealSlot.BREAKFAST, "Coffee")

    log = profiled_store.today_log()
    assert log.meals[MealSlot.LUNCH] == (first, second)
    assert log.meals[MealSlot.BREAKFAST] == (breakfast,)
    assert len({first.id, second.id, breakfast.id}) == 3


def test_add_meal_does_not_mutate_earlier_snapshots(profiled_store) -> None:
    profiled_store.add_meal(300, MealSlot.LUNCH, "Soup")
    snapshot = profiled_store.today_log()
    history_snapshot = profiled_store.history

    profiled_store.add_meal(200, MealSlot.LUNCH, "Bread")

    assert len(snapshot.meals[MealSlot.LUNCH]) == 1
    assert daily_total(history_snapshot[0]) == 300


def test_rapid_meal_ids_are_unique(profiled_store) -> None:
    ids = {profiled_store.add_meal(10, MealSlot.SNACK, "Nut").id for _ in range(200)}
    assert len(ids) == 200


def test_additive_consistency_across_slots(profiled_store) -> None:
    calls = [
        (120.4, MealSlot.BREAKFAST),
        (80.5, MealSlot.SNACK),
        (640, MealSlot.LUNCH),
        (455.7, MealSlot.DINNER),
        (99.9, MealSlot.SNACK),
    ]
    for calories, slot in calls:
        profiled_store.add_meal(calories, slot, "Meal")

    expected = 120 + 81 + 640 + 456 + 100
    assert daily_total(profiled_store.today_log()) == expected


def test_delete_meal_removes_only_that_entry(profiled_store, repository) -> None:
    keep = profiled_store.add_meal(300, MealSlot.LUNCH, "Soup")
    drop = profiled_store.add_meal(450, MealSlot.LUNCH, "Steak")
    profiled_store.add_meal(200, MealSlot.DINNER, "Yogurt")
    before = daily_total(profiled_store.today_log())

    assert profiled_store.delete_meal(MealSlot.LUNCH, drop.id) is True

    log = profiled_store.today_log()
    assert log.meals[MealSlot.LUNCH] == (keep,)
    assert daily_total(log) == before - 450
    assert repository.decoded(HISTORY_KEY)[0]["meals"]["lunch"] == [
        {"id": keep.id, "calories": 300, "dishName": "Soup"}
    ]


def test_delete_meal_is_idempotent(profiled_store, repository) -> None:
    entry = profiled_store.add_meal(300, MealSlot.LUNCH, "Soup")
    assert profiled_store.delete_meal(MealSlot.LUNCH, entry.id) is True
    writes = len(repository.writes)

    assert profiled_store.delete_meal(MealSlot.LUNCH, entry.id) is False
    assert profiled_store.delete_meal(MealSlot.DINNER, "unknown") is False
    assert len(repository.writes) == writes


def test_delete_meal_only_targets_today(profiled_store, clock) -> None:
    entry = profiled_store.add_meal(300, MealSlot.LUNCH, "Soup")
    clock.current = date(2024, 3, 16)

    assert profiled_store.delete_meal(MealSlot.LUNCH, entry.id) is False
    assert daily_total(profiled_store.log_for("2024-03-15")) == 300


def test_update_goal_only_changes_today(profiled_store, clock) -> None:
    profiled_store.add_meal(300, MealSlot.LUNCH, "Soup")
    clock.current = date(2024, 3, 16)

    log = profiled_store.update_goal_calories(1500)

    assert log.date == "2024-03-16"
    assert log.goal_calories == 1500
    assert all(entries == () for entries in log.meals.values())
    assert profiled_store.log_for("2024-03-15").goal_calories == 1785


def test_update_goal_overwrites_existing_log(profiled_store) -> None:
    entry = profiled_store.add_meal(300, MealSlot.LUNCH, "Soup")

    log = profiled_store.update_goal_calories(2200)

    assert log.goal_calories == 2200
    assert log.meals[MealSlot.LUNCH] == (entry,)
    assert len(profiled_store.history) == 1


def test_goal_snapshot_survives_profile_changes(repository, clock, profile) -> None:
    store = LogStore.load(repository, clock=clock)
    store.save_profile(profile)
    store.add_meal(300, MealSlot.LUNCH, "Soup")
    stored_profile = repository.values[PROFILE_KEY]

    repository.values[PROFILE_KEY] = json.dumps(
        profile_to_record(replace(profile, weight_kg=90, goal_weight_kg=90))
    )
    reloaded = LogStore.load(repository, clock=clock)

    assert reloaded.log_for("2024-03-15").goal_calories == 1785
    assert stored_profile != repository.values[PROFILE_KEY]


def test_dates_stay_unique_across_days(profiled_store, clock) -> None:
    for day in (15, 16, 15, 17, 16):
        clock.current = date(2024, 3, day)
        profiled_store.add_meal(100, MealSlot.SNACK, "Bar")
        profiled_store.add_weight_entry(70 - day / 10)

    dates = [log.date for log in profiled_store.history]
    assert len(dates) == len(set(dates)) == 3
    weight_dates = [entry.date for entry in profiled_store.weights]
    assert weight_dates == ["2024-03-15", "2024-03-16", "2024-03-17"]


def test_weight_entry_replaces_same_day_and_stays_sorted(
    profiled_store, clock, repository
) -> None:
    clock.current = date(2024, 3, 20)
    profiled_store.add_weight_entry(69.0)
    clock.current = date(2024, 3, 18)
    profiled_store.add_weight_entry(69.8)
    profiled_store.add_weight_entry(69.6)

    assert [(e.date, e.weight_kg) for e in profiled_store.weights] == [
        ("2024-03-18", 69.6),
        ("2024-03-20", 69.0),
    ]
    assert repository.decoded(WEIGHTS_KEY) == [
        {"date": "2024-03-18", "weightKg": 69.6},
        {"date": "2024-03-20", "weightKg": 69.0},
    ]


def test_failed_write_leaves_state_unchanged(profiled_store, repository) -> None:
    profiled_store.add_meal(300, MealSlot.LUNCH, "Soup")
    repository.fail_writes = True

    with pytest.raises(RuntimeError):
        profiled_store.add_meal(500, MealSlot.DINNER, "Steak")

    assert daily_total(profiled_store.today_log()) == 300


def test_load_migrates_and_writes_back(profile, clock) -> None:
    repository = InMemoryStateRepository(
        values={
            PROFILE_KEY: json.dumps(profile_to_record(profile)),
            HISTORY_KEY: json.dumps(
                [{"date": "2024-03-10", "meals": {"breakfast": 250, "dinner": 600}}]
            ),
            WEIGHTS_KEY: json.dumps([{"date": "2024-03-10", "weightKg": 70.2}]),
        }
    )

    store = LogStore.load(repository, clock=clock)

    [log] = store.history
    assert log.goal_calories == 2000
    assert daily_total(log) == 850
    assert store.weights[0].weight_kg == 70.2
    written = repository.decoded(HISTORY_KEY)
    assert written[0]["meals"]["breakfast"][0]["id"] == "mig-2024-03-10-breakfast"
    assert written[0]["meals"]["snack"] == []


def test_load_current_data_round_trips(profiled_store, repository, clock) -> None:
    profiled_store.add_meal(300, MealSlot.LUNCH, "Soup")
    stored = repository.values[HISTORY_KEY]

    reloaded = LogStore.load(repository, clock=clock)

    assert reloaded.history == profiled_store.history
    assert repository.values[HISTORY_KEY] == stored


@pytest.mark.parametrize(
    "values",
    [
        {PROFILE_KEY: "{not json"},
        {PROFILE_KEY: json.dumps({"gender": "robot"})},
        {PROFILE_KEY: json.dumps({}), HISTORY_KEY: "[]"},
        {HISTORY_KEY: json.dumps({"date": "x"}), PROFILE_KEY: "null"},
    ],
)
def test_corrupted_state_is_discarded(values, clock) -> None:
    repository = InMemoryStateRepository(values=dict(values))

    store = LogStore.load(repository, clock=clock)

    assert store.profile is None
    assert store.history == ()
    assert repository.values == {}


def test_corrupted_history_discards_profile_too(profile, clock) -> None:
    repository = InMemoryStateRepository(
        values={
            PROFILE_KEY: json.dumps(profile_to_record(profile)),
            HISTORY_KEY: json.dumps({"date": "2024-03-10"}),
        }
    )

    store = LogStore.load(repository, clock=clock)

    assert store.profile is None
    assert repository.values == {}


def test_history_without_profile_is_ignored(clock) -> None:
    repository = InMemoryStateRepository(
        values={HISTORY_KEY: json.dumps([{"date": "2024-03-10"}])}
    )

    store = LogStore.load(repository, clock=clock)

    assert store.profile is None
    assert store.history == ()


def test_today_log_is_transient_until_written(profiled_store, repository) -> None:
    log = profiled_store.today_log()

    assert log.goal_calories == 1785
    assert daily_total(log) == 0
    assert profiled_store.history == ()
    assert repository.decoded(HISTORY_KEY) == []


def test_store_uses_clock_for_today(repository, profile) -> None:
    store = LogStore.load(repository, clock=FakeClock(date(2025, 1, 2)))
    store.save_profile(profile)
    store.add_meal(100, MealSlot.SNACK, "Tea")

    assert store.history[0].date == "2025-01-02"
