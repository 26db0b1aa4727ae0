"""Authoritative store for the profile, daily logs and weight history."""

import json
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Protocol

from calorie_tracker.domain.models import (
    DailyLog,
    MealEntry,
    MealSlot,
    UserProfile,
    WeightEntry,
)
from calorie_tracker.services.goals import calculate_daily_goal
from calorie_tracker.services.migrations import migrate_history
from calorie_tracker.services.rounding import round_half_up
from calorie_tracker.services.records import (
    CorruptStateError,
    log_to_record,
    new_meal_id,
    profile_from_record,
    profile_to_record,
    weight_to_record,
    weights_from_records,
)

_logger = logging.getLogger(__name__)

PROFILE_KEY = "userProfile"
HISTORY_KEY = "logHistory"
WEIGHTS_KEY = "weightHistory"
STATE_KEYS = (PROFILE_KEY, HISTORY_KEY, WEIGHTS_KEY)


class StateRepository(Protocol):
    """Durable key-value storage for JSON-encoded state records."""

    def read_all(self) -> dict[str, str]:
        """Return the raw JSON text of every stored key."""

    def write_many(self, values: dict[str, str]) -> None:
        """Store several keys in one atomic write."""

    def delete_many(self, keys: list[str]) -> None:
        """Remove several keys in one atomic write."""


@dataclass
class LogStore:
    """Single mutation surface for the tracker state.

    Every mutation builds new immutable snapshots, persists them and only then
    swaps them in, so snapshots handed out earlier never change and a failed
    write leaves the in-memory state untouched.
    """

    repository: StateRepository
    clock: Callable[[], date] = date.today
    _profile: UserProfile | None = None
    _logs: dict[str, DailyLog] = field(default_factory=dict)
    _weights: dict[str, WeightEntry] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def load(
        cls, repository: StateRepository, clock: Callable[[], date] = date.today
    ) -> "LogStore":
        """Load persisted state, migrating old records and dropping corrupt data."""
        store = cls(repository=repository, clock=clock)
        try:
            raw = repository.read_all()
            store._restore(raw)
        except (CorruptStateError, ValueError, TypeError) as exc:
            _logger.warning("Discarding corrupted persisted state: %s", exc)
            repository.delete_many(list(STATE_KEYS))
            return cls(repository=repository, clock=clock)
        return store

    def _restore(self, raw: dict[str, str]) -> None:
        if PROFILE_KEY not in raw:
            return
        self._profile = profile_from_record(json.loads(raw[PROFILE_KEY]))
        if HISTORY_KEY in raw:
            logs = migrate_history(json.loads(raw[HISTORY_KEY]))
            self._logs = {log.date: log for log in logs}
            self.repository.write_many({HISTORY_KEY: _encode_logs(self._logs)})
            _logger.info("Loaded %s daily logs", len(self._logs))
        if WEIGHTS_KEY in raw:
            weights = weights_from_records(json.loads(raw[WEIGHTS_KEY]))
            self._weights = {entry.date: entry for entry in weights}

    @property
    def profile(self) -> UserProfile | None:
        return self._profile

    @property
    def history(self) -> tuple[DailyLog, ...]:
        """Daily logs in insertion order."""
        return tuple(self._logs.values())

    @property
    def weights(self) -> tuple[WeightEntry, ...]:
        """Weight entries sorted ascending by date."""
        return tuple(self._weights.values())

    def today(self) -> str:
        """Return today's local calendar date as an ISO string."""
        return self.clock().isoformat()

    def log_for(self, day: str) -> DailyLog | None:
        return self._logs.get(day)

    def today_log(self) -> DailyLog | None:
        """Return today's log, or an unsaved empty one with the computed goal."""
        if self._profile is None:
            return None
        today = self.today()
        existing = self._logs.get(today)
        if existing is not None:
            return existing
        return DailyLog.empty(today, calculate_daily_goal(self._profile))

    def save_profile(self, profile: UserProfile) -> None:
        """Install a new profile and start with empty histories."""
        with self._lock:
            self.repository.write_many(
                {
                    PROFILE_KEY: json.dumps(profile_to_record(profile)),
                    HISTORY_KEY: json.dumps([]),
                    WEIGHTS_KEY: json.dumps([]),
                }
            )
            self._profile = profile
            self._logs = {}
            self._weights = {}
        _logger.info("Saved new profile, histories cleared")

    def reset_profile(self) -> None:
        """Remove the profile and both histories."""
        with self._lock:
            self.repository.delete_many(list(STATE_KEYS))
            self._profile = None
            self._logs = {}
            self._weights = {}
        _logger.info("Profile reset")

    def add_meal(
        self, calories: float, slot: MealSlot, dish_name: str
    ) -> MealEntry | None:
        """Append a meal to today's log, creating the log when needed."""
        with self._lock:
            profile = self._profile
            if profile is None:
                _logger.debug("add_meal ignored: no active profile")
                return None
            entry = MealEntry(
                id=new_meal_id(), calories=round_half_up(calories), dish_name=dish_name
            )

            def append(log: DailyLog) -> DailyLog:
                meals = {**log.meals, slot: (*log.meals[slot], entry)}
                return replace(log, meals=meals)

            self._upsert_today(
                create=lambda day: DailyLog.empty(day, calculate_daily_goal(profile)),
                update=append,
            )
            return entry

    def delete_meal(self, slot: MealSlot, meal_id: str) -> bool:
        """Remove a meal from today's log. Returns False when nothing matched."""
        with self._lock:
            log = self._logs.get(self.today())
            if log is None:
                return False
            remaining = tuple(entry for entry in log.meals[slot] if entry.id != meal_id)
            if len(remaining) == len(log.meals[slot]):
                return False
            updated = replace(log, meals={**log.meals, slot: remaining})
            self._commit_logs({**self._logs, updated.date: updated})
            return True

    def update_goal_calories(self, value: int) -> DailyLog | None:
        """Overwrite today's goal snapshot without touching other days."""
        with self._lock:
            if self._profile is None:
                _logger.debug("update_goal_calories ignored: no active profile")
                return None
            return self._upsert_today(
                create=lambda day: DailyLog.empty(day, value),
                update=lambda log: replace(log, goal_calories=value),
            )

    def add_weight_entry(self, weight_kg: float) -> WeightEntry | None:
        """Record today's weight, replacing an earlier entry for the same day."""
        with self._lock:
            if self._profile is None:
                _logger.debug("add_weight_entry ignored: no active profile")
                return None
            entry = WeightEntry(date=self.today(), weight_kg=weight_kg)
            merged = {**self._weights, entry.date: entry}
            weights = {day: merged[day] for day in sorted(merged)}
            self.repository.write_many({WEIGHTS_KEY: _encode_weights(weights)})
            self._weights = weights
            return entry

    def _upsert_today(
        self,
        create: Callable[[str], DailyLog],
        update: Callable[[DailyLog], DailyLog],
    ) -> DailyLog:
        today = self.today()
        current = self._logs.get(today) or create(today)
        updated = update(current)
        self._commit_logs({**self._logs, today: updated})
        return updated

    def _commit_logs(self, logs: dict[str, DailyLog]) -> None:
        self.repository.write_many({HISTORY_KEY: _encode_logs(logs)})
        self._logs = logs


def _encode_logs(logs: dict[str, DailyLog]) -> str:
    return json.dumps([log_to_record(log) for log in logs.values()])


def _encode_weights(weights: dict[str, WeightEntry]) -> str:
    return json.dumps([weight_to_record(entry) for entry in weights.values()])
