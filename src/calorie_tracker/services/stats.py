"""Derived totals and classifications over daily logs."""

from collections.abc import Iterable
from datetime import date, timedelta

from calorie_tracker.domain.models import MEAL_SLOTS, DailyLog, MealSlot
from calorie_tracker.domain.stats import DayStatus, DaySummary, Progress, Remaining

WEEK_DAYS = 7


def daily_total(log: DailyLog) -> int:
    """Sum calories across every slot of a log."""
    return sum(entry.calories for slot in MEAL_SLOTS for entry in log.meals[slot])


def slot_totals(log: DailyLog) -> dict[MealSlot, int]:
    """Return calories per meal slot."""
    return {
        slot: sum(entry.calories for entry in log.meals[slot]) for slot in MEAL_SLOTS
    }


def day_status(total: int | None, goal: int, has_log: bool = True) -> DayStatus:
    """Classify a day against its goal.

    A day with no log, or with a log but nothing eaten, has no data. Zero intake
    is never reported as meeting the goal.
    """
    if not has_log or total is None or total <= 0:
        return DayStatus.NO_DATA
    if total > goal:
        return DayStatus.OVER_GOAL
    return DayStatus.WITHIN_GOAL


def progress(total: int, goal: int) -> Progress:
    """Return the consumed/goal ratio, raw and capped at 1.0."""
    raw = total / goal if goal > 0 else 0.0
    return Progress(raw=raw, capped=min(raw, 1.0))


def remaining_calories(total: int, goal: int) -> Remaining:
    """Return calories left, as an absolute value with an over-goal flag."""
    return Remaining(calories=abs(goal - total), is_over_goal=total > goal)


def weekly_window(
    history: Iterable[DailyLog],
    reference_date: date,
    fallback_goal: int = 0,
) -> list[DaySummary]:
    """Summarize the seven days ending at ``reference_date``, oldest first.

    Days without a log report ``fallback_goal`` so charts can still draw a goal
    line for them.
    """
    logs_by_date: dict[str, DailyLog] = {}
    for log in history:
        logs_by_date.setdefault(log.date, log)

    summaries = []
    for offset in range(WEEK_DAYS - 1, -1, -1):
        day = (reference_date - timedelta(days=offset)).isoformat()
        log = logs_by_date.get(day)
        if log is None:
            summaries.append(
                DaySummary(
                    date=day,
                    total_calories=0,
                    goal_calories=fallback_goal,
                    has_log=False,
                    status=DayStatus.NO_DATA,
                )
            )
            continue
        total = daily_total(log)
        summaries.append(
            DaySummary(
                date=day,
                total_calories=total,
                goal_calories=log.goal_calories,
                has_log=True,
                status=day_status(total, log.goal_calories),
            )
        )
    return summaries
