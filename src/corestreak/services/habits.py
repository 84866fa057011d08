"""Habit analytics: day classification, streaks and discipline scores.

Everything here is a pure function of its arguments. ``today`` is always passed
in explicitly; nothing reads the clock. Habits only need ``id`` and ``is_core``
attributes, so table rows and lightweight stand-ins both work.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable, Optional, Protocol, Sequence

from .completions import CompletionStore, completion_key, date_key, date_key_for
from .dates import days_in_month as _days_in_month

DEFAULT_LOOKBACK_DAYS = 365


class HabitLike(Protocol):
    id: str
    is_core: bool


class DayClass(str, Enum):
    """Judgement of a single day based on its core habits."""

    PERFECT = "perfect"
    AVERAGE = "average"
    BAD = "bad"


@dataclass(slots=True)
class DayStats:
    """Counts of classified days over an elapsed period."""

    perfect: int = 0
    average: int = 0
    bad: int = 0

    @property
    def total(self) -> int:
        return self.perfect + self.average + self.bad


@dataclass(slots=True)
class MonthlyDashboard:
    """Every metric the monthly dashboard view needs, for one month."""

    year: int
    month: int
    days_in_month: int
    elapsed_days: int
    current_streak: int
    last_perfect_day: Optional[date]
    discipline_score: int
    classifications: list[DayClass] = field(default_factory=list)
    day_stats: DayStats = field(default_factory=DayStats)
    habits_per_day: list[int] = field(default_factory=list)
    daily_scores: list[int] = field(default_factory=list)
    habit_progress: dict[str, int] = field(default_factory=dict)


def _percent(part: int, whole: int) -> int:
    """Integer percentage rounded half-up; 0 when ``whole`` is 0."""

    if whole <= 0:
        return 0
    value = Decimal(part) * 100 / Decimal(whole)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def core_habits(habits: Iterable[HabitLike]) -> list[HabitLike]:
    return [h for h in habits if h.is_core]


def is_current_month(year: int, month: int, today: date) -> bool:
    return year == today.year and month == today.month - 1


def elapsed_days(year: int, month: int, today: date) -> int:
    """Days counted for a month: up to today in the current month, else all."""

    if is_current_month(year, month, today):
        return today.day
    return _days_in_month(year, month)


def is_completed(habit_id: str, day_key: str, store: CompletionStore) -> bool:
    return bool(store.get(completion_key(habit_id, day_key)))


def _completed_count(day_key: str, habits: Sequence[HabitLike], store: CompletionStore) -> int:
    return sum(1 for h in habits if is_completed(h.id, day_key, store))


def classify_day(
    day_key: str, core: Sequence[HabitLike], store: CompletionStore
) -> DayClass:
    """Perfect when every core habit is done, Average when some, Bad otherwise.

    With no core habits there is nothing to be perfect at, so the day is Bad.
    """

    if not core:
        return DayClass.BAD
    completed = _completed_count(day_key, core, store)
    if completed == len(core):
        return DayClass.PERFECT
    if completed > 0:
        return DayClass.AVERAGE
    return DayClass.BAD


def current_streak(
    today: date,
    core: Sequence[HabitLike],
    store: CompletionStore,
    *,
    horizon: int = DEFAULT_LOOKBACK_DAYS,
) -> int:
    """Consecutive Perfect days ending at ``today`` (0 if today is not Perfect).

    The walk stops after ``horizon`` days, so the result never exceeds it.
    """

    if not core:
        return 0
    streak = 0
    cursor = today
    while streak < horizon and classify_day(date_key(cursor), core, store) is DayClass.PERFECT:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def last_perfect_day(
    today: date,
    core: Sequence[HabitLike],
    store: CompletionStore,
    *,
    horizon: int = DEFAULT_LOOKBACK_DAYS,
) -> Optional[date]:
    """Most recent Perfect day within ``horizon`` days, ``today`` included."""

    if not core:
        return None
    cursor = today
    for _ in range(horizon):
        if classify_day(date_key(cursor), core, store) is DayClass.PERFECT:
            return cursor
        cursor -= timedelta(days=1)
    return None


def discipline_score(
    year: int,
    month: int,
    today: date,
    core: Sequence[HabitLike],
    store: CompletionStore,
) -> int:
    """Share of core-habit/day slots completed over the elapsed part of a month."""

    if not core:
        return 0
    days = elapsed_days(year, month, today)
    possible = days * len(core)
    completed = sum(
        _completed_count(date_key_for(year, month, day), core, store)
        for day in range(1, days + 1)
    )
    return _percent(completed, possible)


def habits_completed_per_day(
    year: int,
    month: int,
    days_in_month: int,
    habits: Sequence[HabitLike],
    store: CompletionStore,
) -> list[int]:
    """Completed habits (core or not) for each day; index 0 is the 1st."""

    return [
        _completed_count(date_key_for(year, month, day), habits, store)
        for day in range(1, days_in_month + 1)
    ]


def daily_discipline_scores(
    year: int,
    month: int,
    days_in_month: int,
    today: date,
    core: Sequence[HabitLike],
    store: CompletionStore,
) -> list[int]:
    """Per-day percentage of core habits completed.

    Days after ``today`` in the current month report 0.
    """

    scores: list[int] = []
    current = is_current_month(year, month, today)
    for day in range(1, days_in_month + 1):
        if not core or (current and day > today.day):
            scores.append(0)
            continue
        completed = _completed_count(date_key_for(year, month, day), core, store)
        scores.append(_percent(completed, len(core)))
    return scores


def habit_monthly_progress(
    habit_id: str, year: int, month: int, today: date, store: CompletionStore
) -> int:
    """Percentage of elapsed days in the month on which the habit was completed."""

    days = elapsed_days(year, month, today)
    completed = sum(
        1 for day in range(1, days + 1) if is_completed(habit_id, date_key_for(year, month, day), store)
    )
    return _percent(completed, days)


def day_classification_stats(
    year: int,
    month: int,
    today: date,
    core: Sequence[HabitLike],
    store: CompletionStore,
) -> DayStats:
    """Count Perfect/Average/Bad days over the elapsed part of a month."""

    stats = DayStats()
    for day in range(1, elapsed_days(year, month, today) + 1):
        verdict = classify_day(date_key_for(year, month, day), core, store)
        if verdict is DayClass.PERFECT:
            stats.perfect += 1
        elif verdict is DayClass.AVERAGE:
            stats.average += 1
        else:
            stats.bad += 1
    return stats


def build_monthly_dashboard(
    year: int,
    month: int,
    today: date,
    habits: Sequence[HabitLike],
    store: CompletionStore,
    *,
    horizon: int = DEFAULT_LOOKBACK_DAYS,
) -> MonthlyDashboard:
    """Bundle every metric for one month view.

    Streak and last perfect day are anchored at ``today`` regardless of the
    month being viewed.
    """

    core = core_habits(habits)
    length = _days_in_month(year, month)
    return MonthlyDashboard(
        year=year,
        month=month,
        days_in_month=length,
        elapsed_days=elapsed_days(year, month, today),
        current_streak=current_streak(today, core, store, horizon=horizon),
        last_perfect_day=last_perfect_day(today, core, store, horizon=horizon),
        discipline_score=discipline_score(year, month, today, core, store),
        classifications=[
            classify_day(date_key_for(year, month, day), core, store)
            for day in range(1, length + 1)
        ],
        day_stats=day_classification_stats(year, month, today, core, store),
        habits_per_day=habits_completed_per_day(year, month, length, habits, store),
        daily_scores=daily_discipline_scores(year, month, length, today, core, store),
        habit_progress={
            h.id: habit_monthly_progress(h.id, year, month, today, store) for h in habits
        },
    )


__all__ = [
    "DEFAULT_LOOKBACK_DAYS",
    "DayClass",
    "DayStats",
    "MonthlyDashboard",
    "build_monthly_dashboard",
    "classify_day",
    "core_habits",
    "current_streak",
    "daily_discipline_scores",
    "day_classification_stats",
    "discipline_score",
    "elapsed_days",
    "habit_monthly_progress",
    "habits_completed_per_day",
    "is_completed",
    "is_current_month",
    "last_perfect_day",
]
