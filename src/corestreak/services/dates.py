"""Calendar helpers working on zero-based months (0 = January).

Functions that compare against "today" accept it as an optional argument and
fall back to the local wall clock only when it is omitted.
"""

from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime, timedelta
from typing import Optional, Union

DateLike = Union[date, datetime]

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)
_MONTH_ABBR = tuple(name[:3] for name in MONTH_NAMES)
_WEEKDAY_LETTERS = ("S", "M", "T", "W", "T", "F", "S")


def _normalize(value: DateLike) -> date:
    """Drop any time-of-day component."""

    if isinstance(value, datetime):
        return value.date()
    return value


def _today(today: Optional[DateLike]) -> date:
    return _normalize(today) if today is not None else date.today()


def to_date(year: int, month: int, day: int) -> date:
    """Build a real calendar date from a zero-based month."""

    return date(year, month + 1, day)


def days_in_month(year: int, month: int) -> int:
    """Number of days in ``month`` of ``year`` (leap years included)."""

    return monthrange(year, month + 1)[1]


def weekday_of(year: int, month: int, day: int) -> int:
    """Weekday index of a day, 0 = Sunday .. 6 = Saturday."""

    # date.weekday() counts from Monday.
    return (to_date(year, month, day).weekday() + 1) % 7


def first_weekday_of_month(year: int, month: int) -> int:
    """Weekday index (0 = Sunday) of the 1st of the month."""

    return weekday_of(year, month, 1)


def weekday_letter(index: int) -> str:
    """Single-letter label for a weekday index."""

    if not 0 <= index <= 6:
        raise ValueError(f"weekday index must be within 0..6, got {index}")
    return _WEEKDAY_LETTERS[index]


def is_today(value: DateLike, today: Optional[DateLike] = None) -> bool:
    return _normalize(value) == _today(today)


def is_yesterday(value: DateLike, today: Optional[DateLike] = None) -> bool:
    return _normalize(value) == _today(today) - timedelta(days=1)


def is_future(value: DateLike, today: Optional[DateLike] = None) -> bool:
    return _normalize(value) > _today(today)


def is_past(value: DateLike, today: Optional[DateLike] = None) -> bool:
    return _normalize(value) < _today(today)


def is_editable_day(value: DateLike, today: Optional[DateLike] = None) -> bool:
    """Completions may only be changed for today or yesterday."""

    return is_today(value, today) or is_yesterday(value, today)


def format_short(value: DateLike) -> str:
    """Format as ``"Jan 5"`` regardless of the process locale."""

    day = _normalize(value)
    return f"{_MONTH_ABBR[day.month - 1]} {day.day}"


__all__ = [
    "MONTH_NAMES",
    "days_in_month",
    "first_weekday_of_month",
    "format_short",
    "is_editable_day",
    "is_future",
    "is_past",
    "is_today",
    "is_yesterday",
    "to_date",
    "weekday_letter",
    "weekday_of",
]
