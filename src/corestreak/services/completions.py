"""Completion store key scheme and the persistence date boundary.

In memory a completion is a key ``"<habit_id>-<year>-<month>-<day>"`` where the
month is zero-based (0 = January). Persisted rows carry real ISO dates with
one-based months; ``to_storage_date``/``from_storage_date`` are the only place
the two conventions meet.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Dict, Iterable, Tuple, Union

CompletionStore = Dict[str, bool]

_DATE_KEY_RE = re.compile(r"^(\d{1,4})-(\d{1,2})-(\d{1,2})$")


def date_key_for(year: int, month: int, day: int) -> str:
    """Date key from a zero-based month."""

    return f"{year}-{month}-{day}"


def date_key(value: Union[date, datetime]) -> str:
    """Date key for a real calendar date."""

    if isinstance(value, datetime):
        value = value.date()
    return date_key_for(value.year, value.month - 1, value.day)


def parse_date_key(key: str) -> date:
    """Inverse of :func:`date_key`; raises ``ValueError`` on malformed keys."""

    match = _DATE_KEY_RE.match(key)
    if match is None:
        raise ValueError(f"Invalid date key: {key!r}")
    year, month, day = (int(part) for part in match.groups())
    return date(year, month + 1, day)


def _is_date_key(key: str) -> bool:
    try:
        parse_date_key(key)
    except ValueError:
        return False
    return True


def completion_key(habit_id: str, day_key: str) -> str:
    return f"{habit_id}-{day_key}"


def to_storage_date(day_key: str) -> date:
    """Convert an in-memory date key to the persisted (one-based) date."""

    return parse_date_key(day_key)


def from_storage_date(value: Union[date, str]) -> str:
    """Convert a persisted date (``date`` or ISO ``YYYY-MM-DD``) to a date key."""

    if isinstance(value, str):
        value = date.fromisoformat(value)
    return date_key(value)


def build_store(rows: Iterable[Tuple[str, Union[date, str]]]) -> CompletionStore:
    """Build a store from ``(habit_id, completed_on)`` rows."""

    return {completion_key(habit_id, from_storage_date(day)): True for habit_id, day in rows}


def toggle(store: CompletionStore, habit_id: str, day_key: str) -> CompletionStore:
    """Return a copy of ``store`` with the completion flipped.

    Keys are removed rather than set to ``False``.
    """

    key = completion_key(habit_id, day_key)
    updated = dict(store)
    if updated.get(key):
        del updated[key]
    else:
        updated[key] = True
    return updated


def _keys_for_habit(store: CompletionStore, habit_id: str) -> list[str]:
    prefix = f"{habit_id}-"
    return [
        key
        for key in store
        if key.startswith(prefix) and _is_date_key(key[len(prefix):])
    ]


def purge_habit(store: CompletionStore, habit_id: str) -> CompletionStore:
    """Return a copy of ``store`` without any entry for ``habit_id``."""

    doomed = set(_keys_for_habit(store, habit_id))
    return {key: value for key, value in store.items() if key not in doomed}


def rekey_habit(store: CompletionStore, old_id: str, new_id: str) -> CompletionStore:
    """Move entries recorded under a temporary id to the durable one."""

    prefix = f"{old_id}-"
    moved = set(_keys_for_habit(store, old_id))
    updated = {key: value for key, value in store.items() if key not in moved}
    for key in moved:
        updated[completion_key(new_id, key[len(prefix):])] = True
    return updated


__all__ = [
    "CompletionStore",
    "build_store",
    "completion_key",
    "date_key",
    "date_key_for",
    "from_storage_date",
    "parse_date_key",
    "purge_habit",
    "rekey_habit",
    "to_storage_date",
    "toggle",
]
