"""Habit repository protocol."""

from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from ...models.habit import Habit
from ...services.completions import CompletionStore


class HabitRepository(Protocol):
    """Durable storage of habits and completions, scoped per user.

    Every method raises ``UnauthorizedError`` when ``user_id`` is ``None``.
    """

    def list_habits(self, *, user_id: Optional[int]) -> list[Habit]:
        """List the user's habits in creation order."""
        ...

    def list_completions(
        self, *, user_id: Optional[int], start_year: int, end_year: Optional[int] = None
    ) -> CompletionStore:
        """Load completions for an inclusive range of years."""
        ...

    def create_habit(self, name: str, is_core: bool = False, *, user_id: Optional[int]) -> Habit:
        """Create a new habit."""
        ...

    def update_habit(
        self,
        habit_id: str,
        *,
        user_id: Optional[int],
        name: Optional[str] = None,
        is_core: Optional[bool] = None,
    ) -> Habit:
        """Rename a habit and/or change its core flag."""
        ...

    def delete_habit(self, habit_id: str, *, user_id: Optional[int]) -> bool:
        """Delete a habit and all of its completions."""
        ...

    def set_completion(
        self, habit_id: str, on: date, completed: bool, *, user_id: Optional[int]
    ) -> None:
        """Mark a habit done (or not done) on a calendar day."""
        ...
