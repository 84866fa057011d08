"""In-memory tracking session with optimistic, compensated mutations.

A :class:`HabitTracker` holds one user's habit list and completion store. Each
mutation is applied locally first, then persisted; when persistence fails the
local change is undone and the returned :class:`Mutation` carries a message the
caller can show (and retry).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError

from ..logging_config import get_logger
from ..models.habit import Habit
from . import completions as store_ops
from .dates import is_editable_day
from .habits import DEFAULT_LOOKBACK_DAYS, MonthlyDashboard, build_monthly_dashboard

if TYPE_CHECKING:  # pragma: no cover
    from ..domain.repositories.habit import HabitRepository

logger = get_logger("tracker")

TEMP_ID_PREFIX = "tmp-"


class MutationState(str, Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass
class Mutation:
    """Outcome of one tracker mutation."""

    kind: str
    habit_id: str
    state: MutationState = MutationState.PENDING
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state is MutationState.COMMITTED


class HabitTracker:
    """One user's habits and completions, kept in sync with a repository."""

    def __init__(
        self,
        repo: "HabitRepository",
        *,
        user_id: Optional[int],
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    ) -> None:
        self.repo = repo
        self.user_id = user_id
        self.lookback_days = lookback_days
        self.habits: list[Habit] = []
        self.completions: store_ops.CompletionStore = {}

    # Loading -----------------------------------------------------------------
    def load(self, start_year: int, end_year: Optional[int] = None) -> None:
        """Replace the local snapshot with the persisted one."""

        habits = self.repo.list_habits(user_id=self.user_id)
        completions = self.repo.list_completions(
            user_id=self.user_id, start_year=start_year, end_year=end_year
        )
        self.habits = habits
        self.completions = completions
        logger.info(
            "Tracker loaded",
            extra={"habits": len(habits), "completions": len(completions)},
        )

    @property
    def core_habits(self) -> list[Habit]:
        return [h for h in self.habits if h.is_core]

    def find(self, habit_id: str) -> Optional[Habit]:
        return next((h for h in self.habits if h.id == habit_id), None)

    def _require_habit(self, habit_id: str) -> Habit:
        habit = self.find(habit_id)
        if habit is None:
            raise ValueError(f"Unknown habit: {habit_id}")
        return habit

    def is_completed(self, habit_id: str, day: date) -> bool:
        return bool(self.completions.get(store_ops.completion_key(habit_id, store_ops.date_key(day))))

    # Mutation plumbing -------------------------------------------------------
    def _run(
        self,
        mutation: Mutation,
        persist: Callable[[], object],
        rollback: Callable[[], None],
    ) -> Mutation:
        try:
            persist()
        except SQLAlchemyError:
            rollback()
            mutation.state = MutationState.ROLLED_BACK
            mutation.error = f"Could not save {mutation.kind.replace('_', ' ')}. Please try again."
            logger.exception(
                "Mutation rolled back",
                extra={"kind": mutation.kind, "habit_id": mutation.habit_id},
            )
            return mutation
        except Exception:
            rollback()
            raise
        mutation.state = MutationState.COMMITTED
        return mutation

    # Mutations ---------------------------------------------------------------
    def toggle(self, habit_id: str, day: date, *, today: date) -> Mutation:
        """Flip completion of a habit on ``day`` (today or yesterday only)."""

        self._require_habit(habit_id)
        if not is_editable_day(day, today):
            raise ValueError("Only today or yesterday can be changed")

        previous = self.completions
        day_key = store_ops.date_key(day)
        completed = not self.is_completed(habit_id, day)
        self.completions = store_ops.toggle(previous, habit_id, day_key)

        def rollback() -> None:
            self.completions = previous

        return self._run(
            Mutation("toggle_completion", habit_id),
            lambda: self.repo.set_completion(
                habit_id, store_ops.to_storage_date(day_key), completed, user_id=self.user_id
            ),
            rollback,
        )

    def create(self, name: str, is_core: bool = False) -> Mutation:
        """Add a habit under a temporary id and reconcile it once persisted."""

        cleaned = name.strip()
        if not cleaned:
            raise ValueError("Habit name cannot be empty")
        temp = Habit(id=f"{TEMP_ID_PREFIX}{uuid4().hex}", user_id=self.user_id, name=cleaned, is_core=is_core)
        self.habits = [*self.habits, temp]
        mutation = Mutation("create_habit", temp.id)

        def persist() -> None:
            created = self.repo.create_habit(cleaned, is_core, user_id=self.user_id)
            self.habits = [created if h.id == temp.id else h for h in self.habits]
            self.completions = store_ops.rekey_habit(self.completions, temp.id, created.id)
            mutation.habit_id = created.id

        def rollback() -> None:
            self.habits = [h for h in self.habits if h.id != temp.id]
            self.completions = store_ops.purge_habit(self.completions, temp.id)

        return self._run(mutation, persist, rollback)

    def _update(self, habit_id: str, kind: str, **changes) -> Mutation:
        original = self._require_habit(habit_id)
        updated = Habit(
            id=original.id,
            user_id=original.user_id,
            name=changes.get("name", original.name),
            is_core=changes.get("is_core", original.is_core),
            created_at=original.created_at,
        )
        self.habits = [updated if h.id == habit_id else h for h in self.habits]

        def rollback() -> None:
            self.habits = [original if h.id == habit_id else h for h in self.habits]

        return self._run(
            Mutation(kind, habit_id),
            lambda: self.repo.update_habit(habit_id, user_id=self.user_id, **changes),
            rollback,
        )

    def rename(self, habit_id: str, name: str) -> Mutation:
        cleaned = name.strip()
        if not cleaned:
            raise ValueError("Habit name cannot be empty")
        return self._update(habit_id, "rename_habit", name=cleaned)

    def set_core(self, habit_id: str, is_core: bool) -> Mutation:
        return self._update(habit_id, "update_habit", is_core=is_core)

    def delete(self, habit_id: str) -> Mutation:
        """Remove a habit and, with it, every completion it owns.

        A habit already missing from storage counts as deleted.
        """

        self._require_habit(habit_id)
        previous_habits = self.habits
        previous_completions = self.completions
        self.habits = [h for h in self.habits if h.id != habit_id]
        self.completions = store_ops.purge_habit(self.completions, habit_id)

        def rollback() -> None:
            self.habits = previous_habits
            self.completions = previous_completions

        def persist() -> None:
            if not self.repo.delete_habit(habit_id, user_id=self.user_id):
                logger.warning("Habit was already deleted", extra={"habit_id": habit_id})

        return self._run(Mutation("delete_habit", habit_id), persist, rollback)

    # Metrics -----------------------------------------------------------------
    def dashboard(self, year: int, month: int, *, today: date) -> MonthlyDashboard:
        """Metrics for a zero-based ``month`` computed from the local snapshot."""

        return build_monthly_dashboard(
            year,
            month,
            today,
            list(self.habits),
            dict(self.completions),
            horizon=self.lookback_days,
        )


__all__ = ["HabitTracker", "Mutation", "MutationState", "TEMP_ID_PREFIX"]
