"""SQLModel implementation of Habit repository."""

from __future__ import annotations

from datetime import date
from typing import Callable, Optional

from sqlmodel import Session, select

from ...logging_config import get_logger
from ...models.habit import Habit, HabitCompletion
from ...services.auth import UnauthorizedError
from ...services.completions import CompletionStore, build_store

logger = get_logger("repositories.habit")


def _require_user(user_id: Optional[int]) -> int:
    if user_id is None:
        raise UnauthorizedError("User is not authenticated")
    return user_id


def _clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValueError("Habit name cannot be empty")
    return cleaned


class SQLModelHabitRepository:
    """SQLModel-based habit repository implementation."""

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def _get_owned(self, session: Session, habit_id: str, user_id: int) -> Optional[Habit]:
        return session.exec(
            select(Habit).where(Habit.id == habit_id, Habit.user_id == user_id)
        ).first()

    def get_by_id(self, habit_id: str, *, user_id: Optional[int]) -> Optional[Habit]:
        """Retrieve a habit by ID."""
        uid = _require_user(user_id)
        with self.session_factory() as session:
            obj = self._get_owned(session, habit_id, uid)
            if obj:
                session.expunge(obj)
            return obj

    def list_habits(self, *, user_id: Optional[int]) -> list[Habit]:
        """List the user's habits in creation order."""
        uid = _require_user(user_id)
        with self.session_factory() as session:
            statement = (
                select(Habit)
                .where(Habit.user_id == uid)
                .order_by(Habit.created_at, Habit.id)  # type: ignore[arg-type]
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_completions(
        self, *, user_id: Optional[int], start_year: int, end_year: Optional[int] = None
    ) -> CompletionStore:
        """Load completions for an inclusive range of years as a completion store."""
        uid = _require_user(user_id)
        last_year = end_year if end_year is not None else start_year
        with self.session_factory() as session:
            statement = (
                select(HabitCompletion.habit_id, HabitCompletion.completed_on)
                .where(HabitCompletion.user_id == uid)
                .where(HabitCompletion.completed_on >= date(start_year, 1, 1))
                .where(HabitCompletion.completed_on <= date(last_year, 12, 31))
            )
            rows = list(session.exec(statement).all())
        return build_store(rows)

    def create_habit(self, name: str, is_core: bool = False, *, user_id: Optional[int]) -> Habit:
        """Create a new habit."""
        uid = _require_user(user_id)
        habit = Habit(user_id=uid, name=_clean_name(name), is_core=is_core)
        with self.session_factory() as session:
            session.add(habit)
            session.commit()
            session.refresh(habit)
            session.expunge(habit)
        logger.info("Habit created", extra={"habit_id": habit.id, "user_id": uid})
        return habit

    def update_habit(
        self,
        habit_id: str,
        *,
        user_id: Optional[int],
        name: Optional[str] = None,
        is_core: Optional[bool] = None,
    ) -> Habit:
        """Rename a habit and/or change its core flag."""
        uid = _require_user(user_id)
        with self.session_factory() as session:
            habit = self._get_owned(session, habit_id, uid)
            if habit is None:
                raise ValueError("Habit not found")
            if name is not None:
                habit.name = _clean_name(name)
            if is_core is not None:
                habit.is_core = is_core
            session.add(habit)
            session.commit()
            session.refresh(habit)
            session.expunge(habit)
            return habit

    def delete_habit(self, habit_id: str, *, user_id: Optional[int]) -> bool:
        """Delete a habit after removing all of its completions."""
        uid = _require_user(user_id)
        with self.session_factory() as session:
            habit = self._get_owned(session, habit_id, uid)
            if habit is None:
                return False
            completions = session.exec(
                select(HabitCompletion)
                .where(HabitCompletion.user_id == uid)
                .where(HabitCompletion.habit_id == habit_id)
            ).all()
            for completion in completions:
                session.delete(completion)
            session.flush()
            session.delete(habit)
            session.commit()
        logger.info("Habit deleted", extra={"habit_id": habit_id, "user_id": uid})
        return True

    def set_completion(
        self, habit_id: str, on: date, completed: bool, *, user_id: Optional[int]
    ) -> None:
        """Insert or remove the completion row for ``habit_id`` on ``on``."""
        uid = _require_user(user_id)
        with self.session_factory() as session:
            if self._get_owned(session, habit_id, uid) is None:
                raise ValueError("Habit not found")
            existing = session.exec(
                select(HabitCompletion)
                .where(HabitCompletion.user_id == uid)
                .where(HabitCompletion.habit_id == habit_id)
                .where(HabitCompletion.completed_on == on)
            ).first()

            if completed and existing is None:
                session.add(HabitCompletion(user_id=uid, habit_id=habit_id, completed_on=on))
            elif not completed and existing is not None:
                session.delete(existing)
            else:
                return
            session.commit()
