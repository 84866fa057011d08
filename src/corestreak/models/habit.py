"""Habit tracking tables."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import ClassVar
from uuid import uuid4

from sqlmodel import Field, SQLModel


def _new_habit_id() -> str:
    return str(uuid4())


class Habit(SQLModel, table=True):
    """A user-defined daily habit; core habits drive streaks and scores."""

    __tablename__: ClassVar[str] = "habit"

    id: str = Field(default_factory=_new_habit_id, primary_key=True, max_length=64)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    name: str = Field(nullable=False, max_length=80)
    is_core: bool = Field(default=False, nullable=False)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )


class HabitCompletion(SQLModel, table=True):
    """A habit marked done on a calendar day. Absence means not done."""

    __tablename__: ClassVar[str] = "habit_completion"

    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    habit_id: str = Field(foreign_key="habit.id", primary_key=True)
    completed_on: date = Field(primary_key=True, index=True)
