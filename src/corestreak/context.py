"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from sqlmodel import Session

from .config import BaseConfig
from .infra.database import bootstrap_database
from .infra.repositories import SQLModelHabitRepository
from .models.user import User
from .services.auth import require_user_id
from .services.tracker import HabitTracker


@dataclass
class AppContext:
    """Configuration, storage and the signed-in user for one process."""

    config: BaseConfig
    session_factory: Callable[[], Session]
    habit_repo: SQLModelHabitRepository
    current_user: Optional[User] = None

    def require_user_id(self) -> int:
        """Return the current user id or raise if not set."""

        return require_user_id(self.current_user)

    def open_tracker(self, today: date, *, include_year: Optional[int] = None) -> HabitTracker:
        """Build a tracker for the signed-in user and load recent history.

        ``include_year`` widens the loaded range so that year is covered too.
        """

        tracker = HabitTracker(
            self.habit_repo,
            user_id=self.require_user_id(),
            lookback_days=self.config.LOOKBACK_DAYS,
        )
        start_year = self.config.history_start_year(today.year)
        end_year = today.year
        if include_year is not None:
            start_year = min(start_year, include_year)
            end_year = max(end_year, include_year)
        tracker.load(start_year, end_year)
        return tracker


def create_app_context(config: Optional[BaseConfig] = None) -> AppContext:
    """Create and initialize the application context."""

    if config is None:
        config = BaseConfig()

    _engine, session_factory = bootstrap_database(config)

    return AppContext(
        config=config,
        session_factory=session_factory,
        habit_repo=SQLModelHabitRepository(session_factory),
    )
