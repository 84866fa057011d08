"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    """Read a positive integer from the environment."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc
    if parsed <= 0:
        raise ValueError(f"{name} must be positive, got {parsed}")
    return parsed


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "CoreStreak"
    DB_FILENAME = "corestreak.db"
    DEFAULT_LOOKBACK_DAYS = 365
    SQLITE_PRAGMAS = {"foreign_keys": "on"}

    def __init__(self) -> None:
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("CORESTREAK_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("CORESTREAK_DATABASE_URL", self._build_sqlite_url())
        # Bounds both backward walks (current streak and last perfect day).
        self.LOOKBACK_DAYS = _env_int("CORESTREAK_LOOKBACK_DAYS", self.DEFAULT_LOOKBACK_DAYS)
        self.HISTORY_YEARS = _env_int("CORESTREAK_HISTORY_YEARS", 2)

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("CORESTREAK_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        """Construct the default SQLite URL inside the data directory."""

        db_path = self.DATA_DIR / self.DB_FILENAME
        return f"sqlite:///{db_path}"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        if not self.DATABASE_URL.startswith("sqlite"):
            return {}
        return {"connect_args": {"check_same_thread": False}}

    def history_start_year(self, current_year: int) -> int:
        """First calendar year whose completions are loaded into a session."""

        return current_year - self.HISTORY_YEARS + 1


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True
    TESTING = False


class TestConfig(BaseConfig):
    """Configuration for tests: in-memory SQLite unless overridden."""

    DEBUG = False
    TESTING = True

    def __init__(self) -> None:
        super().__init__()
        self.DATABASE_URL = os.getenv("CORESTREAK_DATABASE_URL", "sqlite://")

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        options = super().sqlalchemy_engine_options()
        if self.DATABASE_URL == "sqlite://":
            from sqlalchemy.pool import StaticPool

            options["poolclass"] = StaticPool
        return options
