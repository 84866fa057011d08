"""Service module exports."""

from . import auth, completions, dates, habits, tracker

__all__ = [
    "auth",
    "completions",
    "dates",
    "habits",
    "tracker",
]
