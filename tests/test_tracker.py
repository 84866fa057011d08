"""Tests for the tracker session: optimistic mutations, rollback, reconciliation."""

from __future__ import annotations

import logging
from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from corestreak.infra.repositories import SQLModelHabitRepository
from corestreak.services.auth import UnauthorizedError
from corestreak.services.tracker import TEMP_ID_PREFIX, HabitTracker, MutationState

TODAY = date(2024, 1, 15)
YESTERDAY = date(2024, 1, 14)


class FlakyRepository:
    """Wraps a real repository and fails the named write operations."""

    def __init__(self, inner, failing: set[str]):
        self.inner = inner
        self.failing = failing
        self.calls: list[str] = []

    def __getattr__(self, name):
        target = getattr(self.inner, name)

        def call(*args, **kwargs):
            self.calls.append(name)
            if name in self.failing:
                raise OperationalError("INSERT", {}, Exception("database is locked"))
            return target(*args, **kwargs)

        return call


@pytest.fixture
def repo(session_factory):
    return SQLModelHabitRepository(session_factory)


@pytest.fixture
def tracker(repo, user):
    tracker = HabitTracker(repo, user_id=user.id)
    tracker.load(2024)
    return tracker


def _reload(repo, user) -> HabitTracker:
    fresh = HabitTracker(repo, user_id=user.id)
    fresh.load(2024)
    return fresh


class TestLoad:
    def test_load_reads_habits_and_completions(self, repo, user):
        habit = repo.create_habit("Exercise", True, user_id=user.id)
        repo.set_completion(habit.id, TODAY, True, user_id=user.id)

        tracker = _reload(repo, user)

        assert [h.id for h in tracker.habits] == [habit.id]
        assert tracker.core_habits == tracker.habits
        assert tracker.is_completed(habit.id, TODAY)

    def test_load_without_user_is_unauthorized(self, repo):
        with pytest.raises(UnauthorizedError):
            HabitTracker(repo, user_id=None).load(2024)


class TestToggle:
    def test_toggle_today_persists(self, tracker, repo, user):
        tracker.create("Exercise", is_core=True)
        habit_id = tracker.habits[0].id

        mutation = tracker.toggle(habit_id, TODAY, today=TODAY)

        assert mutation.state is MutationState.COMMITTED
        assert mutation.ok
        assert tracker.is_completed(habit_id, TODAY)
        assert _reload(repo, user).is_completed(habit_id, TODAY)

    def test_toggle_stores_one_based_date(self, tracker, repo, user):
        habit_id = tracker.create("Exercise").habit_id

        tracker.toggle(habit_id, date(2024, 1, 1), today=date(2024, 1, 1))

        assert repo.list_completions(user_id=user.id, start_year=2024) == {f"{habit_id}-2024-0-1": True}

    def test_toggle_twice_restores_store(self, tracker):
        tracker.create("Exercise")
        habit_id = tracker.habits[0].id
        before = dict(tracker.completions)

        tracker.toggle(habit_id, YESTERDAY, today=TODAY)
        tracker.toggle(habit_id, YESTERDAY, today=TODAY)

        assert tracker.completions == before

    @pytest.mark.parametrize("day", [date(2024, 1, 13), date(2024, 1, 16), date(2023, 1, 15)])
    def test_only_today_and_yesterday_are_editable(self, tracker, day):
        tracker.create("Exercise")
        with pytest.raises(ValueError):
            tracker.toggle(tracker.habits[0].id, day, today=TODAY)
        assert tracker.completions == {}

    def test_unknown_habit(self, tracker):
        with pytest.raises(ValueError):
            tracker.toggle("nope", TODAY, today=TODAY)

    def test_failed_toggle_rolls_back(self, repo, user):
        habit = repo.create_habit("Exercise", user_id=user.id)
        tracker = HabitTracker(FlakyRepository(repo, {"set_completion"}), user_id=user.id)
        tracker.load(2024)

        mutation = tracker.toggle(habit.id, TODAY, today=TODAY)

        assert mutation.state is MutationState.ROLLED_BACK
        assert "try again" in mutation.error
        assert tracker.completions == {}
        assert _reload(repo, user).completions == {}


class TestCreate:
    def test_create_reconciles_temporary_id(self, tracker, repo, user):
        mutation = tracker.create("  Read  ", is_core=True)

        assert mutation.ok
        assert not mutation.habit_id.startswith(TEMP_ID_PREFIX)
        assert [h.id for h in tracker.habits] == [mutation.habit_id]
        assert tracker.habits[0].name == "Read"
        assert [h.id for h in repo.list_habits(user_id=user.id)] == [mutation.habit_id]

    def test_failed_create_removes_placeholder(self, repo, user):
        tracker = HabitTracker(FlakyRepository(repo, {"create_habit"}), user_id=user.id)
        tracker.load(2024)

        mutation = tracker.create("Read")

        assert mutation.state is MutationState.ROLLED_BACK
        assert mutation.habit_id.startswith(TEMP_ID_PREFIX)
        assert tracker.habits == []

    def test_blank_name_rejected(self, tracker):
        with pytest.raises(ValueError):
            tracker.create("   ")
        assert tracker.habits == []

    def test_unauthorized_create_rolls_back_and_propagates(self, repo):
        tracker = HabitTracker(repo, user_id=None)
        with pytest.raises(UnauthorizedError):
            tracker.create("Read")
        assert tracker.habits == []


class TestUpdate:
    def test_rename_and_set_core(self, tracker, repo, user):
        habit_id = tracker.create("Exercize").habit_id

        assert tracker.rename(habit_id, "Exercise").ok
        assert tracker.set_core(habit_id, True).ok

        assert tracker.find(habit_id).name == "Exercise"
        assert tracker.find(habit_id).is_core is True
        stored = repo.get_by_id(habit_id, user_id=user.id)
        assert (stored.name, stored.is_core) == ("Exercise", True)

    def test_failed_update_restores_original(self, repo, user):
        habit = repo.create_habit("Exercise", user_id=user.id)
        tracker = HabitTracker(FlakyRepository(repo, {"update_habit"}), user_id=user.id)
        tracker.load(2024)

        mutation = tracker.set_core(habit.id, True)

        assert mutation.state is MutationState.ROLLED_BACK
        assert tracker.find(habit.id).is_core is False
        assert tracker.core_habits == []


class TestDelete:
    def test_delete_purges_local_completions(self, tracker, repo, user):
        keep_id = tracker.create("Read").habit_id
        drop_id = tracker.create("Exercise").habit_id
        tracker.toggle(drop_id, TODAY, today=TODAY)
        tracker.toggle(keep_id, TODAY, today=TODAY)

        assert tracker.delete(drop_id).ok

        assert [h.id for h in tracker.habits] == [keep_id]
        assert tracker.completions == {f"{keep_id}-2024-0-15": True}
        assert _reload(repo, user).completions == tracker.completions

    def test_failed_delete_restores_habit_and_completions(self, repo, user):
        habit = repo.create_habit("Exercise", user_id=user.id)
        repo.set_completion(habit.id, TODAY, True, user_id=user.id)
        tracker = HabitTracker(FlakyRepository(repo, {"delete_habit"}), user_id=user.id)
        tracker.load(2024)

        mutation = tracker.delete(habit.id)

        assert mutation.state is MutationState.ROLLED_BACK
        assert [h.id for h in tracker.habits] == [habit.id]
        assert tracker.is_completed(habit.id, TODAY)

    def test_delete_of_habit_already_gone_counts_as_deleted(self, repo, user, caplog):
        habit = repo.create_habit("Exercise", user_id=user.id)
        tracker = HabitTracker(repo, user_id=user.id)
        tracker.load(2024)
        repo.delete_habit(habit.id, user_id=user.id)

        with caplog.at_level(logging.WARNING, logger="corestreak.tracker"):
            mutation = tracker.delete(habit.id)

        assert mutation.state is MutationState.COMMITTED
        assert tracker.habits == []
        assert "Habit was already deleted" in caplog.text


def test_dashboard_uses_local_snapshot(tracker):
    first = tracker.create("Exercise", is_core=True).habit_id
    second = tracker.create("Read", is_core=True).habit_id
    tracker.toggle(first, YESTERDAY, today=TODAY)
    tracker.toggle(second, YESTERDAY, today=TODAY)
    tracker.toggle(first, TODAY, today=TODAY)

    summary = tracker.dashboard(2024, 0, today=TODAY)

    assert summary.current_streak == 0
    assert summary.last_perfect_day == YESTERDAY
    # 3 of 30 core slots (15 elapsed days x 2 habits)
    assert summary.discipline_score == 10
    assert summary.daily_scores[13:15] == [100, 50]


def test_lookback_days_bound_the_streak(repo, user):
    habit = repo.create_habit("Exercise", True, user_id=user.id)
    for day in range(1, 16):
        repo.set_completion(habit.id, date(2024, 1, day), True, user_id=user.id)
    tracker = HabitTracker(repo, user_id=user.id, lookback_days=7)
    tracker.load(2024)

    assert tracker.dashboard(2024, 0, today=TODAY).current_streak == 7
