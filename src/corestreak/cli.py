"""Command line interface for CoreStreak."""

from __future__ import annotations

from datetime import date
from typing import Optional

import click

from .config import BaseConfig
from .context import AppContext, create_app_context
from .logging_config import get_logger, setup_logging
from .services import auth
from .services.dates import MONTH_NAMES, format_short, weekday_letter, weekday_of
from .services.habits import DayClass
from .services.tracker import HabitTracker, Mutation

logger = get_logger("cli")

DEMO_USERNAME = "demo"
DEMO_HABITS = (
    ("Exercise", True),
    ("Read 30 mins", True),
    ("Meditate", False),
    ("No junk food", True),
    ("Journal", False),
)

_DAY_MARKS = {DayClass.PERFECT: "*", DayClass.AVERAGE: "~", DayClass.BAD: "."}


def _app(ctx: click.Context) -> AppContext:
    return ctx.obj["context"]


def _today(ctx: click.Context) -> date:
    return ctx.obj.get("today") or date.today()


def _signed_in(ctx: click.Context) -> AppContext:
    """Return the app context with ``current_user`` set, logging in if needed."""

    app = _app(ctx)
    if app.current_user is None:
        username = ctx.obj.get("username")
        password = ctx.obj.get("password")
        if username and password is not None:
            app.current_user = auth.authenticate(
                username=username, password=password, session_factory=app.session_factory
            )
        if app.current_user is None:
            raise click.ClickException(
                "Unauthorized: provide valid --username/--password "
                "(or CORESTREAK_USERNAME/CORESTREAK_PASSWORD)."
            )
    return app


def _tracker(ctx: click.Context, include_year: Optional[int] = None) -> HabitTracker:
    app = _signed_in(ctx)
    try:
        return app.open_tracker(_today(ctx), include_year=include_year)
    except auth.UnauthorizedError as exc:
        raise click.ClickException(str(exc)) from exc


def _report(mutation: Mutation, success: str) -> None:
    if not mutation.ok:
        raise click.ClickException(mutation.error or "Change was not saved.")
    click.echo(success)


@click.group()
@click.option("--username", envvar="CORESTREAK_USERNAME", help="Account to act as.")
@click.option("--password", envvar="CORESTREAK_PASSWORD", help="Password for --username.")
@click.option(
    "--today",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Override the current date (YYYY-MM-DD).",
)
@click.pass_context
def main(ctx: click.Context, username: Optional[str], password: Optional[str], today) -> None:
    """Track daily habits and review streaks and discipline scores."""

    ctx.ensure_object(dict)
    if "context" not in ctx.obj:
        config = BaseConfig()
        setup_logging(config)
        ctx.obj["context"] = create_app_context(config)
    ctx.obj["username"] = username
    ctx.obj["password"] = password
    ctx.obj["today"] = today.date() if today else None


@main.command("init-db")
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Create the database schema."""

    click.echo(f"Database ready: {_app(ctx).config.DATABASE_URL}")


@main.command()
@click.argument("username")
@click.password_option()
@click.pass_context
def register(ctx: click.Context, username: str, password: str) -> None:
    """Create a new account."""

    try:
        user = auth.create_user(
            username=username, password=password, session_factory=_app(ctx).session_factory
        )
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Created user {user.username}")


@main.command()
@click.option("--demo", is_flag=True, default=False, help="Create the demo account and habits.")
@click.pass_context
def seed(ctx: click.Context, demo: bool) -> None:
    """Seed application data (demo)."""

    if not demo:
        click.echo("No action specified. Use --demo to seed demo data.")
        return
    app = _app(ctx)
    user = auth.get_user_by_username(DEMO_USERNAME, app.session_factory)
    if user is None:
        user = auth.create_user(
            username=DEMO_USERNAME, password=DEMO_USERNAME, session_factory=app.session_factory
        )
    existing = {h.name for h in app.habit_repo.list_habits(user_id=user.id)}
    created = 0
    for name, is_core in DEMO_HABITS:
        if name not in existing:
            app.habit_repo.create_habit(name, is_core, user_id=user.id)
            created += 1
    logger.info("Demo seed finished", extra={"habits_added": created})
    click.echo(f"Demo seed completed ({created} habits added). Sign in as {DEMO_USERNAME}/{DEMO_USERNAME}.")


@main.group()
def habits() -> None:
    """Manage habits."""


@habits.command("list")
@click.pass_context
def list_habits(ctx: click.Context) -> None:
    """Show habits with today's completion state."""

    tracker = _tracker(ctx)
    today = _today(ctx)
    if not tracker.habits:
        click.echo("No habits yet. Add one with 'corestreak habits add NAME'.")
        return
    for habit in tracker.habits:
        done = "x" if tracker.is_completed(habit.id, today) else " "
        core = " (core)" if habit.is_core else ""
        click.echo(f"[{done}] {habit.id}  {habit.name}{core}")


@habits.command("add")
@click.argument("name")
@click.option("--core", is_flag=True, default=False, help="Count towards streaks and scores.")
@click.pass_context
def add_habit(ctx: click.Context, name: str, core: bool) -> None:
    """Create a habit."""

    tracker = _tracker(ctx)
    try:
        mutation = tracker.create(name, core)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    _report(mutation, f"Added {name.strip()} ({mutation.habit_id})")


@habits.command("rename")
@click.argument("habit_id")
@click.argument("name")
@click.pass_context
def rename_habit(ctx: click.Context, habit_id: str, name: str) -> None:
    """Rename a habit."""

    tracker = _tracker(ctx)
    try:
        mutation = tracker.rename(habit_id, name)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    _report(mutation, f"Renamed {habit_id} to {name.strip()}")


@habits.command("core")
@click.argument("habit_id")
@click.option("--on/--off", "is_core", default=True, help="Mark or unmark as core.")
@click.pass_context
def core_habit(ctx: click.Context, habit_id: str, is_core: bool) -> None:
    """Mark a habit as core (or not)."""

    tracker = _tracker(ctx)
    try:
        mutation = tracker.set_core(habit_id, is_core)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    _report(mutation, f"{habit_id} is {'now' if is_core else 'no longer'} a core habit")


@habits.command("delete")
@click.argument("habit_id")
@click.confirmation_option(prompt="Delete this habit and all of its completions?")
@click.pass_context
def delete_habit(ctx: click.Context, habit_id: str) -> None:
    """Delete a habit and its completions."""

    tracker = _tracker(ctx)
    try:
        mutation = tracker.delete(habit_id)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    _report(mutation, f"Deleted {habit_id}")


@main.command()
@click.argument("habit_id")
@click.option(
    "--date",
    "day",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Day to toggle (today or yesterday). Defaults to today.",
)
@click.pass_context
def toggle(ctx: click.Context, habit_id: str, day) -> None:
    """Mark a habit done, or undo it, for today or yesterday."""

    tracker = _tracker(ctx)
    today = _today(ctx)
    target = day.date() if day else today
    try:
        mutation = tracker.toggle(habit_id, target, today=today)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    state = "done" if tracker.is_completed(habit_id, target) else "not done"
    _report(mutation, f"{format_short(target)}: {habit_id} marked {state}")


@main.command()
@click.option("--year", type=int, default=None, help="Year to show. Defaults to this year.")
@click.option("--month", type=click.IntRange(1, 12), default=None, help="Month 1-12.")
@click.pass_context
def dashboard(ctx: click.Context, year: Optional[int], month: Optional[int]) -> None:
    """Show streak, discipline score and per-day metrics for a month."""

    today = _today(ctx)
    year = year or today.year
    tracker = _tracker(ctx, include_year=year)
    month_index = (month or today.month) - 1
    summary = tracker.dashboard(year, month_index, today=today)

    last_perfect = format_short(summary.last_perfect_day) if summary.last_perfect_day else "N/A"
    click.echo(f"{MONTH_NAMES[month_index]} {year}")
    click.echo(f"Current streak:   {summary.current_streak}")
    click.echo(f"Last perfect day: {last_perfect}")
    click.echo(f"Discipline score: {summary.discipline_score}%")
    stats = summary.day_stats
    click.echo(f"Days: {stats.perfect} perfect, {stats.average} average, {stats.bad} bad")

    click.echo("")
    header = " ".join(weekday_letter(weekday_of(year, month_index, d)) for d in range(1, summary.days_in_month + 1))
    click.echo(f"{'':<20} {header}")
    for habit in tracker.habits:
        cells = " ".join(
            "x" if tracker.is_completed(habit.id, date(year, month_index + 1, d)) else "."
            for d in range(1, summary.days_in_month + 1)
        )
        progress = summary.habit_progress.get(habit.id, 0)
        click.echo(f"{habit.name[:20]:<20} {cells}  {progress:>3}%")
    days = " ".join(
        _DAY_MARKS[verdict] if d <= summary.elapsed_days else " "
        for d, verdict in enumerate(summary.classifications, start=1)
    )
    click.echo(f"{'Day':<20} {days}")


if __name__ == "__main__":  # pragma: no cover
    main()
