"""Command line entry points for HabitEcho."""

from __future__ import annotations

import json
import time
from dataclasses import asdict
from enum import Enum

import click

from .config import BaseConfig
from .context import create_app_context
from .infra.database import bootstrap_database
from .logging_config import setup_logging
from .scheduler import create_scheduler
from .services.performance import habit_performance, performance_summary


def _json_default(value):
    if isinstance(value, Enum):
        return value.value
    return str(value)


def _echo_json(payload) -> None:
    click.echo(json.dumps(payload, indent=2, default=_json_default))


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """HabitEcho analytics and reminder tooling."""

    ctx.obj = BaseConfig()
    setup_logging(ctx.obj)


@cli.command("init-db")
@click.pass_obj
def init_db(config: BaseConfig) -> None:
    """Create database tables."""

    bootstrap_database(config)
    click.echo(f"Database ready: {config.DATABASE_URL}")


@cli.command("run-reminders")
@click.option("--once", is_flag=True, default=False, help="Run a single tick and exit")
@click.pass_obj
def run_reminders(config: BaseConfig, once: bool) -> None:
    """Dispatch habit reminders on a fixed interval."""

    app = create_app_context(config)
    dispatcher = app.build_dispatcher()

    if once:
        report = dispatcher.tick()
        dispatcher.close()
        _echo_json(report.as_dict())
        return

    scheduler = create_scheduler(dispatcher, config, auto_start=True)
    click.echo(f"Dispatching reminders every {config.REMINDER_INTERVAL_SECONDS}s (Ctrl+C to stop)")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        click.echo("Stopping...")
    finally:
        scheduler.stop()


@cli.command("summary")
@click.argument("user_id", type=int)
@click.option("--as-of", default=None, help="Day (YYYY-MM-DD) to report as of")
@click.pass_obj
def summary(config: BaseConfig, user_id: int, as_of: str | None) -> None:
    """Print a user's performance summary as JSON."""

    app = create_app_context(config)
    user = app.user_repo.get_by_id(user_id)
    if user is None:
        raise click.ClickException(f"User {user_id} not found")
    _echo_json(asdict(performance_summary(app.habit_repo, user, as_of, clock=app.clock)))


@cli.command("habit-report")
@click.argument("habit_id", type=int)
@click.option("--as-of", default=None, help="Day (YYYY-MM-DD) to report as of")
@click.option("--heatmap/--no-heatmap", default=False, help="Include the 365-day heatmap")
@click.pass_obj
def habit_report(config: BaseConfig, habit_id: int, as_of: str | None, heatmap: bool) -> None:
    """Print one habit's performance report as JSON."""

    app = create_app_context(config)
    habit = app.habit_repo.get_by_id(habit_id)
    if habit is None:
        raise click.ClickException(f"Habit {habit_id} not found")
    report = asdict(
        habit_performance(
            app.habit_repo, habit, as_of, clock=app.clock, threshold=config.STREAK_THRESHOLD
        )
    )
    if not heatmap:
        report.pop("heatmap")
    _echo_json(report)


def main() -> None:
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
