"""Command line entry points for SoberDay."""

from __future__ import annotations

import json
import threading
from datetime import date
from typing import Optional

import click

from .config import BaseConfig
from .context import AppContext, create_app_context
from .errors import DataFetchError
from .logging_config import setup_logging
from .services.milestones import format_day_count, next_milestone, reached_milestones
from .services.streaks import StreakState, most_recent_reset_event
from .services.timezones import is_valid_timezone


def _parse_date(ctx, param, value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise click.BadParameter("expected YYYY-MM-DD") from exc


def _summary(state: StreakState) -> str:
    if state.error is not None:
        return f"Error: {state.error}"
    if state.journey_start_date is None:
        return "No sobriety date set"
    line = (
        f"{format_day_count(state.current_streak_days)} sober "
        f"(journey: {format_day_count(state.journey_days)} since {state.journey_start_date}) "
        f"[{state.timezone}]"
    )
    upcoming = next_milestone(state)
    if upcoming is not None:
        milestone, remaining = upcoming
        line += f"; {milestone.label} in {format_day_count(remaining)}"
    return line


def _user_id(app: AppContext, user: Optional[str]) -> str:
    if user:
        return user
    try:
        return app.require_user_id()
    except RuntimeError as exc:
        raise click.UsageError(str(exc)) from exc


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Track sobriety days that roll over at local midnight."""

    config = BaseConfig()
    setup_logging(config)
    ctx.obj = create_app_context(config)


@cli.command("init-db")
@click.pass_obj
def init_db(app: AppContext) -> None:
    """Create the profile and reset event tables."""

    click.echo(f"Database ready: {app.config.DATABASE_URL}")


@cli.command("set-profile")
@click.option("--user", "user", help="User id (defaults to SOBERDAY_USER_ID)")
@click.option("--start-date", callback=_parse_date, help="Sobriety date, YYYY-MM-DD")
@click.option("--timezone", "tz", help="IANA timezone, e.g. America/New_York")
@click.option("--name", help="Display name")
@click.pass_obj
def set_profile(
    app: AppContext,
    user: Optional[str],
    start_date: Optional[date],
    tz: Optional[str],
    name: Optional[str],
) -> None:
    """Create or update a sobriety profile."""

    if tz is not None and not is_valid_timezone(tz):
        raise click.BadParameter(f"unknown timezone {tz!r}", param_hint="--timezone")
    profile = app.profile_repo.upsert(
        _user_id(app, user), sobriety_date=start_date, timezone=tz, display_name=name
    )
    click.echo(f"Profile {profile.id}: start {profile.sobriety_date}, timezone {profile.timezone or 'device default'}")


@cli.command("log-reset")
@click.option("--user", "user", help="User id (defaults to SOBERDAY_USER_ID)")
@click.option("--occurred-on", required=True, callback=_parse_date, help="Relapse date, YYYY-MM-DD")
@click.option("--restart-on", callback=_parse_date, help="Recovery restart date (defaults to --occurred-on)")
@click.option("--notes", help="Optional note")
@click.pass_obj
def log_reset(
    app: AppContext,
    user: Optional[str],
    occurred_on: date,
    restart_on: Optional[date],
    notes: Optional[str],
) -> None:
    """Record a relapse and the date recovery restarted."""

    try:
        event = app.reset_event_repo.create(
            _user_id(app, user),
            occurred_on=occurred_on,
            restart_on=restart_on or occurred_on,
            notes=notes,
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--restart-on") from exc
    click.echo(f"Reset logged: {event.occurred_on}, streak restarts {event.restart_on}")


@cli.command()
@click.option("--user", "user", help="User id (defaults to SOBERDAY_USER_ID)")
@click.pass_obj
def history(app: AppContext, user: Optional[str]) -> None:
    """List logged resets, most recent first."""

    try:
        events = app.reset_event_repo.list_for_user(_user_id(app, user))
    except DataFetchError as exc:
        raise click.ClickException(str(exc)) from exc
    if not events:
        click.echo("No resets logged")
        return
    current = most_recent_reset_event(events)
    for event in events:
        marker = "*" if event is current else " "
        line = f"{marker} {event.occurred_on}  restart {event.restart_on}"
        if event.notes:
            line += f"  {event.notes}"
        click.echo(line)


@cli.command()
@click.option("--user", "user", help="User id (defaults to SOBERDAY_USER_ID)")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the full result as JSON")
@click.pass_obj
def status(app: AppContext, user: Optional[str], as_json: bool) -> None:
    """Print the current streak and journey counts."""

    controller = app.create_controller(target_user_id=user)
    try:
        state = controller.activate(schedule=False)
    finally:
        controller.dispose()

    if as_json:
        payload = state.to_dict()
        payload["milestones"] = [
            {"label": r.milestone.label, "reached_on": r.reached_on.isoformat()}
            for r in reached_milestones(state)
        ]
        click.echo(json.dumps(payload, indent=2))
    else:
        click.echo(_summary(state))
    if state.error is not None:
        click.get_current_context().exit(1)


@cli.command()
@click.option("--user", "user", help="User id (defaults to SOBERDAY_USER_ID)")
@click.pass_obj
def watch(app: AppContext, user: Optional[str]) -> None:
    """Keep running and print the counts again at every local midnight."""

    def on_change(state: StreakState) -> None:
        if not state.loading:
            click.echo(_summary(state))

    controller = app.create_controller(target_user_id=user, on_change=on_change)
    stop = threading.Event()
    try:
        controller.activate()
        next_fire = controller.scheduler.next_fire_at
        if next_fire is not None:
            click.echo(f"Next refresh at {next_fire.isoformat()}", err=True)
        stop.wait()
    except KeyboardInterrupt:
        pass
    finally:
        controller.dispose()


def main() -> None:
    cli(prog_name="soberday")


if __name__ == "__main__":  # pragma: no cover
    main()
