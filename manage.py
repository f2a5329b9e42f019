#!/usr/bin/env python3
"""
Loser Pool Management CLI

Command-line management for the current week, matchup syncing, global
settings and the database.
"""

import os

import click
from flask.cli import with_appcontext
from flask_migrate import upgrade

# The CLI runs jobs in the foreground
os.environ.setdefault("SCHEDULER_ENABLED", "False")

from app import create_app, db  # noqa: E402
from app.exceptions import ConfigurationError, PersistenceError  # noqa: E402
from app.models import Matchup  # noqa: E402
from app.providers import available_providers, get_schedule_provider  # noqa: E402
from app.services import week_service  # noqa: E402
from app.services.matchup_sync import MatchupSynchronizer  # noqa: E402
from app.services.persistence import (  # noqa: E402
    POOL_LOCK_DATE,
    POOL_LOCKED,
    MatchupStore,
    SettingsStore,
    validate_setting,
)
from app.utils.week_calculator import SEASON_TYPES, parse_season_tag  # noqa: E402

app = create_app()


@click.group()
def cli():
    """Loser Pool Management CLI"""
    pass


def _echo_batch(batch):
    for result in batch.results:
        icon = "✅" if result.success else "❌"
        click.echo(f"  {icon} {result.message}")
        for error in result.errors:
            click.echo(f"     ⚠️  {error}")
    click.echo(("✅ " if batch.success else "❌ ") + batch.message)


def _synchronizer(provider):
    try:
        return MatchupSynchronizer(get_schedule_provider(provider))
    except ConfigurationError as e:
        raise click.ClickException(str(e))


def _save_settings(values):
    try:
        cleaned = {key: validate_setting(key, value) for key, value in values.items()}
        return SettingsStore().set_settings(cleaned)
    except ValueError as e:
        raise click.BadParameter(str(e))
    except PersistenceError as e:
        raise click.ClickException(f"Database error: {e}")


# Week Commands
@cli.group()
def week():
    """Current week commands"""
    pass


@week.command()
@click.option("--date", "date_value", help="Calculate for this date (YYYY-MM-DD)")
@with_appcontext
def calculate(date_value):
    """Show the calculated week without storing it"""
    info = week_service.calculate_current_week(now=date_value)
    click.echo(f"📅 Week {info.week}: {info.label} ({info.season_tag})")
    if info.round_name:
        click.echo(f"   Round: {info.round_name}")
    click.echo(f"   {info.reason}")
    if info.is_fallback:
        click.echo("⚠️  Fell back to week 1")


@week.command()
@with_appcontext
def update():
    """Recalculate and store the current week"""
    success, outcome = week_service.update_global_current_week()
    if not success:
        raise click.ClickException(f"Failed to update current week: {outcome}")
    click.echo(f"✅ Current week: {outcome.week} ({outcome.label})")


# Sync Commands
@cli.group()
def sync():
    """Matchup synchronization commands"""
    pass


provider_option = click.option(
    "--provider",
    type=click.Choice(available_providers()),
    help="Schedule provider (default: SCHEDULE_PROVIDER)",
)


@sync.command("week")
@click.argument("week_number", type=int)
@click.option(
    "--season-type",
    type=click.Choice(SEASON_TYPES, case_sensitive=False),
    default="REG",
    show_default=True,
)
@provider_option
@with_appcontext
def sync_week(week_number, season_type, provider):
    """Sync one week of a season phase, e.g. `sync week 2 --season-type PRE`"""
    try:
        result = _synchronizer(provider).sync_week(week_number, season_type.upper())
    except ValueError as e:
        raise click.BadParameter(str(e))

    icon = "✅" if result.success else "❌"
    click.echo(f"{icon} {result.message}")
    for error in result.errors:
        click.echo(f"   ⚠️  {error}")


@sync.command("current")
@provider_option
@with_appcontext
def sync_current(provider):
    """Sync the current and next week"""
    _echo_batch(_synchronizer(provider).sync_current_and_next())


@sync.command("season")
@provider_option
@with_appcontext
def sync_season(provider):
    """Sync every week of the season"""
    click.echo("Syncing all 25 weeks...")
    _echo_batch(_synchronizer(provider).sync_season())


# Settings Commands
@cli.group()
def settings():
    """Global settings commands"""
    pass


@settings.command("list")
@with_appcontext
def list_settings():
    """List all global settings"""
    values = SettingsStore().all_settings()
    if not values:
        click.echo("No settings stored.")
        return
    for key, value in values.items():
        click.echo(f"  {key} = {value}")


@settings.command("get")
@click.argument("key")
@with_appcontext
def get_setting(key):
    value = SettingsStore().get_setting(key)
    if value is None:
        raise click.ClickException(f"Setting {key} is not set")
    click.echo(value)


@settings.command("set")
@click.argument("key")
@click.argument("value")
@with_appcontext
def set_setting(key, value):
    changed = _save_settings({key: value})
    click.echo(f"✅ {key} updated" if changed else f"{key} unchanged")


# Pool Commands
@cli.group()
def pool():
    """Pool lock commands"""
    pass


@pool.command()
@with_appcontext
def lock():
    _save_settings({POOL_LOCKED: True})
    click.echo("🔒 Pool locked")


@pool.command()
@with_appcontext
def unlock():
    _save_settings({POOL_LOCKED: False})
    click.echo("🔓 Pool unlocked")


@pool.command("lock-date")
@click.argument("lock_date", required=False)
@with_appcontext
def lock_date(lock_date):
    """Set the automatic lock time (ISO timestamp); omit to clear"""
    _save_settings({POOL_LOCK_DATE: lock_date})
    click.echo(f"✅ Lock date {'set to ' + lock_date if lock_date else 'cleared'}")


# Matchup Commands
@cli.group()
def matchups():
    """Matchup maintenance commands"""
    pass


@matchups.command()
@click.option("--season", help="Only this season phase tag, e.g. PRE2")
@with_appcontext
def reset(season):
    """⚠️  DANGER: delete stored matchups"""
    if season:
        try:
            season = "".join(str(part) for part in parse_season_tag(season))
        except ValueError as e:
            raise click.BadParameter(str(e))

    scope = f"season {season}" if season else "ALL seasons"
    if not click.confirm(f"This will DELETE matchups for {scope}. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        deleted = MatchupStore().delete_matchups(season=season)
    except PersistenceError as e:
        raise click.ClickException(str(e))
    click.echo(f"✅ Deleted {deleted} matchups")


# Database Commands
@cli.group()
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command()
@with_appcontext
def init():
    """Initialize database tables"""
    db.create_all()
    click.echo("✅ Database tables created successfully!")


@db_cmd.command()
@click.option("--revision", default="head", help="Revision to upgrade to")
@with_appcontext
def upgrade_db(revision):
    """Apply migrations to database"""
    upgrade(revision=revision)
    click.echo(f"✅ Migrations applied to {revision}")


# Info Commands
@cli.command()
@with_appcontext
def status():
    """Show current week, pool state and matchup counts"""
    stored = SettingsStore().get_pool_state()
    calculated = week_service.calculate_current_week()

    click.echo(f"📅 Calculated week: {calculated.week} ({calculated.label})")
    click.echo(f"💾 Stored week: {stored.current_week or 'not set'}")
    click.echo(f"{'🔒' if stored.is_locked else '🔓'} Pool locked: {stored.is_locked}")
    if stored.lock_date:
        click.echo(f"⏰ Lock date: {stored.lock_date.isoformat()}")

    total = Matchup.query.count()
    final = Matchup.query.filter_by(status="final").count()
    current = Matchup.query.filter_by(week=calculated.week).count()
    click.echo(f"🏈 Matchups: {total} stored, {final} final, {current} this week")
    click.echo(f"🔌 Provider: {app.config.get('SCHEDULE_PROVIDER')}")


if __name__ == "__main__":
    with app.app_context():
        cli()
