"""
Main application entry point for the Daily Life Recorder.

This module provides the CLI commands: running the data server and
reading or changing the journal through the client cache.
"""

import asyncio
import sys
from contextlib import asynccontextmanager
from datetime import date
from pathlib import Path
from typing import Optional, Tuple, AsyncIterator

import click
from pydantic import ValidationError

from daily_life.core.logging import setup_logging, get_logger
from daily_life.settings import get_settings, reload_settings
from daily_life.client import DataServiceClient, JournalCache
from daily_life.core.exceptions import ConfigurationError, DataServiceError
from daily_life.journal.schemas import Entry, EntryDraft, EntryPatch, Mood, Settings, Theme
from daily_life.journal.stats import filter_entries


# Setup logging
settings = get_settings()
setup_logging(settings.logging, "daily_life")
logger = get_logger(__name__)

MOOD_CHOICE = click.Choice([mood.value for mood in Mood])


def format_entry(entry: Entry, width: int = 60) -> str:
    """One-line summary of an entry."""
    created = entry.created_at
    when = created.astimezone().strftime("%Y-%m-%d %H:%M") if created else entry.date
    first_line = entry.content.strip().splitlines()[0] if entry.content.strip() else ""
    if len(first_line) > width:
        first_line = first_line[:width - 3] + "..."
    return f"{entry.mood.emoji} {when}  {entry.id}  {first_line}"


def report_failure(message: str) -> None:
    click.echo(f"❌ {message}", err=True)


@asynccontextmanager
async def open_cache(confirm=None) -> AsyncIterator[JournalCache]:
    """Connect to the data server and yield a loaded cache."""
    async with DataServiceClient(settings.client) as client:
        cache = JournalCache(client, confirm=confirm, notify=report_failure)
        if not await cache.load():
            click.echo(f"   Is the data server running at {settings.client.base_url}?", err=True)
            sys.exit(1)
        yield cache


@click.group()
@click.version_option(version=settings.version)
@click.option('--debug', '-d', is_flag=True, help='Enable debug mode')
@click.option('--config', '-c', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='YAML settings file (default: configs/settings.yaml)')
def cli(debug: bool, config: Optional[Path]):
    """Daily Life Recorder - a mood journal with a local data server."""
    global settings
    if config:
        try:
            settings = reload_settings(yaml_path=config)
        except ConfigurationError as e:
            report_failure(f"Invalid settings in {config}: {e.message}")
            sys.exit(1)
        setup_logging(settings.logging, "daily_life", force=True)
        logger.info(f"Loaded settings from {config}")
    if debug:
        settings.debug = True
        logger.info("Debug mode enabled")


@cli.command()
@click.option('--host', help='Bind address (default from settings)')
@click.option('--port', '-p', type=int, help='Bind port (default from settings)')
def serve(host: Optional[str], port: Optional[int]):
    """Run the data server."""
    from daily_life.server import run_server
    run_server(settings, host=host, port=port)


@cli.command()
def status():
    """Show data server health and journal size."""
    asyncio.run(show_status())


@cli.command(name="list")
@click.option('--mood', '-m', type=MOOD_CHOICE, help='Only entries with this mood')
@click.option('--search', '-s', help='Only entries containing this text')
@click.option('--limit', '-n', default=20, show_default=True, help='Maximum entries to show')
def list_entries(mood: Optional[str], search: Optional[str], limit: int):
    """List entries, most recent first."""
    asyncio.run(show_entries(mood, search, limit))


@cli.command()
@click.argument('content')
@click.option('--mood', '-m', type=MOOD_CHOICE, default=Mood.NEUTRAL.value, show_default=True)
def add(content: str, mood: str):
    """Add a new entry."""
    asyncio.run(add_entry(content, mood))


@cli.command()
@click.argument('entry_id')
@click.option('--content', '-c', help='New text')
@click.option('--mood', '-m', type=MOOD_CHOICE, help='New mood')
def edit(entry_id: str, content: Optional[str], mood: Optional[str]):
    """Edit the text or mood of an entry."""
    asyncio.run(edit_entry(entry_id, content, mood))


@cli.command()
@click.argument('entry_id')
@click.option('--yes', '-y', is_flag=True, help='Do not ask for confirmation')
def delete(entry_id: str, yes: bool):
    """Delete an entry."""
    asyncio.run(delete_entry(entry_id, yes))


@cli.command()
def stats():
    """Show mood statistics."""
    asyncio.run(show_stats())


@cli.command()
@click.option('--month', '-m', type=click.DateTime(formats=['%Y-%m']),
              help='Month to show as YYYY-MM (default: current month)')
def calendar(month):
    """Show the entries of a month by day."""
    asyncio.run(show_calendar(month))


@cli.command(name="export")
@click.option('--output-dir', '-o', type=click.Path(file_okay=False, path_type=Path),
              default=Path("backups"), show_default=True, help='Where to save the backup')
def export_backup(output_dir: Path):
    """Download a JSON backup of entries and settings."""
    asyncio.run(export_data(output_dir))


@cli.command(name="import")
@click.argument('backup_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
def import_backup(backup_file: Path):
    """Restore entries and settings from a JSON backup."""
    asyncio.run(import_data(backup_file))


@cli.command(name="settings")
@click.option('--theme', type=click.Choice([theme.value for theme in Theme]), help='Theme')
@click.option('--auto-save/--no-auto-save', default=None, help='Auto-save flag')
@click.option('--show-mood/--hide-mood', default=None, help='Show moods on the calendar')
@click.option('--text', '-t', multiple=True, metavar='KEY=VALUE',
              help='Override a display text, e.g. appTitle="My Journal"')
def configure(theme: Optional[str], auto_save: Optional[bool], show_mood: Optional[bool], text: Tuple[str, ...]):
    """Show or change settings."""
    asyncio.run(update_settings(theme, auto_save, show_mood, text))


async def show_status():
    """Show data server status."""
    click.echo("🔍 Checking data server...")
    async with DataServiceClient(settings.client) as client:
        try:
            health = await client.health()
            summary = await client.get_mood_summary()
        except DataServiceError as e:
            report_failure(f"Data server unreachable at {settings.client.base_url}: {e.message}")
            sys.exit(1)

    click.echo(f"\n📊 Status: {health.get('status')} ({health.get('message', '')})")
    click.echo(f"  • Server: {settings.client.base_url}")
    click.echo(f"  • Entries: {summary.total_entries}")
    click.echo(f"  • This week: {summary.this_week}")


async def show_entries(mood: Optional[str], search: Optional[str], limit: int):
    async with open_cache() as cache:
        entries = filter_entries(cache.entries, search, Mood(mood) if mood else None)

        if not entries:
            click.echo("No matching entries" if (mood or search) else "No entries yet, add one with 'daily-life add'")
            return

        for entry in entries[:limit]:
            click.echo(format_entry(entry))
        if len(entries) > limit:
            click.echo(f"... and {len(entries) - limit} more")


async def add_entry(content: str, mood: str):
    try:
        draft = EntryDraft(content=content, mood=Mood(mood))
    except ValidationError:
        report_failure("Entry text must not be empty")
        sys.exit(1)

    async with open_cache() as cache:
        entry = await cache.add(draft)
        if entry is None:
            sys.exit(1)
        click.echo(f"✅ Added entry {entry.id}")


async def edit_entry(entry_id: str, content: Optional[str], mood: Optional[str]):
    if content is None and mood is None:
        click.echo("Nothing to change, pass --content and/or --mood")
        return
    try:
        patch = EntryPatch(content=content, mood=Mood(mood) if mood else None)
    except ValidationError:
        report_failure("Entry text must not be empty")
        sys.exit(1)

    async with open_cache() as cache:
        if not await cache.update(entry_id, patch):
            sys.exit(1)
        click.echo(f"✅ Updated entry {entry_id}")
        entry = cache.get_entry(entry_id)
        if entry is not None:
            click.echo(format_entry(entry))


async def delete_entry(entry_id: str, yes: bool):
    confirm = (lambda message: True) if yes else (lambda message: click.confirm(message, default=False))

    async with open_cache(confirm=confirm) as cache:
        entry = cache.get_entry(entry_id)
        if entry is not None:
            click.echo(format_entry(entry))
        if await cache.remove(entry_id):
            click.echo(f"🗑️  Deleted entry {entry_id}")
        elif cache.last_error:
            sys.exit(1)


async def show_stats():
    async with open_cache() as cache:
        summary = cache.mood_summary()

        click.echo("\n📊 Mood statistics:")
        click.echo(f"  • Total entries: {summary.total_entries}")
        click.echo(f"  • This week: {summary.this_week}")
        click.echo(f"  • Top mood: {summary.top_mood.label if summary.top_mood else 'No entries yet'}")
        click.echo("")
        for stat in summary.moods:
            bar = "█" * round(stat.percentage / 5)
            click.echo(f"  {stat.emoji} {stat.label:<8} {stat.count:>4} ({stat.percentage:5.1f}%) {bar}")

        if summary.recent:
            click.echo("\n🕒 Recent moods:")
            for entry in summary.recent:
                click.echo(f"  {format_entry(entry, width=40)}")


async def show_calendar(month):
    month = month or date.today()

    async with DataServiceClient(settings.client) as client:
        try:
            days = await client.get_calendar_month(month.year, month.month)
        except DataServiceError as e:
            report_failure(f"Failed to load calendar: {e.message}")
            sys.exit(1)

    click.echo(f"\n📅 {month.strftime('%B %Y')}")
    if not days:
        click.echo("  No entries this month")
        return
    for day in sorted(days):
        moods = "".join(entry.mood.emoji for entry in days[day])
        click.echo(f"  {day}  {moods}  ({len(days[day])})")


async def export_data(output_dir: Path):
    async with DataServiceClient(settings.client) as client:
        cache = JournalCache(client, notify=report_failure)
        artifact = await cache.export()
    if artifact is None:
        sys.exit(1)

    path = artifact.write_to(output_dir)
    click.echo(f"✅ Backup saved to {path}")


async def import_data(backup_file: Path):
    async with open_cache() as cache:
        if not await cache.import_file(backup_file):
            sys.exit(1)
        click.echo(f"✅ Data imported successfully ({len(cache.entries)} entries)")


async def update_settings(
    theme: Optional[str],
    auto_save: Optional[bool],
    show_mood: Optional[bool],
    texts: Tuple[str, ...]
):
    async with open_cache() as cache:
        data = cache.settings.to_json()
        if theme is not None:
            data["theme"] = theme
        if auto_save is not None:
            data["autoSave"] = auto_save
        if show_mood is not None:
            data["showMoodOnCalendar"] = show_mood
        for text in texts:
            key, sep, value = text.partition("=")
            if not sep or key not in data["customTexts"]:
                report_failure(f"Unknown text override '{text}', expected one of {', '.join(data['customTexts'])}")
                sys.exit(1)
            data["customTexts"][key] = value

        changed = Settings.model_validate(data)
        if changed != cache.settings and not await cache.save_settings(changed):
            sys.exit(1)

        click.echo("\n⚙️  Settings:")
        current = cache.settings.to_json()
        for key, value in current.items():
            if key != "customTexts":
                click.echo(f"  • {key}: {value}")
        for key, value in current["customTexts"].items():
            click.echo(f"  • {key}: {value}")


def main():
    """Main entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\n👋 Goodbye!")
        sys.exit(0)


if __name__ == "__main__":
    main()
