"""Command-line interface for inspecting the local health store."""

import logging
from datetime import timedelta
from typing import List, Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from healthstore.cache.diet import DietLocalStorage
from healthstore.cache.heart_rate import HeartRateHistoryCache
from healthstore.config import get_settings
from healthstore.models.schemas import DietLogEntry
from healthstore.store.kv import FileKeyValueStore

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="healthstore",
    help="Local health store - inspect and maintain offline caches",
)
heart_app = typer.Typer(help="Camera heart rate history")
diet_app = typer.Typer(help="Diet logs, goals and food items")
app.add_typer(heart_app, name="heart-rate")
app.add_typer(diet_app, name="diet")

console = Console()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
    logging.getLogger().setLevel(level.upper())


def _open_store() -> FileKeyValueStore:
    settings = get_settings()
    return FileKeyValueStore(settings.data_dir, lock_timeout=settings.lock_timeout)


def _heart_rate_cache() -> HeartRateHistoryCache:
    settings = get_settings()
    return HeartRateHistoryCache(_open_store(), cap=settings.heart_rate_history_cap)


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging (DEBUG level)"
    ),
):
    """Local health store."""
    _configure_logging("DEBUG" if verbose else get_settings().log_level)
    if verbose:
        logger.debug("Verbose logging enabled")


# ===== Heart rate =====


@heart_app.command("list")
def heart_rate_list(
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Maximum readings to show"),
):
    """Show stored heart rate readings, newest first."""
    readings = _heart_rate_cache().load_all(limit=limit)
    if not readings:
        console.print("[yellow]No heart rate readings stored.[/yellow]")
        return

    table = Table(title="Heart Rate History")
    table.add_column("Measured", style="cyan")
    table.add_column("BPM", justify="right", style="bold")
    table.add_column("Source")
    table.add_column("Confidence", justify="right")
    table.add_column("ID", style="dim")

    for reading in readings:
        confidence = f"{reading.confidence:.0%}" if reading.confidence is not None else "-"
        table.add_row(
            reading.measured_at.astimezone().strftime("%Y-%m-%d %H:%M"),
            str(reading.bpm),
            reading.source,
            confidence,
            str(reading.id),
        )

    console.print(table)


@heart_app.command("add")
def heart_rate_add(
    bpm: int = typer.Argument(..., help="Beats per minute"),
    source: str = typer.Option("camera", "--source", "-s", help="Source tag"),
    confidence: Optional[float] = typer.Option(None, "--confidence", "-c", help="Signal quality 0-1"),
    device: Optional[str] = typer.Option(None, "--device", "-d", help="Device identifier"),
):
    """Record a heart rate measurement."""
    measurement = _heart_rate_cache().record_measurement(
        bpm, confidence=confidence, device_used=device, source=source
    )
    if measurement is None:
        console.print("[red]Error:[/red] could not save the measurement")
        raise typer.Exit(1)
    console.print(f"[green]Saved[/green] {bpm} bpm ({measurement.id})")


@heart_app.command("last")
def heart_rate_last(
    max_age: Optional[int] = typer.Option(
        None, "--max-age", help="Maximum age in seconds (default from settings)"
    ),
):
    """Show the last reading if it is recent enough to use as a fallback."""
    max_age = get_settings().heart_rate_recency_seconds if max_age is None else max_age
    bpm = _heart_rate_cache().last_bpm_if_recent(max_age_seconds=max_age)
    if bpm is None:
        console.print("[yellow]No recent heart rate reading.[/yellow]")
        raise typer.Exit(1)
    console.print(f"{bpm} bpm")


@heart_app.command("delete")
def heart_rate_delete(reading_id: UUID = typer.Argument(..., help="Reading ID")):
    """Delete a reading by ID."""
    if not _heart_rate_cache().delete(reading_id):
        console.print("[red]Error:[/red] could not update the history")
        raise typer.Exit(1)
    console.print(f"[green]Deleted[/green] {reading_id}")


@heart_app.command("clear")
def heart_rate_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Remove the heart rate history and the last reading."""
    if not yes:
        typer.confirm("Delete all heart rate readings?", abort=True)
    if not _heart_rate_cache().clear():
        raise typer.Exit(1)
    console.print("[green]Heart rate history cleared.[/green]")


# ===== Diet =====


def _print_logs(title: str, entries: List[DietLogEntry]) -> None:
    if not entries:
        console.print(f"[yellow]{title}: no entries.[/yellow]")
        return

    table = Table(title=title)
    table.add_column("Logged", style="cyan")
    table.add_column("Meal")
    table.add_column("Food")
    table.add_column("kcal", justify="right")
    table.add_column("Synced", justify="center")

    for entry in sorted(entries, key=lambda e: e.logged_at):
        table.add_row(
            entry.logged_at.astimezone().strftime("%Y-%m-%d %H:%M"),
            entry.meal_type.display_name,
            entry.food_name,
            f"{entry.calories:.0f}",
            "✓" if entry.synced else "",
        )

    console.print(table)


@diet_app.command("today")
def diet_today():
    """Show today's diet log."""
    logs = DietLocalStorage(_open_store()).logs
    _print_logs("Today", logs.get_logs_for_date(logs.now()))


@diet_app.command("week")
def diet_week():
    """Show calorie totals for the last seven days."""
    storage = DietLocalStorage(_open_store())
    logs = storage.logs
    today = logs.local_date(logs.now())
    goals = storage.load_goals()

    table = Table(title=f"Last 7 Days (goal {goals.daily_calories} kcal)")
    table.add_column("Day", style="cyan")
    table.add_column("Entries", justify="right")
    table.add_column("kcal", justify="right", style="bold")

    for offset, bucket in enumerate(logs.get_weekly_logs()):
        day = today - timedelta(days=offset)
        total = sum(entry.calories for entry in bucket)
        table.add_row(day.isoformat(), str(len(bucket)), f"{total:.0f}")

    console.print(table)


@diet_app.command("unsynced")
def diet_unsynced():
    """Show diet entries not yet acknowledged by the backend."""
    _print_logs("Pending Sync", DietLocalStorage(_open_store()).logs.get_unsynced())


@diet_app.command("clear")
def diet_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Remove diet logs, goals and cached food items."""
    if not yes:
        typer.confirm("Delete all local diet data?", abort=True)
    if not DietLocalStorage(_open_store()).clear_all():
        raise typer.Exit(1)
    console.print("[green]Diet data cleared.[/green]")


if __name__ == "__main__":
    app()
