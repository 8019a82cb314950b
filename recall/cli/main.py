"""
recall: review scheduling CLI.

A Rich terminal interface over the scheduling engine and review store.

Commands:
- recall add          - Create review items for a card
- recall queue        - Show today's review queue
- recall grade        - Submit a grade for an item
- recall stats        - Show queue statistics
- recall reset-today  - Delete today's review history (debug)
"""
from __future__ import annotations

from typing import NoReturn, Optional

import typer
from loguru import logger
from pydantic import ValidationError
from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from recall.config import Settings, get_settings
from recall.db.store import ReviewStore
from recall.logging import configure_logging
from recall.scheduling import ItemState, QueueStats, ReviewItem, SchedulingError, utc_now
from recall.service import ReviewService

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="recall",
    help="recall: spaced repetition review scheduling",
    no_args_is_help=True,
)
console = Console()


# =============================================================================
# Styling
# =============================================================================

STATE_STYLES = {
    ItemState.NEW: "green",
    ItemState.LEARNING: "yellow",
    ItemState.REVIEW: "cyan",
    ItemState.RELEARNING: "red",
}


def style_state(state: ItemState) -> str:
    """Get styled state string."""
    color = STATE_STYLES.get(state, "white")
    return f"[{color}]{state.value}[/{color}]"


# =============================================================================
# Helpers
# =============================================================================


def _settings() -> Settings:
    try:
        return get_settings()
    except ValidationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        raise typer.Exit(2)


def _service() -> ReviewService:
    settings = _settings()

    try:
        scheduler_config = settings.scheduler_config()
    except SchedulingError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        raise typer.Exit(2)

    store = ReviewStore(settings.database_url, default_ease=scheduler_config.default_ease)
    return ReviewService(
        store,
        scheduler_config=scheduler_config,
        queue_config=settings.queue_config(),
        max_attempts=settings.save_retry_attempts,
    )


def _user(user: Optional[str]) -> str:
    return user or _settings().default_user


def _fail(error: Exception) -> NoReturn:
    console.print(f"[bold red]{type(error).__name__}:[/bold red] {error}")
    raise typer.Exit(1)


def _display_stats(stats: QueueStats) -> None:
    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Due", str(stats.due_count))
    table.add_row("New (total)", str(stats.new_count))
    table.add_row("Learning", str(stats.learning_count))
    table.add_row("Total items", str(stats.total_count))
    table.add_row("New remaining today", str(stats.new_remaining_today))

    console.print(table)


def _display_queue(queue: list[ReviewItem], limit: int) -> None:
    table = Table()
    table.add_column("#", justify="right")
    table.add_column("Item")
    table.add_column("Card")
    table.add_column("Direction")
    table.add_column("State")
    table.add_column("Due (UTC)")
    table.add_column("Interval", justify="right")

    for index, item in enumerate(queue[:limit], start=1):
        table.add_row(
            str(index),
            item.id,
            item.card_id,
            item.direction.value,
            style_state(item.state),
            item.due_date.strftime("%Y-%m-%d %H:%M"),
            f"{item.interval:.1f}d",
        )

    console.print(table)
    if len(queue) > limit:
        console.print(f"[dim]... and {len(queue) - limit} more[/dim]")


# =============================================================================
# Commands
# =============================================================================


@app.command()
def add(
    card_id: str = typer.Argument(..., help="Card identifier"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Learner id"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Card category"),
) -> None:
    """Create both directional review items for a card."""
    service = _service()
    items = service.add_card(card_id, _user(user), category=category)

    for item in items:
        console.print(f"[green]{item.direction.value}[/green]  {item.id}")


@app.command()
def queue(
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Learner id"),
    extra_new: int = typer.Option(0, "--extra-new", "-e", help="Extra new cards beyond today's limit"),
    show_all: bool = typer.Option(False, "--all", "-a", help="Show every item ordered by due date"),
    limit: int = typer.Option(20, "--limit", "-l", help="Rows to display"),
) -> None:
    """Show today's review queue."""
    service = _service()
    items, stats = service.get_queue(_user(user), extra_new=extra_new, show_all=show_all)

    if not items:
        console.print("[bold green]Nothing to review right now.[/bold green]")
    else:
        _display_queue(items, limit)

    console.print()
    _display_stats(stats)


@app.command()
def grade(
    item_id: str = typer.Argument(..., help="Review item id"),
    value: str = typer.Argument(..., help="Grade: again/hard/good/easy or 0/2/3/4"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Learner id"),
    duration_ms: int = typer.Option(0, "--duration-ms", "-d", help="Answer time in milliseconds"),
) -> None:
    """Submit a grade for a review item."""
    service = _service()
    try:
        outcome = service.submit_review(_user(user), item_id, value, duration_ms=duration_ms)
    except (SchedulingError, ValueError) as e:
        _fail(e)

    console.print(
        f"{style_state(outcome.state)}  next review "
        f"[bold]{outcome.next_review.strftime('%Y-%m-%d %H:%M')} UTC[/bold] "
        f"[dim](interval {outcome.interval_days:.2f}d)[/dim]"
    )


@app.command()
def stats(
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Learner id"),
) -> None:
    """Show queue statistics."""
    service = _service()
    user_id = _user(user)
    _, queue_stats = service.get_queue(user_id)

    console.print(f"\n[bold cyan]Review Statistics[/bold cyan] [dim]({user_id})[/dim]")
    console.print("=" * 40)
    _display_stats(queue_stats)

    introduced = service.store.count_new_introduced_today(user_id, utc_now())
    console.print(f"\n[dim]New cards introduced today: {introduced}[/dim]")


@app.command("reset-today")
def reset_today(
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Learner id"),
    confirm: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete today's review history and return today's items to NEW."""
    user_id = _user(user)
    if not confirm and not Confirm.ask(f"Reset today's reviews for {user_id}?", default=False):
        raise typer.Exit(0)

    deleted = _service().reset_today(user_id)
    console.print(f"[green]Daily reviews reset: {deleted} history entries deleted[/green]")


# =============================================================================
# Entry Point
# =============================================================================


@app.callback()
def _configure() -> None:
    settings = _settings()
    configure_logging(settings.log_level, settings.log_file)
    logger.debug("recall CLI starting")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
