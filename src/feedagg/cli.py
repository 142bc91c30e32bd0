"""CLI entry point."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from feedagg.core.config import Settings, get_settings
from feedagg.core.exceptions import FeedAggError
from feedagg.core.log import configure_logging

app = typer.Typer(
    name="feedagg",
    help="Background RSS/Atom feed ingestion",
    no_args_is_help=True,
)
console = Console()


def _settings(**overrides: object) -> Settings:
    return get_settings(**{k: v for k, v in overrides.items() if v is not None})


@app.command()
def run(
    concurrency: int | None = typer.Option(
        None, "--concurrency", "-c", min=1, help="Feeds fetched at once"
    ),
    interval: float | None = typer.Option(
        None, "--interval", "-i", min=0.001, help="Seconds between ticks"
    ),
    database_url: str | None = typer.Option(
        None, "--database-url", help="SQLAlchemy database URL"
    ),
    once: bool = typer.Option(False, "--once", help="Run a single tick and exit"),
) -> None:
    """Run the ingestion loop until interrupted."""
    settings = _settings(concurrency=concurrency, interval=interval, database_url=database_url)
    configure_logging(settings.log_level, settings.log_format)

    try:
        summary = asyncio.run(_run(settings, once=once))
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")
        return
    except FeedAggError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e

    if once:
        table = Table(title="Ingestion summary")
        table.add_column("Metric")
        table.add_column("Value", justify="right")
        table.add_row("Cycles", str(summary.total_cycles))
        table.add_row("New posts", str(summary.total_new))
        table.add_row("Duplicates", str(summary.total_duplicates))
        table.add_row("Errors", str(summary.total_errors))
        console.print(table)


async def _run(settings: Settings, *, once: bool):
    from feedagg.core.ingestor import FeedIngestor
    from feedagg.storage.sqlalchemy_storage import SQLAlchemyStorage

    storage = SQLAlchemyStorage(settings.database_url)
    ingestor = FeedIngestor.from_settings(storage, settings)
    try:
        if once:
            await ingestor.run_once()
        else:
            await ingestor.start()
            await ingestor.wait()
    finally:
        await ingestor.close(drain=once)
    return ingestor.metrics.summary()


@app.command("add-feed")
def add_feed(
    name: str = typer.Argument(..., help="Display name"),
    url: str = typer.Argument(..., help="Feed document URL"),
    database_url: str | None = typer.Option(
        None, "--database-url", help="SQLAlchemy database URL"
    ),
) -> None:
    """Subscribe to a feed."""
    settings = _settings(database_url=database_url)

    try:
        feed = asyncio.run(_add_feed(settings, name, url))
    except FeedAggError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e

    console.print(f"Added feed [bold]{feed.name}[/bold] ({feed.url}) id={feed.id}")


async def _add_feed(settings: Settings, name: str, url: str):
    from feedagg.storage.sqlalchemy_storage import SQLAlchemyStorage

    storage = SQLAlchemyStorage(settings.database_url)
    await storage.initialize()
    try:
        return await storage.add_feed(name, url)
    finally:
        await storage.close()


@app.command()
def version() -> None:
    """Show version."""
    from feedagg import __version__

    console.print(f"feedagg {__version__}")


if __name__ == "__main__":
    app()
