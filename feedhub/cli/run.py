"""Run command implementation."""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..config import Config
from ..pipeline import PassResult
from .context import open_services, setup_logging

console = Console()


def print_pass_summary(result: PassResult) -> None:
    """Print summary of one ingestion pass."""
    table = Table(title="Ingestion Pass")
    table.add_column("Feed", style="blue")
    table.add_column("Status", style="bold")
    table.add_column("New", style="green")
    table.add_column("Details", style="dim")

    for feed_result in result.results:
        status = "[green]✓[/green]" if feed_result.success else "[red]✗[/red]"
        details = "" if feed_result.success else f"{feed_result.error_kind}: {feed_result.error}"
        table.add_row(feed_result.feed_url, status, str(feed_result.new_articles), details)

    console.print(table)
    console.print(
        f"Feeds: {len(result.results)}  "
        f"New articles: [green]{result.new_articles}[/green]  "
        f"Failed: [red]{len(result.failed)}[/red]"
    )


def run_command(
    once: bool = typer.Option(False, "--once", help="Run a single pass and exit"),
    interval: Optional[float] = typer.Option(
        None,
        "--interval",
        "-i",
        help="Minutes between passes (default from config)",
        min=0.1,
    ),
) -> None:
    """Poll all known feeds and store new articles."""
    try:
        config = Config()
        setup_logging(config.config.logging.level)
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    async def _run_once() -> PassResult:
        async with open_services(config) as services:
            return await services.scheduler.run_pass()

    async def _run_forever() -> None:
        async with open_services(config) as services:
            scheduler = services.scheduler
            if interval is not None:
                scheduler.interval_seconds = interval * 60
            scheduler.start()
            try:
                await scheduler.wait_closed()
            finally:
                scheduler.stop()

    try:
        if once:
            print_pass_summary(asyncio.run(_run_once()))
        else:
            console.print("[dim]Polling feeds, press Ctrl+C to stop...[/dim]")
            asyncio.run(_run_forever())
    except KeyboardInterrupt:
        console.print("\n[yellow]Ingestion interrupted by user[/yellow]")
        raise typer.Exit(1)
