"""Feed management commands."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..config import Config, load_feed_sources
from ..errors import FeedhubError, SubscriptionError
from .context import open_services, setup_logging

console = Console()
feeds_app = typer.Typer(help="Manage feeds")


def _load() -> Config:
    try:
        config = Config()
        setup_logging(config.config.logging.level)
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)
    return config


@feeds_app.command("subscribe")
def feeds_subscribe(
    url: str = typer.Argument(..., help="RSS/Atom feed URL"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Record the subscription for this user"),
) -> None:
    """Subscribe to a feed, creating it on first use."""
    config = _load()

    async def _subscribe():
        async with open_services(config) as services:
            return await services.subscriptions.subscribe(url, user_id=user)

    try:
        feed = asyncio.run(_subscribe())
    except SubscriptionError as e:
        console.print(f"[red]❌ {escape(e.reason)}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✅ Subscribed: {feed.title}[/green] ({feed.url})")
    console.print(f"[dim]Feed ID: {feed.id}[/dim]")


@feeds_app.command("discover")
def feeds_discover(
    page_url: str = typer.Argument(..., help="Website URL to scan for feeds"),
) -> None:
    """Find feed URLs advertised by a web page."""
    config = _load()

    async def _discover():
        async with open_services(config) as services:
            return await services.subscriptions.discover_feeds(page_url)

    try:
        feed_urls = asyncio.run(_discover())
    except FeedhubError as e:
        console.print(f"[red]❌ Feed discovery failed: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    if not feed_urls:
        console.print("[yellow]No feeds found.[/yellow]")
        return

    console.print(f"Found {len(feed_urls)} feed(s):")
    for feed_url in feed_urls:
        console.print(f"  - {feed_url}")


@feeds_app.command("list")
def feeds_list() -> None:
    """List all known feeds."""
    config = _load()

    async def _list():
        async with open_services(config) as services:
            return [
                (feed, len(services.store.list_articles_by_feed(feed.id)))
                for feed in services.store.list_feeds()
            ]

    rows = asyncio.run(_list())
    if not rows:
        console.print("[yellow]No feeds yet.[/yellow]")
        return

    table = Table(title="Feeds")
    table.add_column("Title", style="cyan")
    table.add_column("Articles", style="green")
    table.add_column("Last fetched", style="yellow")
    table.add_column("URL", style="blue")

    for feed, article_count in rows:
        table.add_row(
            feed.title,
            str(article_count),
            feed.last_fetched.strftime("%Y-%m-%d %H:%M") if feed.last_fetched else "never",
            feed.url,
        )

    console.print(table)


@feeds_app.command("import")
def feeds_import(
    feeds_file: Optional[Path] = typer.Argument(None, help="feeds.yaml to import (default: next to config)"),
) -> None:
    """Subscribe to every feed listed in a feeds.yaml file."""
    config = _load()
    feeds_path = feeds_file or config.feeds_path

    try:
        sources = load_feed_sources(feeds_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    async def _import():
        outcomes = []
        async with open_services(config) as services:
            for source in sources:
                try:
                    feed = await services.subscriptions.subscribe(source.url)
                    outcomes.append((source, feed.title, None))
                except SubscriptionError as e:
                    outcomes.append((source, None, e.reason))
        return outcomes

    failed = 0
    for source, title, error in asyncio.run(_import()):
        label = source.name or source.url
        if error:
            failed += 1
            console.print(f"[red]❌ {escape(label)}: {escape(error)}[/red]")
        else:
            console.print(f"[green]✅ {label}: {title}[/green]")

    console.print(f"\nImported {len(sources) - failed} of {len(sources)} feeds")
