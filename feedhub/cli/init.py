"""Init command implementation."""

from pathlib import Path
from typing import List

import typer
from rich.console import Console
from rich.panel import Panel

from ..config import ConfigModel, FeedSourceConfig, save_config, save_feed_sources
from ..config.loader import DEFAULT_CONFIG_DIR
from ..db import create_connection_pool, init_database, validate_connection

console = Console()


def create_default_feeds() -> List[FeedSourceConfig]:
    """Seed feeds written by init."""
    return [
        FeedSourceConfig(name="Python Insider", url="https://blog.python.org/feeds/posts/default"),
        FeedSourceConfig(name="PyPI Recent Updates", url="https://pypi.org/rss/updates.xml"),
        FeedSourceConfig(name="Hacker News", url="https://news.ycombinator.com/rss"),
        FeedSourceConfig(name="LWN.net", url="https://lwn.net/headlines/rss"),
    ]


def init_command(
    config_dir: Path = typer.Option(
        DEFAULT_CONFIG_DIR,
        "--config-dir",
        "-c",
        help="Configuration directory",
    ),
    backend: str = typer.Option("postgres", "--backend", help="Store backend (postgres, memory)"),
    db_host: str = typer.Option("localhost", "--db-host", help="Postgres host"),
    db_port: int = typer.Option(5432, "--db-port", help="Postgres port"),
    db_name: str = typer.Option("feedhub", "--db-name", help="Database name"),
    db_user: str = typer.Option("feedhub", "--db-user", help="Database user"),
    seed_feeds: bool = typer.Option(
        True,
        "--seed-feeds/--no-seed-feeds",
        help="Write a starter feeds.yaml",
    ),
) -> None:
    """Initialize Feedhub configuration and database."""
    console.print(Panel.fit("Feedhub - Initialization", style="bold blue"))

    if backend not in ("postgres", "memory"):
        console.print(f"[red]Unknown backend: {backend}[/red]")
        raise typer.Exit(1)

    config_dir.mkdir(parents=True, exist_ok=True)
    config_path = config_dir / "config.yaml"
    feeds_path = config_dir / "feeds.yaml"

    config = ConfigModel(
        store={"backend": backend},
        postgres={
            "host": db_host,
            "port": db_port,
            "database": db_name,
            "user": db_user,
            "password_env": "FEEDHUB_DB_PASSWORD",
        },
    )

    save_config(config, config_path)
    console.print(f"✅ Created config: {config_path}")

    sources = create_default_feeds() if seed_feeds else []
    save_feed_sources(sources, feeds_path)
    console.print(f"✅ Created feeds: {feeds_path} ({len(sources)} feeds)")

    if backend == "postgres":
        console.print("\n[bold]Testing database connection...[/bold]")
        pool = create_connection_pool(config.postgres.model_dump())
        try:
            if not validate_connection(pool):
                console.print(
                    "[red]❌ Database connection failed![/red]\n"
                    "Please ensure Postgres is running and credentials are correct.\n"
                    "Set the password via environment variable: "
                    "[bold]export FEEDHUB_DB_PASSWORD=your_password[/bold]"
                )
                raise typer.Exit(1)
            console.print("✅ Database connection successful")

            init_database(pool)
            console.print("✅ Database schema initialized")
        finally:
            pool.close()

    console.print(
        Panel(
            f"[green]✅ Feedhub initialized successfully![/green]\n\n"
            f"Configuration: {config_path}\n"
            f"Feeds: {feeds_path}\n\n"
            f"Next steps:\n"
            f"1. Import seed feeds: [bold]feedhub feeds import[/bold]\n"
            f"2. Start polling: [bold]feedhub run[/bold]",
            style="green",
        )
    )
