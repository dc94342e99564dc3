"""Service wiring shared by CLI commands."""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

from rich.logging import RichHandler

from ..config import Config
from ..db import IndexedStore, open_store
from ..ingestion import FeedClient
from ..pipeline import IngestionScheduler, SubscriptionService


@dataclass
class Services:
    """Process-wide instances, built once and passed to commands."""

    store: IndexedStore
    client: FeedClient
    scheduler: IngestionScheduler
    subscriptions: SubscriptionService


def setup_logging(level: str = "INFO") -> None:
    """Route library logging through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


@asynccontextmanager
async def open_services(config: Config) -> AsyncIterator[Services]:
    """Build store, client, scheduler and subscription service; close them on exit."""
    settings = config.config
    store = open_store(settings.store.backend, config.get_db_config())
    client = FeedClient(
        timeout=settings.client.timeout,
        user_agent=settings.client.user_agent,
    )
    scheduler = IngestionScheduler(
        store,
        client,
        interval_seconds=settings.scheduler.interval_minutes * 60,
        feed_delay_seconds=settings.scheduler.feed_delay_seconds,
    )
    try:
        yield Services(
            store=store,
            client=client,
            scheduler=scheduler,
            subscriptions=SubscriptionService(store, client, scheduler),
        )
    finally:
        await client.aclose()
        store.close()
