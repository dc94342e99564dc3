"""Background ingestion of all known feeds."""

import asyncio
import logging
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..db import IndexedStore
from ..errors import FeedhubError, FeedNotFoundError
from ..ingestion import FeedClient, NormalizedFeed
from ..ingestion.parser import UNKNOWN_FEED_TITLE
from ..models import utcnow

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 30 * 60
DEFAULT_FEED_DELAY_SECONDS = 1.0


class FeedUpdateResult(BaseModel):
    """Outcome of ingesting one feed."""

    feed_id: str = Field(..., description="Feed ID")
    feed_url: str = Field("", description="Feed URL")
    success: bool = Field(..., description="Whether the update completed")
    new_articles: int = Field(0, description="Articles created by this update")
    error_kind: Optional[str] = Field(None, description="Error kind if failed")
    error: Optional[str] = Field(None, description="Error message if failed")


class PassResult(BaseModel):
    """Outcome of one pass over all feeds."""

    started_at: datetime
    finished_at: datetime
    results: List[FeedUpdateResult] = Field(default_factory=list)

    @property
    def new_articles(self) -> int:
        return sum(r.new_articles for r in self.results)

    @property
    def failed(self) -> List[FeedUpdateResult]:
        return [r for r in self.results if not r.success]


class SchedulerStatus(BaseModel):
    """Scheduler lifecycle snapshot."""

    running: bool
    interval_ms: int


class IngestionScheduler:
    """Periodically poll every known feed and store new articles.

    Passes are strictly sequential across feeds. A per-feed lock serializes
    every ingestion of the same feed, whether it comes from a pass or from an
    on-demand subscription.
    """

    def __init__(
        self,
        store: IndexedStore,
        client: FeedClient,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        feed_delay_seconds: float = DEFAULT_FEED_DELAY_SECONDS,
    ) -> None:
        """Initialize scheduler.

        Args:
            store: Store holding feeds and articles.
            client: Client used to fetch feeds.
            interval_seconds: Pause between the end of one pass and the next.
            feed_delay_seconds: Pause between two feeds within a pass.
        """
        self.store = store
        self.client = client
        self.interval_seconds = interval_seconds
        self.feed_delay_seconds = feed_delay_seconds
        self.last_pass: Optional[PassResult] = None
        self._locks: Dict[str, asyncio.Lock] = {}
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def running(self) -> bool:
        return self._stop_event is not None and not self._stop_event.is_set()

    def status(self) -> SchedulerStatus:
        """Current state and interval."""
        return SchedulerStatus(
            running=self.running,
            interval_ms=int(self.interval_seconds * 1000),
        )

    def start(self) -> None:
        """Start polling. Must be called from inside a running event loop.

        Runs one pass immediately, then one every interval until stop().
        """
        if self.running:
            logger.info("Ingestion scheduler is already running")
            return

        logger.info("Starting ingestion scheduler with %ss interval", self.interval_seconds)
        # A restart right after stop() queues behind the pass still in flight.
        previous = self._task if self._task is not None and not self._task.done() else None
        self._stop_event = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._run(self._stop_event, previous))

    def stop(self) -> None:
        """Prevent further passes. A pass already in progress runs to completion."""
        if not self.running:
            logger.info("Ingestion scheduler is not running")
            return

        logger.info("Stopping ingestion scheduler")
        self._stop_event.set()

    async def wait_closed(self) -> None:
        """Wait for the background task to finish after stop()."""
        if self._task is not None:
            await self._task

    async def _run(self, stop_event: asyncio.Event, previous: Optional[asyncio.Task] = None) -> None:
        if previous is not None:
            await previous

        while not stop_event.is_set():
            try:
                await self.run_pass()
            except Exception:
                logger.exception("Scheduled ingestion pass failed")

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass

    async def run_pass(self) -> PassResult:
        """Update every known feed once, isolating per-feed failures."""
        started_at = utcnow()
        feeds = self.store.list_feeds()
        logger.info("Starting ingestion pass over %d feeds", len(feeds))

        results = []
        for index, feed in enumerate(feeds):
            if index:
                await asyncio.sleep(self.feed_delay_seconds)

            try:
                result = await self.update_feed(feed.id)
            except FeedhubError as e:
                logger.warning("Failed to update feed %s (%s): %s", feed.url, e.kind, e)
                result = FeedUpdateResult(
                    feed_id=feed.id,
                    feed_url=feed.url,
                    success=False,
                    error_kind=e.kind,
                    error=str(e),
                )
            except Exception as e:
                logger.exception("Unexpected error updating feed %s", feed.url)
                result = FeedUpdateResult(
                    feed_id=feed.id,
                    feed_url=feed.url,
                    success=False,
                    error_kind="unexpected",
                    error=str(e),
                )
            results.append(result)

        pass_result = PassResult(started_at=started_at, finished_at=utcnow(), results=results)
        self.last_pass = pass_result
        logger.info(
            "Ingestion pass completed: %d feeds, %d new articles, %d failed",
            len(results),
            pass_result.new_articles,
            len(pass_result.failed),
        )
        return pass_result

    def _lock_for(self, feed_id: str) -> asyncio.Lock:
        return self._locks.setdefault(feed_id, asyncio.Lock())

    async def update_feed(self, feed_id: str) -> FeedUpdateResult:
        """Fetch a feed and store entries not seen before.

        Raises:
            FeedNotFoundError: Unknown feed id.
            FetchError: Retrieval failed; the feed record is left untouched.
            FeedParseError: The document is not RSS or Atom.
        """
        feed = self.store.get_feed(feed_id)
        if feed is None:
            raise FeedNotFoundError(f"Feed not found: {feed_id}")

        async with self._lock_for(feed_id):
            parsed = await self.client.fetch(feed.url)
            return self._ingest(feed_id, parsed)

    async def import_entries(self, feed_id: str, parsed: NormalizedFeed) -> FeedUpdateResult:
        """Ingest an already fetched snapshot under the feed's lock."""
        async with self._lock_for(feed_id):
            return self._ingest(feed_id, parsed)

    def _ingest(self, feed_id: str, parsed: NormalizedFeed) -> FeedUpdateResult:
        feed = self.store.get_feed(feed_id)
        if feed is None:
            raise FeedNotFoundError(f"Feed not found: {feed_id}")

        new_articles = 0
        for entry in parsed.entries:
            if self.store.get_article_by_guid(feed_id, entry.guid) is not None:
                continue
            _, created = self.store.create_article(
                feed_id=feed_id,
                title=entry.title,
                url=entry.url,
                guid=entry.guid,
                published_at=entry.published_at,
                content=entry.content,
            )
            if created:
                new_articles += 1

        # Refresh metadata even when nothing new arrived; blanks keep the stored value.
        title = parsed.title if parsed.title and parsed.title != UNKNOWN_FEED_TITLE else feed.title
        self.store.update_feed(
            feed.model_copy(
                update={
                    "title": title,
                    "description": parsed.description or feed.description,
                    "last_fetched": utcnow(),
                }
            )
        )

        logger.info("Added %d new articles for feed: %s", new_articles, feed.url)
        return FeedUpdateResult(
            feed_id=feed_id,
            feed_url=feed.url,
            success=True,
            new_articles=new_articles,
        )
