"""On-demand subscription and discovery."""

import logging
from typing import List, Optional

from ..db import IndexedStore
from ..errors import FeedParseError, FetchError, InvalidFeedUrlError, SubscriptionError
from ..ingestion import FeedClient, check_feed_url
from ..models import Feed
from .scheduler import IngestionScheduler

logger = logging.getLogger(__name__)


class SubscriptionService:
    """Subscribe to feeds and discover them, on behalf of a user action.

    Runs concurrently with the scheduler and shares its client and store.
    Failures surface as SubscriptionError with a readable reason.
    """

    def __init__(
        self,
        store: IndexedStore,
        client: FeedClient,
        scheduler: Optional[IngestionScheduler] = None,
    ) -> None:
        self.store = store
        self.client = client
        self.scheduler = scheduler

    async def subscribe(self, feed_url: str, user_id: Optional[str] = None) -> Feed:
        """Return the feed for a URL, creating it on first subscription.

        A known URL reuses the stored feed without fetching. A new URL is
        fetched and parsed; when a scheduler is attached the fetched entries
        are imported right away. With a user_id the user's subscription is
        recorded too.

        Raises:
            SubscriptionError: Invalid URL, unreachable or unparseable feed,
                or the user is already subscribed.
        """
        try:
            feed_url = check_feed_url(feed_url)
        except InvalidFeedUrlError as e:
            raise SubscriptionError(f"Invalid feed URL: {e}") from e

        feed = self.store.get_feed_by_url(feed_url)
        if feed is None:
            try:
                parsed = await self.client.fetch(feed_url)
            except (FetchError, FeedParseError) as e:
                raise SubscriptionError(f"Invalid RSS feed: {e}") from e

            feed, created = self.store.create_feed(feed_url, parsed.title, parsed.description)
            if created:
                logger.info("Created feed %s for %s", feed.id, feed_url)
                if self.scheduler is not None:
                    await self.scheduler.import_entries(feed.id, parsed)
                    feed = self.store.get_feed(feed.id)

        if user_id is not None:
            _, created = self.store.create_subscription(user_id, feed.id)
            if not created:
                raise SubscriptionError("Already subscribed to this feed")

        return feed

    def unsubscribe(self, user_id: str, feed_id: str) -> None:
        """Remove a user's subscription.

        Raises:
            SubscriptionError: Unknown feed, or the user is not subscribed.
        """
        if self.store.get_feed(feed_id) is None:
            raise SubscriptionError("Feed not found")
        if not self.store.delete_subscription(user_id, feed_id):
            raise SubscriptionError("Not subscribed to this feed")

    async def discover_feeds(self, page_url: str) -> List[str]:
        """Feed URLs advertised by or conventionally placed near a page."""
        feed_urls = await self.client.discover(page_url)
        logger.info("Found %d feed(s) on %s", len(feed_urls), page_url)
        return feed_urls
