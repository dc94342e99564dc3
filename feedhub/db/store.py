"""Entity storage with secondary indexes kept in sync.

Every entity is written as one primary record plus one copy per index, all
in a single atomic commit:

    ("feed", id)                          primary
    ("feed_by_url", url)                  natural key
    ("article", id)                       primary
    ("article_by_guid", feed_id, guid)    natural key, scoped per feed
    ("feed_articles", feed_id, id)        parent index
    ("subscription", user_id, feed_id)    primary, doubles as owner index
    ("feed_subscribers", feed_id, user_id)
    ("like" | "retweet", user_id, article_id)
    ("article_likes" | "article_retweets", article_id, user_id)
    ("reply", id)
    ("article_replies", article_id, id)

Natural keys are written with if_absent, so a racing duplicate create loses
the commit and gets the stored record back instead.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple, Type, TypeVar

from ..errors import FeedNotFoundError, StoreError
from ..models import Article, DBModel, Feed, Like, Reply, Retweet, Subscription
from .kv import Key, KVBackend

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=DBModel)


def _dump(model: DBModel) -> dict:
    return model.model_dump(mode="json")


class IndexedStore:
    """CRUD for feeds, articles and user relations over a KVBackend."""

    def __init__(self, kv: KVBackend) -> None:
        self.kv = kv

    def close(self) -> None:
        """Close the backend."""
        self.kv.close()

    def _get(self, model: Type[M], key: Key) -> Optional[M]:
        value = self.kv.get(key)
        return model.model_validate(value) if value is not None else None

    def _list(self, model: Type[M], prefix: Key) -> List[M]:
        return [model.model_validate(value) for _, value in self.kv.list(prefix)]

    # Feeds

    def create_feed(self, url: str, title: str, description: str = "") -> Tuple[Feed, bool]:
        """Create a feed unless its URL is already known.

        Returns:
            Tuple of (feed, created). When the URL exists the stored feed is
            returned with created=False.
        """
        feed = Feed(url=url, title=title, description=description)
        record = _dump(feed)
        committed = (
            self.kv.atomic()
            .set(("feed_by_url", url), record, if_absent=True)
            .set(("feed", feed.id), record)
            .commit()
        )
        if committed:
            logger.debug("Created feed %s for %s", feed.id, url)
            return feed, True

        existing = self.get_feed_by_url(url)
        if existing is None:
            raise StoreError(f"Feed URL index conflict without a stored feed: {url}")
        return existing, False

    def get_feed(self, feed_id: str) -> Optional[Feed]:
        """Get feed by ID."""
        return self._get(Feed, ("feed", feed_id))

    def get_feed_by_url(self, url: str) -> Optional[Feed]:
        """Get feed by URL."""
        return self._get(Feed, ("feed_by_url", url))

    def list_feeds(self) -> List[Feed]:
        """All known feeds."""
        return self._list(Feed, ("feed",))

    def update_feed(self, feed: Feed) -> Feed:
        """Overwrite a feed and its URL index entry.

        Raises:
            FeedNotFoundError: No feed with this id.
            StoreError: The update would change the feed URL.
        """
        current = self.get_feed(feed.id)
        if current is None:
            raise FeedNotFoundError(f"Feed not found: {feed.id}")
        if current.url != feed.url:
            raise StoreError(f"Feed URL is immutable: {current.url!r} -> {feed.url!r}")

        record = _dump(feed)
        self.kv.atomic().set(("feed", feed.id), record).set(("feed_by_url", feed.url), record).commit()
        return feed

    # Articles

    def create_article(
        self,
        feed_id: str,
        title: str,
        url: str,
        guid: str,
        published_at: datetime,
        content: str = "",
    ) -> Tuple[Article, bool]:
        """Create an article unless its GUID was already ingested for the feed.

        Returns:
            Tuple of (article, created).

        Raises:
            FeedNotFoundError: The owning feed does not exist.
        """
        if self.get_feed(feed_id) is None:
            raise FeedNotFoundError(f"Feed not found: {feed_id}")

        article = Article(
            feed_id=feed_id,
            title=title,
            content=content,
            url=url,
            published_at=published_at,
            guid=guid,
        )
        record = _dump(article)
        committed = (
            self.kv.atomic()
            .set(("article_by_guid", feed_id, guid), record, if_absent=True)
            .set(("article", article.id), record)
            .set(("feed_articles", feed_id, article.id), record)
            .commit()
        )
        if committed:
            return article, True

        existing = self.get_article_by_guid(feed_id, guid)
        if existing is None:
            raise StoreError(f"GUID index conflict without a stored article: {guid}")
        return existing, False

    def get_article(self, article_id: str) -> Optional[Article]:
        """Get article by ID."""
        return self._get(Article, ("article", article_id))

    def get_article_by_guid(self, feed_id: str, guid: str) -> Optional[Article]:
        """Get article by its feed-scoped GUID."""
        return self._get(Article, ("article_by_guid", feed_id, guid))

    def list_articles_by_feed(self, feed_id: str) -> List[Article]:
        """Articles of a feed, most recently published first."""
        articles = self._list(Article, ("feed_articles", feed_id))
        return sorted(articles, key=lambda a: a.published_at, reverse=True)

    def list_recent_articles(self, limit: int = 50) -> List[Article]:
        """Most recently published articles across all feeds."""
        articles = self._list(Article, ("article",))
        articles.sort(key=lambda a: a.published_at, reverse=True)
        return articles[:limit]

    # Subscriptions

    def create_subscription(self, user_id: str, feed_id: str) -> Tuple[Subscription, bool]:
        """Subscribe a user to a feed.

        Returns:
            Tuple of (subscription, created).
        """
        if self.get_feed(feed_id) is None:
            raise FeedNotFoundError(f"Feed not found: {feed_id}")

        subscription = Subscription(user_id=user_id, feed_id=feed_id)
        record = _dump(subscription)
        committed = (
            self.kv.atomic()
            .set(("subscription", user_id, feed_id), record, if_absent=True)
            .set(("feed_subscribers", feed_id, user_id), record)
            .commit()
        )
        if committed:
            return subscription, True
        return self.get_subscription(user_id, feed_id), False

    def get_subscription(self, user_id: str, feed_id: str) -> Optional[Subscription]:
        """Get a user's subscription to a feed."""
        return self._get(Subscription, ("subscription", user_id, feed_id))

    def delete_subscription(self, user_id: str, feed_id: str) -> bool:
        """Remove a subscription. Returns whether one existed."""
        existed = self.get_subscription(user_id, feed_id) is not None
        self.kv.atomic().delete(("subscription", user_id, feed_id)).delete(
            ("feed_subscribers", feed_id, user_id)
        ).commit()
        return existed

    def list_user_subscriptions(self, user_id: str) -> List[Subscription]:
        """Subscriptions owned by a user."""
        return self._list(Subscription, ("subscription", user_id))

    def list_feed_subscribers(self, feed_id: str) -> List[Subscription]:
        """Subscriptions pointing at a feed."""
        return self._list(Subscription, ("feed_subscribers", feed_id))

    # Likes and retweets

    def _create_relation(self, kind: str, relation: M) -> Tuple[M, bool]:
        user_id, article_id = relation.user_id, relation.article_id
        record = _dump(relation)
        committed = (
            self.kv.atomic()
            .set((kind, user_id, article_id), record, if_absent=True)
            .set((f"article_{kind}s", article_id, user_id), record)
            .commit()
        )
        if committed:
            return relation, True
        return self._get(type(relation), (kind, user_id, article_id)), False

    def _delete_relation(self, kind: str, user_id: str, article_id: str) -> bool:
        existed = self.kv.get((kind, user_id, article_id)) is not None
        self.kv.atomic().delete((kind, user_id, article_id)).delete(
            (f"article_{kind}s", article_id, user_id)
        ).commit()
        return existed

    def create_like(self, user_id: str, article_id: str) -> Tuple[Like, bool]:
        """Record a like; idempotent per (user, article)."""
        return self._create_relation("like", Like(user_id=user_id, article_id=article_id))

    def delete_like(self, user_id: str, article_id: str) -> bool:
        return self._delete_relation("like", user_id, article_id)

    def get_user_like(self, user_id: str, article_id: str) -> Optional[Like]:
        return self._get(Like, ("like", user_id, article_id))

    def list_article_likes(self, article_id: str) -> List[Like]:
        return self._list(Like, ("article_likes", article_id))

    def create_retweet(
        self, user_id: str, article_id: str, comment: Optional[str] = None
    ) -> Tuple[Retweet, bool]:
        """Record a retweet; idempotent per (user, article)."""
        retweet = Retweet(user_id=user_id, article_id=article_id, comment=comment)
        return self._create_relation("retweet", retweet)

    def delete_retweet(self, user_id: str, article_id: str) -> bool:
        return self._delete_relation("retweet", user_id, article_id)

    def get_user_retweet(self, user_id: str, article_id: str) -> Optional[Retweet]:
        return self._get(Retweet, ("retweet", user_id, article_id))

    def list_article_retweets(self, article_id: str) -> List[Retweet]:
        return self._list(Retweet, ("article_retweets", article_id))

    # Replies

    def create_reply(self, user_id: str, article_id: str, content: str) -> Reply:
        """Add a reply under an article."""
        reply = Reply(user_id=user_id, article_id=article_id, content=content)
        record = _dump(reply)
        self.kv.atomic().set(("reply", reply.id), record).set(
            ("article_replies", article_id, reply.id), record
        ).commit()
        return reply

    def get_reply(self, reply_id: str) -> Optional[Reply]:
        return self._get(Reply, ("reply", reply_id))

    def list_article_replies(self, article_id: str) -> List[Reply]:
        """Replies in the order they were written."""
        replies = self._list(Reply, ("article_replies", article_id))
        return sorted(replies, key=lambda r: r.created_at)
