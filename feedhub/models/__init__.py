"""Data models for Feedhub."""

from .article import Article
from .base import DBModel, new_id, utcnow
from .feed import Feed
from .subscription import Like, Reply, Retweet, Subscription

__all__ = [
    "Article",
    "DBModel",
    "Feed",
    "Like",
    "Reply",
    "Retweet",
    "Subscription",
    "new_id",
    "utcnow",
]
