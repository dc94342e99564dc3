"""Feed parsing and retrieval."""

from .client import FeedClient, check_feed_url
from .models import FeedFormat, NormalizedEntry, NormalizedFeed
from .parser import FeedParser, parse_feed
from .sanitize import sanitize

__all__ = [
    "FeedClient",
    "FeedFormat",
    "FeedParser",
    "NormalizedEntry",
    "NormalizedFeed",
    "check_feed_url",
    "parse_feed",
    "sanitize",
]
