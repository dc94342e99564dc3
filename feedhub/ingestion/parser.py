"""RSS/Atom parser built on feedparser."""

import calendar
import logging
import re
from datetime import datetime
from typing import Any, Optional, Union
from urllib.parse import urljoin, urlparse

import feedparser
import pendulum

from ..errors import UnsupportedFormatError
from ..models import utcnow
from .models import FeedFormat, NormalizedEntry, NormalizedFeed
from .sanitize import sanitize

logger = logging.getLogger(__name__)

UNKNOWN_FEED_TITLE = "Unknown Feed"

_ATOM_ROOT_RE = re.compile(rb"<(?:[\w-]+:)?feed[\s>]", re.IGNORECASE)
_RSS_ROOT_RE = re.compile(rb"<(?:(?:[\w-]+:)?rss|(?:[\w-]+:)?channel|rdf:rdf)[\s>]", re.IGNORECASE)


def detect_format(raw: bytes, version: str = "") -> FeedFormat:
    """Decide between RSS and Atom.

    feedparser's detected version wins when it has one; otherwise the
    earliest root marker in the document decides.
    """
    if version.startswith("atom"):
        return FeedFormat.ATOM
    if version.startswith("rss"):
        return FeedFormat.RSS

    atom = _ATOM_ROOT_RE.search(raw)
    rss = _RSS_ROOT_RE.search(raw)
    if atom and rss:
        return FeedFormat.ATOM if atom.start() < rss.start() else FeedFormat.RSS
    if atom:
        return FeedFormat.ATOM
    if rss:
        return FeedFormat.RSS
    raise UnsupportedFormatError("Not a valid RSS or Atom feed")


def _is_absolute_http(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class FeedParser:
    """Parse raw feed documents into NormalizedFeed.

    Malformed documents are handled by feedparser's loose mode. Entries
    without a title or a resolvable URL are dropped rather than failing the
    whole feed.
    """

    def parse(self, raw: Union[bytes, str]) -> NormalizedFeed:
        """Parse a feed document.

        Args:
            raw: Feed bytes as received from the server.

        Returns:
            Normalized feed with retained entries.

        Raises:
            UnsupportedFormatError: The document is neither RSS nor Atom.
        """
        if isinstance(raw, str):
            raw = raw.encode("utf-8")
        if not raw.strip():
            raise UnsupportedFormatError("Empty document")

        # Never hand feedparser a str: it treats URL-looking strings as
        # something to fetch.
        result = feedparser.parse(raw, sanitize_html=False)
        feed_format = detect_format(raw, result.get("version", "") or "")

        if result.get("bozo"):
            logger.debug("Tolerating malformed feed: %s", result.get("bozo_exception"))

        channel = result.get("feed", {})
        link = (channel.get("link") or "").strip()
        title = sanitize(channel.get("title") or "") or UNKNOWN_FEED_TITLE
        description = sanitize(channel.get("subtitle") or channel.get("description") or "")

        entries = []
        dropped = 0
        for entry in result.get("entries", []):
            normalized = self._normalize_entry(entry, link)
            if normalized is None:
                dropped += 1
                continue
            entries.append(normalized)

        if dropped:
            logger.debug("Dropped %d entries without title or URL", dropped)

        return NormalizedFeed(
            format=feed_format,
            title=title,
            description=description,
            link=link,
            entries=entries,
        )

    def _normalize_entry(self, entry: Any, base_url: str) -> Optional[NormalizedEntry]:
        title = sanitize(entry.get("title") or "")
        link = entry.get("link") or ""
        if entry.get("guidislink") and link == entry.get("id"):
            # feedparser copied a permalink <guid> into a missing <link>.
            url = link.strip() if _is_absolute_http(link.strip()) else ""
        else:
            url = self._resolve_link(link, base_url)
        if not title or not url:
            return None

        guid = (entry.get("id") or "").strip() or url

        return NormalizedEntry(
            title=title,
            url=url,
            content=sanitize(self._extract_content(entry)),
            published_at=self._parse_date(entry),
            guid=guid,
        )

    def _resolve_link(self, link: str, base_url: str) -> str:
        link = link.strip()
        if not link:
            return ""
        if _is_absolute_http(link):
            return link
        if base_url:
            try:
                resolved = urljoin(base_url, link)
            except ValueError:
                return ""
            if _is_absolute_http(resolved):
                return resolved
        return ""

    def _extract_content(self, entry: Any) -> str:
        # Full content (Atom <content>, RSS content:encoded) beats the summary.
        for item in entry.get("content") or []:
            value = item.get("value")
            if value:
                return value
        return entry.get("summary") or entry.get("description") or ""

    def _parse_date(self, entry: Any) -> datetime:
        for key in ("published_parsed", "updated_parsed"):
            parsed = entry.get(key)
            if parsed:
                try:
                    return pendulum.from_timestamp(calendar.timegm(parsed))
                except (OverflowError, ValueError, TypeError):
                    continue

        for key in ("published", "updated"):
            raw = entry.get(key)
            if not raw:
                continue
            try:
                value = pendulum.parse(raw, strict=False)
            except ValueError:
                continue
            if isinstance(value, datetime):
                return value.in_timezone("UTC")

        return utcnow()


_default_parser = FeedParser()


def parse_feed(raw: Union[bytes, str]) -> NormalizedFeed:
    """Parse with a shared FeedParser."""
    return _default_parser.parse(raw)
