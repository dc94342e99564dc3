"""HTTP feed client: fetch, validate and discover feeds."""

import logging
from typing import List, Optional
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from ..errors import (
    EmptyFeedError,
    FeedhubError,
    FeedTimeoutError,
    HttpError,
    InvalidFeedUrlError,
    NetworkError,
)
from .models import NormalizedFeed
from .parser import FeedParser

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "Feedhub/0.1 (RSS Reader)"
FEED_ACCEPT = "application/rss+xml, application/atom+xml, application/xml, text/xml"
FEED_LINK_TYPES = ("application/rss+xml", "application/atom+xml", "application/rdf+xml")
COMMON_FEED_PATHS = ("/feed", "/rss", "/atom.xml", "/rss.xml", "/feed.xml")


def check_feed_url(url: str) -> str:
    """Return the URL stripped, or raise if it is not absolute http(s)."""
    url = (url or "").strip()
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise InvalidFeedUrlError(f"Malformed URL {url!r}: {e}") from e
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidFeedUrlError(f"Not an http(s) URL: {url!r}")
    return url


class FeedClient:
    """Fetch and parse RSS/Atom feeds over HTTP.

    One client is shared by the scheduler and on-demand subscription
    flows; it owns a single httpx.AsyncClient.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        parser: Optional[FeedParser] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize feed client.

        Args:
            timeout: Request timeout in seconds.
            user_agent: User-Agent header sent with every request.
            parser: Parser used by fetch(); a new FeedParser by default.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self.timeout = timeout
        self.user_agent = user_agent
        self.parser = parser or FeedParser()
        self._http = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": user_agent},
            transport=transport,
        )

    async def __aenter__(self) -> "FeedClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def _get(self, url: str, accept: Optional[str] = None) -> httpx.Response:
        headers = {"Accept": accept} if accept else None
        try:
            response = await self._http.get(url, headers=headers)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise FeedTimeoutError(f"Request timeout: {url} took longer than {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise HttpError(f"HTTP {status}: {e.response.reason_phrase}", status_code=status) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Network error: unable to fetch {url} ({e})") from e
        return response

    async def fetch_raw(self, url: str) -> bytes:
        """Download feed bytes.

        Raises:
            FeedTimeoutError: The request timed out.
            HttpError: Non-2xx response.
            NetworkError: Transport failure.
            EmptyFeedError: The body is empty or whitespace.
        """
        response = await self._get(url, accept=FEED_ACCEPT)

        content_type = response.headers.get("content-type", "")
        if not any(marker in content_type for marker in ("xml", "rss", "atom")):
            logger.warning("Unexpected content type for %s: %s", url, content_type or "<none>")

        body = response.content
        if not body.strip():
            raise EmptyFeedError(f"Empty feed content: {url}")
        return body

    async def fetch(self, url: str) -> NormalizedFeed:
        """Download and parse a feed."""
        body = await self.fetch_raw(url)
        return self.parser.parse(body)

    async def validate(self, url: str) -> bool:
        """Best-effort probe: is this an http(s) URL serving a parseable feed?"""
        try:
            url = check_feed_url(url)
            await self.fetch(url)
        except FeedhubError as e:
            logger.info("Feed validation failed for %s: %s", url, e)
            return False
        return True

    async def discover(self, page_url: str) -> List[str]:
        """Find feed URLs advertised by, or conventionally placed near, a page.

        Link-tag feeds come first in document order, then conventional paths
        that validate. Duplicates are removed.

        Raises:
            FetchError: The page itself could not be fetched.
        """
        page_url = check_feed_url(page_url)
        response = await self._get(page_url, accept="text/html,application/xhtml+xml")

        found: List[str] = []
        soup = BeautifulSoup(response.text, "html.parser")
        for link in soup.find_all("link"):
            link_type = (link.get("type") or "").strip().lower()
            href = (link.get("href") or "").strip()
            if link_type not in FEED_LINK_TYPES or not href:
                continue
            try:
                found.append(urljoin(page_url, href))
            except ValueError:
                logger.debug("Skipping unparseable feed link on %s: %r", page_url, href)

        for path in COMMON_FEED_PATHS:
            candidate = urljoin(page_url, path)
            if candidate in found:
                continue
            if await self.validate(candidate):
                found.append(candidate)

        # dict preserves first-seen order
        return list(dict.fromkeys(found))
