"""Custom exceptions for Feedhub."""

from typing import Optional


class FeedhubError(Exception):
    """Base exception for all Feedhub errors."""

    kind = "error"


class FeedParseError(FeedhubError):
    """Feed content could not be parsed."""

    kind = "parse_error"


class UnsupportedFormatError(FeedParseError):
    """Input is neither RSS nor Atom."""

    kind = "unsupported_format"


class FetchError(FeedhubError):
    """Feed retrieval failed."""

    kind = "fetch_error"


class NetworkError(FetchError):
    """Transport-level failure (DNS, connection refused, reset...)."""

    kind = "network_error"


class FeedTimeoutError(NetworkError):
    """Request exceeded the client timeout."""

    kind = "timeout"


class HttpError(FetchError):
    """Server answered with a non-2xx status."""

    kind = "http_error"

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class EmptyFeedError(FetchError):
    """Server answered with an empty body."""

    kind = "empty_feed"


class InvalidFeedUrlError(FeedhubError):
    """URL is malformed or not http/https."""

    kind = "invalid_url"


class FeedNotFoundError(FeedhubError):
    """Feed id is not present in the store."""

    kind = "feed_not_found"


class StoreError(FeedhubError):
    """Store-level failures."""

    kind = "store_error"


class SubscriptionError(FeedhubError):
    """On-demand subscription was rejected."""

    kind = "subscription_rejected"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
