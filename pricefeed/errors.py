"""
Error kinds surfaced by PriceAgent.fetch_price().

Each failure path has its own class so a caller can tell a stale session
apart from a page layout change.
"""


class PriceFeedError(Exception):
    """Base class for every error raised by pricefeed."""


class RefreshError(PriceFeedError):
    """The cookie service was unreachable or returned an unusable grant."""


class RequestError(PriceFeedError):
    """The source page request failed again after a session refresh."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class PriceNotFoundError(PriceFeedError):
    """The page was fetched but the price field could not be located."""

    def __init__(self, message: str, marker: str = None):
        super().__init__(message)
        self.marker = marker


class ConfigurationError(PriceFeedError):
    """A session value cannot be sent as an HTTP header."""
