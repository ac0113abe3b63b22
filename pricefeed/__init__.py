from .agent import PriceAgent, query_price
from .cookies import CookieGrant, CookieService
from .errors import (
    ConfigurationError,
    PriceFeedError,
    PriceNotFoundError,
    RefreshError,
    RequestError,
)
from .extractor import PRICE_MARKER, extract_price
from .models import PriceQuote
from .session import Session, SessionStore

__all__ = [
    "PriceAgent",
    "query_price",
    "CookieGrant",
    "CookieService",
    "ConfigurationError",
    "PriceFeedError",
    "PriceNotFoundError",
    "RefreshError",
    "RequestError",
    "PRICE_MARKER",
    "extract_price",
    "PriceQuote",
    "Session",
    "SessionStore",
]
