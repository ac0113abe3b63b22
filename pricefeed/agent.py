"""
Agent that queries the price page and keeps the browsing session valid.

fetch_price() flow:
    request with current session
      -> ok: extract price
      -> transport error / non-2xx: refresh session once, request again
           -> ok: extract price
           -> still failing: RequestError

A refresh failure ends the call with RefreshError. A page that loads but has
no price ends it with PriceNotFoundError.
"""

import time
from typing import Callable, Optional

import httpx
import structlog

from .cookies import CookieService
from .errors import PriceNotFoundError, RequestError
from .extractor import PRICE_MARKER, extract_price, marker_for
from .fetcher import SOURCE_URL, PageFetcher
from .models import PriceQuote
from .session import Session, SessionStore

logger = structlog.get_logger(__name__)


class PriceAgent:
    def __init__(
        self,
        url: str = SOURCE_URL,
        cookie_service: CookieService = None,
        store: SessionStore = None,
        marker: str = PRICE_MARKER,
        offset: Optional[int] = None,
        max_response_size: int = 10 * 1024 * 1024,
        clock: Callable[[], float] = time.time,
    ):
        self.url = url
        self.cookie_service = cookie_service or CookieService()
        self.store = store or SessionStore()
        self.fetcher = PageFetcher(self.store, url=url, max_response_size=max_response_size)
        self.marker = marker
        self.offset = offset
        self._clock = clock
        self._last_timestamp = 0

    @classmethod
    async def create(cls, **kwargs) -> "PriceAgent":
        """Build an agent and install a fresh session before the first request."""
        agent = cls(**kwargs)
        await agent.refresh()
        return agent

    async def refresh(self):
        """Fetch a new session from the cookie service and make it active.

        Raises:
            RefreshError: the cookie service call failed.
            ConfigurationError: the grant cannot be sent as headers.
        """
        logger.info("session_refresh_started", url=self.url)
        grant = await self.cookie_service.fetch_grant(self.url)
        await self.store.replace(Session.from_grant(grant))
        logger.info("session_refreshed", cookie_count=len(grant.cookies))

    async def fetch_price(self) -> PriceQuote:
        """Query the current price, refreshing the session at most once.

        Raises:
            RefreshError, RequestError, PriceNotFoundError, ConfigurationError
        """
        result = await self.fetcher.fetch()

        if not result.success:
            logger.info("session_needs_refresh",
                        url=self.url,
                        reason=PageFetcher.describe(result))
            await self.refresh()

            result = await self.fetcher.fetch()
            if not result.success:
                reason = PageFetcher.describe(result)
                logger.error("page_request_gave_up", url=self.url, reason=reason)
                raise RequestError(
                    f"Request to {self.url} failed after session refresh: {reason}",
                    status_code=result.status_code,
                )

        price = extract_price(result.text, marker=self.marker, offset=self.offset)
        if price is None:
            logger.error("price_not_found", url=self.url, marker=self.marker, size=result.size)
            raise PriceNotFoundError(f"Failed to find price in response from {self.url}", marker=self.marker)

        return PriceQuote(value=price, timestamp=self._stamp())

    def _stamp(self) -> int:
        now = int(self._clock())
        if now < self._last_timestamp:
            now = self._last_timestamp
        self._last_timestamp = now
        return now

    async def aclose(self):
        await self.store.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()


async def query_price(agent: PriceAgent) -> PriceQuote:
    """Query the latest price in USD."""
    logger.info("price_query_started", url=agent.url)
    quote = await agent.fetch_price()
    logger.info("price_query_finished", usd=quote.value, timestamp=quote.timestamp)
    return quote


def build_agent(config, transport: httpx.AsyncBaseTransport = None) -> PriceAgent:
    """Wire an agent from a Config instance."""
    source = config.source
    cookie_cfg = config.cookie_service
    fetcher_cfg = config.fetcher
    extractor_cfg = config.extractor

    store = SessionStore(timeout=fetcher_cfg.get('timeout', 30.0), transport=transport)
    cookie_service = CookieService(
        service_url=cookie_cfg.get('url', 'http://localhost:8000/cookies'),
        retries=cookie_cfg.get('retries', 5),
        timeout=cookie_cfg.get('timeout', 120.0),
        transport=transport,
    )
    marker = extractor_cfg.get('marker') or marker_for(source.get('asset_name', 'Bitcoin'))

    return PriceAgent(
        url=source.get('url', SOURCE_URL),
        cookie_service=cookie_service,
        store=store,
        marker=marker,
        offset=extractor_cfg.get('offset'),
        max_response_size=fetcher_cfg.get('max_response_size', 10 * 1024 * 1024),
    )
