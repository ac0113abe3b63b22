"""
Polls the price on a fixed interval and stores every quote.
"""

import asyncio
from typing import Optional

import structlog

from .agent import PriceAgent, query_price
from .errors import PriceFeedError
from .models import PriceQuote
from .storage import QuoteStorage

logger = structlog.get_logger(__name__)


class PricePoller:
    """Calls the agent every ``interval`` seconds until stopped."""

    def __init__(self, agent: PriceAgent, storage: QuoteStorage = None, interval: float = 60.0):
        self.agent = agent
        self.storage = storage
        self.interval = interval
        self.running = False

    async def start(self):
        logger.info("poller_started", interval=self.interval)
        self.running = True
        try:
            while self.running:
                await self.poll_once()
                await asyncio.sleep(self.interval)
        finally:
            self.running = False
            logger.info("poller_stopped")

    def stop(self):
        self.running = False

    async def poll_once(self) -> Optional[PriceQuote]:
        """Fetch and store one quote. Feed errors are logged, not raised."""
        try:
            quote = await query_price(self.agent)
        except PriceFeedError as e:
            logger.error("price_poll_failed", error_kind=type(e).__name__, error=str(e))
            return None

        if self.storage is not None:
            self.storage.add_quote(quote)
        return quote
