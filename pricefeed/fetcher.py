"""
One GET of the source page through the shared session.

Transport problems are captured in FetchResult.error rather than raised, so
the agent can decide whether the session needs a refresh.
"""

import time
from typing import Optional

import httpx
import structlog

from .session import SessionStore

logger = structlog.get_logger(__name__)

SOURCE_URL = "https://www.blockchain.com/ru/explorer/assets/btc"


class FetchResult:
    def __init__(
        self,
        url: str,
        status_code: int,
        content: bytes = b'',
        fetch_time: float = 0.0,
        error: str = None,
        encoding: str = None
    ):
        self.url = url
        self.status_code = status_code
        self.content = content
        self.fetch_time = fetch_time
        self.error = error
        self.encoding = encoding

    @property
    def success(self) -> bool:
        """No transport error and a 2xx status."""
        return self.error is None and 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        """Decode the body with the response encoding, falling back to utf-8."""
        if not self.content:
            return ""
        encoding = self.encoding or 'utf-8'
        try:
            return self.content.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            return self.content.decode('utf-8', errors='replace')

    @property
    def size(self) -> int:
        return len(self.content)


class PageFetcher:
    def __init__(self, store: SessionStore, url: str = SOURCE_URL, max_response_size: int = 10 * 1024 * 1024):
        self.store = store
        self.url = url
        self.max_response_size = max_response_size

    async def fetch(self) -> FetchResult:
        """Request the page with whatever session is active right now."""
        start_time = time.time()
        logger.info("page_request_started", url=self.url)

        try:
            async with self.store.lease() as handle:
                async with handle.client.stream('GET', self.url) as response:
                    content = b''
                    async for chunk in response.aiter_bytes():
                        content += chunk
                        if len(content) > self.max_response_size:
                            return self._failed(
                                start_time,
                                f"Content too large: > {self.max_response_size} bytes",
                                status_code=response.status_code,
                            )

                    result = FetchResult(
                        url=self.url,
                        status_code=response.status_code,
                        content=content,
                        fetch_time=time.time() - start_time,
                        encoding=response.charset_encoding,
                    )

        except httpx.TimeoutException as e:
            return self._failed(start_time, f"Timeout: {e}")
        except httpx.HTTPError as e:
            return self._failed(start_time, f"{type(e).__name__}: {e}")

        logger.info("page_request_finished",
                    url=self.url,
                    status_code=result.status_code,
                    size=result.size,
                    fetch_time=round(result.fetch_time, 3))
        return result

    def _failed(self, start_time: float, error: str, status_code: int = 0) -> FetchResult:
        logger.warning("page_request_failed", url=self.url, error=error, status_code=status_code)
        return FetchResult(
            url=self.url,
            status_code=status_code,
            fetch_time=time.time() - start_time,
            error=error,
        )

    @staticmethod
    def describe(result: FetchResult) -> Optional[str]:
        """Short reason why ``result`` is not usable, or None if it is."""
        if result.success:
            return None
        if result.error:
            return result.error
        return f"HTTP {result.status_code}"
