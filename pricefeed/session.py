"""
Shared browsing session: the cookies and user agent that get requests past
the anti-bot check, and the single httpx client built from them.

Readers pin the active client with ``lease()``, or with ``current()`` and
``release()``. A refresh swaps in a new client with ``replace()``. The lock
only guards the swap and the pin count, never the network I/O itself.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Dict, Optional

import httpx
import structlog

from .errors import ConfigurationError

logger = structlog.get_logger(__name__)

DEFAULT_HEADERS = {
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.5',
    'Accept-Encoding': 'gzip, deflate',
    'Connection': 'keep-alive',
    'Upgrade-Insecure-Requests': '1',
}


def _check_header_value(name: str, value: str) -> str:
    for char in value:
        if char != '\t' and not (0x20 <= ord(char) < 0x7f):
            raise ConfigurationError(f"Invalid character {char!r} in {name} header value")
    return value


@dataclass(frozen=True)
class Session:
    """Cookies and user agent used to impersonate a browser."""
    cookies: Dict[str, str] = field(default_factory=dict)
    user_agent: Optional[str] = None

    @classmethod
    def from_grant(cls, grant) -> "Session":
        return cls(cookies=dict(grant.cookies), user_agent=grant.user_agent)

    def headers(self) -> Dict[str, str]:
        """Render the session as request headers, validating every value."""
        headers = {}
        if self.cookies:
            pairs = [f"{name}={value}" for name, value in self.cookies.items()]
            headers['Cookie'] = _check_header_value('Cookie', ';'.join(pairs))
        if self.user_agent is not None:
            headers['User-Agent'] = _check_header_value('User-Agent', self.user_agent)
        return headers


def build_client(
    session: Session,
    timeout: float = 30.0,
    max_redirects: int = 5,
    transport: httpx.AsyncBaseTransport = None,
) -> httpx.AsyncClient:
    """Create the AsyncClient that sends requests with ``session``."""
    headers = dict(DEFAULT_HEADERS)
    headers.update(session.headers())

    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        max_redirects=max_redirects,
        headers=headers,
        limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
        transport=transport,
    )


class SessionHandle:
    """An active or retired (session, client) pair.

    The client stays open while the handle is pinned, even after a refresh
    has replaced it.
    """

    def __init__(self, session: Session, client: httpx.AsyncClient):
        self.session = session
        self.client = client
        self.pins = 0
        self.retired = False


class SessionStore:
    """Mutually exclusive read/replace access to the active session."""

    def __init__(self, timeout: float = 30.0, transport: httpx.AsyncBaseTransport = None):
        self.timeout = timeout
        self._transport = transport
        self._lock = asyncio.Lock()
        self._active = self._make_handle(Session())
        self._retired = set()

    def _make_handle(self, session: Session) -> SessionHandle:
        client = build_client(session, timeout=self.timeout, transport=self._transport)
        return SessionHandle(session=session, client=client)

    async def current(self) -> SessionHandle:
        """Pin and return the active handle.

        The handle stays usable until it is passed to ``release()``, whatever
        refreshes happen meanwhile.
        """
        async with self._lock:
            handle = self._active
            handle.pins += 1
        return handle

    async def release(self, handle: SessionHandle):
        """Unpin ``handle``; a retired client closes with its last pin."""
        handle.pins -= 1
        if handle.retired and handle.pins == 0 and handle in self._retired:
            self._retired.discard(handle)
            await handle.client.aclose()

    @asynccontextmanager
    async def lease(self):
        """Pin the active handle for the duration of one request."""
        handle = await self.current()
        try:
            yield handle
        finally:
            await self.release(handle)

    async def replace(self, session: Session) -> SessionHandle:
        """Install ``session``; the previous client closes once unpinned.

        Raises:
            ConfigurationError: a cookie or user agent is not a valid header value.
        """
        handle = self._make_handle(session)

        async with self._lock:
            previous = self._active
            self._active = handle
            previous.retired = True
            if previous.pins:
                self._retired.add(previous)

        if not previous.pins:
            await previous.client.aclose()

        logger.info("session_replaced",
                    cookie_names=sorted(session.cookies),
                    user_agent=session.user_agent)
        return handle

    async def aclose(self):
        """Close the active client and every retired one still pinned."""
        async with self._lock:
            handles = [self._active] + list(self._retired)
            self._active.retired = True
            self._retired.clear()
        for handle in handles:
            await handle.client.aclose()
