"""
Client for the local cookie-issuing service.

The service solves the anti-bot challenge for a URL in a real browser and
returns the resulting cookies and user agent as JSON:

    {"cookies": {"cf_clearance": "..."}, "user_agent": "Mozilla/5.0 ..."}
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
import structlog

from .errors import RefreshError

logger = structlog.get_logger(__name__)

COOKIE_SERVICE_URL = "http://localhost:8000/cookies"
COOKIE_SERVICE_RETRIES = 5


@dataclass(frozen=True)
class CookieGrant:
    cookies: Dict[str, str] = field(default_factory=dict)
    user_agent: Optional[str] = None


def parse_grant(payload: Any) -> CookieGrant:
    """Build a CookieGrant from the decoded JSON body.

    Missing or wrongly shaped ``cookies``/``user_agent`` fields are treated as
    absent. A cookie whose value is not a string is rejected.
    """
    if not isinstance(payload, dict):
        return CookieGrant()

    cookies = {}
    raw_cookies = payload.get('cookies')
    if isinstance(raw_cookies, dict):
        for name, value in raw_cookies.items():
            if not isinstance(value, str):
                raise RefreshError(f"Cookie {name!r} has a non-string value: {value!r}")
            cookies[name] = value

    user_agent = payload.get('user_agent')
    if not isinstance(user_agent, str):
        user_agent = None

    return CookieGrant(cookies=cookies, user_agent=user_agent)


class CookieService:
    def __init__(
        self,
        service_url: str = COOKIE_SERVICE_URL,
        retries: int = COOKIE_SERVICE_RETRIES,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport = None,
    ):
        self.service_url = service_url
        self.retries = retries
        self.timeout = timeout
        self._transport = transport

    async def fetch_grant(self, url: str) -> CookieGrant:
        """Ask the service for a session valid on ``url``.

        Raises:
            RefreshError: the service failed, answered with an error status,
                or returned an unusable body.
        """
        params = {'url': url, 'retries': str(self.retries)}
        logger.info("cookie_grant_requested", service_url=self.service_url, url=url)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.service_url, params=params)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as e:
            raise RefreshError(f"Cookie service returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise RefreshError(f"Cookie service request failed: {e}") from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise RefreshError(f"Cookie service returned malformed JSON: {e}") from e

        grant = parse_grant(payload)
        logger.info("cookie_grant_received",
                    cookie_names=sorted(grant.cookies),
                    user_agent=grant.user_agent)
        return grant
