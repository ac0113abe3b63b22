import json

import httpx
import pytest

from pricefeed.extractor import PRICE_MARKER

PAGE_URL = "https://prices.example.com/assets/btc"
COOKIE_URL = "http://cookies.test/cookies"


def price_page(digits: str = "64123") -> str:
    return '<html><script>{"assets":[' + PRICE_MARKER + digits + ',"symbol":"BTC"}]}</script></html>'


class FakeSite:
    """Routes page and cookie-service requests to scripted handlers."""

    def __init__(self, page_statuses=None, page_body=None):
        self.page_statuses = list(page_statuses or [])
        self.page_body = page_body if page_body is not None else price_page()
        self.page_requests = []
        self.cookie_requests = []
        self.grants = 0
        self.cookie_payload = None

    def handle(self, request: httpx.Request) -> httpx.Response:
        if str(request.url).startswith(COOKIE_URL):
            self.cookie_requests.append(request)
            return self.cookie_response(request)
        self.page_requests.append(request)
        return self.page_response(request)

    def cookie_response(self, request: httpx.Request) -> httpx.Response:
        self.grants += 1
        payload = self.cookie_payload
        if payload is None:
            payload = {
                'cookies': {'cf_clearance': f"gen{self.grants}", '__cf_bm': f"gen{self.grants}"},
                'user_agent': f"Mozilla/5.0 gen{self.grants}",
            }
        return httpx.Response(200, content=json.dumps(payload).encode())

    def page_response(self, request: httpx.Request) -> httpx.Response:
        status = self.page_statuses.pop(0) if self.page_statuses else 200
        if isinstance(status, Exception):
            raise status
        return httpx.Response(status, text=self.page_body if status == 200 else "challenge")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


@pytest.fixture
def site():
    return FakeSite()
