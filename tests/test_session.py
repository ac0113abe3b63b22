import asyncio

import httpx
import pytest

from pricefeed.cookies import CookieGrant
from pricefeed.errors import ConfigurationError
from pricefeed.session import Session, SessionStore


def echo_transport():
    def handler(request):
        return httpx.Response(200, json={
            'cookie': request.headers.get('cookie'),
            'user_agent': request.headers.get('user-agent'),
        })
    return httpx.MockTransport(handler)


def test_default_session_is_empty():
    session = Session()
    assert session.cookies == {}
    assert session.user_agent is None
    assert session.headers() == {}


def test_headers_join_cookies():
    session = Session(cookies={'a': '1', 'b': '2'}, user_agent="Mozilla/5.0")
    assert session.headers() == {'Cookie': 'a=1;b=2', 'User-Agent': 'Mozilla/5.0'}


def test_from_grant_copies_values():
    grant = CookieGrant(cookies={'cf_clearance': 'abc'}, user_agent="UA")
    session = Session.from_grant(grant)
    assert session.cookies == {'cf_clearance': 'abc'}
    assert session.user_agent == "UA"


@pytest.mark.parametrize("session", [
    Session(cookies={'a': 'line\nbreak'}),
    Session(user_agent="bad\rvalue"),
    Session(user_agent="café"),
])
def test_invalid_header_values_rejected(session):
    with pytest.raises(ConfigurationError):
        session.headers()


def test_replace_rejects_invalid_session_and_keeps_previous():
    async def scenario():
        store = SessionStore(transport=echo_transport())
        before = await store.current()
        with pytest.raises(ConfigurationError):
            await store.replace(Session(user_agent="bad\nvalue"))
        after = await store.current()
        await store.aclose()
        return before, after

    before, after = asyncio.run(scenario())
    assert before is after


def test_replaced_session_is_sent():
    async def scenario():
        store = SessionStore(transport=echo_transport())
        await store.replace(Session(cookies={'cf_clearance': 'xyz'}, user_agent="Agent/1"))
        async with store.lease() as handle:
            response = await handle.client.get("https://example.com/")
        await store.aclose()
        return response.json()

    body = asyncio.run(scenario())
    assert body == {'cookie': 'cf_clearance=xyz', 'user_agent': 'Agent/1'}


def test_replace_closes_unpinned_client():
    async def scenario():
        store = SessionStore(transport=echo_transport())
        async with store.lease() as old:
            pass
        await store.replace(Session(cookies={'a': '1'}))
        async with store.lease() as new:
            pass
        closed = old.client.is_closed, new.client.is_closed
        await store.aclose()
        return closed

    assert asyncio.run(scenario()) == (True, False)


def test_current_handle_survives_replace():
    async def scenario():
        store = SessionStore(transport=echo_transport())
        handle = await store.current()
        await store.replace(Session(cookies={'a': '1'}))
        response = await handle.client.get("https://example.com/")
        await store.release(handle)
        closed_after_release = handle.client.is_closed
        await store.aclose()
        return response.json(), closed_after_release

    body, closed_after_release = asyncio.run(scenario())
    assert body['cookie'] is None
    assert closed_after_release is True


def test_aclose_closes_pinned_retired_clients():
    async def scenario():
        store = SessionStore(transport=echo_transport())
        old = await store.current()
        await store.replace(Session(cookies={'a': '1'}))
        new = await store.current()
        await store.aclose()
        closed = old.client.is_closed, new.client.is_closed
        await store.release(old)
        await store.release(new)
        return closed

    assert asyncio.run(scenario()) == (True, True)


def test_pins_balanced_when_lease_body_is_cancelled():
    async def scenario():
        store = SessionStore(transport=echo_transport())
        entered = asyncio.Event()

        async def hold():
            async with store.lease():
                entered.set()
                await asyncio.sleep(3600)

        task = asyncio.create_task(hold())
        await entered.wait()
        old = await store.current()
        await store.release(old)
        await store.replace(Session(cookies={'a': '1'}))
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        pins, closed = old.pins, old.client.is_closed
        await store.aclose()
        return pins, closed

    assert asyncio.run(scenario()) == (0, True)


def test_leased_client_stays_open_until_released():
    async def scenario():
        store = SessionStore(transport=echo_transport())
        async with store.lease() as handle:
            await store.replace(Session(cookies={'a': '1'}))
            open_during_lease = not handle.client.is_closed
            response = await handle.client.get("https://example.com/")
        closed_after = handle.client.is_closed
        await store.aclose()
        return open_during_lease, response.status_code, closed_after

    assert asyncio.run(scenario()) == (True, 200, True)


def test_replace_visible_to_later_reads():
    async def scenario():
        store = SessionStore(transport=echo_transport())
        session = Session(cookies={'a': '1'})
        await store.replace(session)
        handle = await store.current()
        await store.aclose()
        return handle.session is session

    assert asyncio.run(scenario())
