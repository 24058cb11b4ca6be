import asyncio
import json
from unittest.mock import AsyncMock
import aiohttp
import pytest
from multidict import CIMultiDict, CIMultiDictProxy
from getscraping.client import GetScrapingClient
from getscraping.exceptions import ConfigurationError, GetScrapingError, InvalidRequestError, TransportError
from getscraping.models import ScrapeRequest
from getscraping.settings import ClientConfig


class FakeResponse:
    def __init__(self, status=200, body=b"<html></html>", headers=None, charset="utf-8"):
        self.status = status
        self._body = body
        self.headers = CIMultiDictProxy(CIMultiDict(headers or []))
        self.charset = charset

    async def read(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Records post() calls and plays back responses / exceptions."""

    def __init__(self, *steps):
        self.steps = list(steps)
        self.calls = []

    def post(self, url, data=None, headers=None, timeout=None):
        self.calls.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        step = self.steps[min(len(self.calls) - 1, len(self.steps) - 1)]
        if isinstance(step, BaseException):
            raise step
        return step


def make_client(session, **kwargs):
    return GetScrapingClient("test-key", session=session, sleep=AsyncMock(), **kwargs)


def test_requires_api_key():
    with pytest.raises(ConfigurationError):
        GetScrapingClient("")


def test_from_config_supports_self_hosted_url():
    client = GetScrapingClient.from_config(ClientConfig(api_key="k", api_url="http://scraper.internal/"))
    assert client.api_url == "http://scraper.internal"
    assert client.api_key == "k"


@pytest.mark.asyncio
async def test_scrape_posts_json_to_plain_endpoint():
    session = FakeSession(FakeResponse(body=b"<p>hi</p>"))
    client = make_client(session)

    result = await client.scrape({"url": "https://example.com", "headers": {"Referer": "https://google.com"}})

    assert result.status == 200
    assert result.text() == "<p>hi</p>"
    call = session.calls[0]
    assert call["url"] == "https://api.getscraping.io/scrape"
    assert call["headers"] == {"X-API-Key": "test-key", "Content-Type": "application/json"}
    payload = json.loads(call["data"])
    assert payload["url"] == "https://example.com"
    assert payload["headers"] == {"Referer": "https://google.com"}


@pytest.mark.asyncio
async def test_scrape_with_rendering_uses_js_endpoint():
    session = FakeSession(FakeResponse())
    client = make_client(session, api_url="http://localhost:8080")

    await client.scrape(ScrapeRequest(url="https://example.com", js_rendering_options={"screenshot": True}))

    assert session.calls[0]["url"] == "http://localhost:8080/scrape_with_js"


@pytest.mark.asyncio
async def test_omit_default_headers_drops_content_type():
    session = FakeSession(FakeResponse())
    client = make_client(session)

    await client.scrape({"url": "https://example.com", "omit_default_headers": True})

    assert session.calls[0]["headers"] == {"X-API-Key": "test-key"}


@pytest.mark.asyncio
async def test_invalid_params_fail_before_network():
    session = FakeSession(FakeResponse())
    client = make_client(session)

    with pytest.raises(InvalidRequestError):
        await client.scrape({"url": ""})
    with pytest.raises(InvalidRequestError):
        await client.scrape({"url": "https://example.com", "retry_config": {"num_retries": -1}})

    assert session.calls == []


@pytest.mark.asyncio
async def test_retries_resend_identical_request():
    session = FakeSession(FakeResponse(status=502), FakeResponse(status=200))
    client = make_client(session)

    result = await client.scrape({"url": "https://example.com", "cookies": ["SID=1"], "retry_config": {"num_retries": 3}})

    assert result.status == 200
    assert len(session.calls) == 2
    assert session.calls[0]["data"] == session.calls[1]["data"]
    assert session.calls[0]["headers"] == session.calls[1]["headers"]


@pytest.mark.asyncio
async def test_transport_failure_is_raised_after_budget():
    session = FakeSession(aiohttp.ClientConnectionError("refused"))
    client = make_client(session)

    with pytest.raises(TransportError):
        await client.scrape({"url": "https://example.com", "retry_config": {"num_retries": 3}})

    assert len(session.calls) == 3


@pytest.mark.asyncio
async def test_timeout_millis_sets_transport_timeout():
    session = FakeSession(FakeResponse())
    client = make_client(session, config=ClientConfig(api_key="test-key", timeout_grace_s=5.0))

    await client.scrape({"url": "https://example.com", "timeout_millis": 20_000})

    assert session.calls[0]["timeout"].total == 25.0


@pytest.mark.asyncio
async def test_response_exposes_cookies_and_screenshot_location():
    headers = [
        ("Set-Cookie", "SID=abc; Path=/; HttpOnly"),
        ("Set-Cookie", "SUBID=def"),
        ("SCREENSHOT_LOCATION", "https://s3.example.com/shot.png"),
    ]
    session = FakeSession(FakeResponse(headers=headers))
    client = make_client(session)

    result = await client.scrape({"url": "https://example.com", "js_rendering_options": {"screenshot": True}})

    assert result.cookies == ["SID=abc", "SUBID=def"]
    assert result.screenshot_location == "https://s3.example.com/shot.png"


@pytest.mark.asyncio
async def test_injected_session_is_not_closed():
    session = AsyncMock(spec=aiohttp.ClientSession)
    async with GetScrapingClient("test-key", session=session):
        pass
    session.close.assert_not_called()


class RoutingSession(FakeSession):
    """Answers each post() with a body naming the target url; read() yields once."""

    def post(self, url, data=None, headers=None, timeout=None):
        self.calls.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        target = json.loads(data)["url"]

        class Delayed(FakeResponse):
            async def read(self):
                # let the other scrape interleave
                await asyncio.sleep(0)
                return self._body

        return Delayed(body=f"<p id='target'>{target}</p>".encode())


@pytest.mark.asyncio
async def test_concurrent_scrapes_are_independent():
    session = RoutingSession()
    client = make_client(session)

    first, second = await asyncio.gather(
        client.scrape({"url": "https://one.example.com"}),
        client.scrape({"url": "https://two.example.com", "omit_default_headers": True}),
    )

    assert first.text() == "<p id='target'>https://one.example.com</p>"
    assert second.text() == "<p id='target'>https://two.example.com</p>"
    by_target = {json.loads(c["data"])["url"]: c["headers"] for c in session.calls}
    assert by_target["https://one.example.com"] == {"X-API-Key": "test-key", "Content-Type": "application/json"}
    assert by_target["https://two.example.com"] == {"X-API-Key": "test-key"}


@pytest.mark.asyncio
async def test_default_timeout_without_timeout_millis():
    session = FakeSession(FakeResponse())
    client = make_client(session, config=ClientConfig(api_key="test-key", http_total_timeout_s=42.0))

    await client.scrape({"url": "https://example.com"})

    assert session.calls[0]["timeout"].total == 42.0


@pytest.mark.asyncio
async def test_unknown_charset_still_satisfies_selector():
    session = FakeSession(FakeResponse(body=b"<div id='ok'></div>", charset="utf8mb4"))
    client = make_client(session)

    result = await client.scrape({"url": "https://example.com", "retry_config": {"num_retries": 2, "success_selector": "#ok"}})

    assert result.encoding == "utf-8"
    assert result.text() == "<div id='ok'></div>"
    assert len(session.calls) == 1


@pytest.mark.asyncio
async def test_scrape_without_open_session_raises():
    client = GetScrapingClient("test-key")

    with pytest.raises(GetScrapingError):
        await client.scrape({"url": "https://example.com"})

    assert client._session is None


@pytest.mark.asyncio
async def test_owned_session_is_closed_on_exit():
    async with GetScrapingClient("test-key") as client:
        session = client.session
        assert not session.closed

    assert session.closed
    with pytest.raises(GetScrapingError):
        client.session
