import asyncio
import json
import logging
from typing import Any, Mapping
import aiohttp
from multidict import CIMultiDictProxy
from pydantic import ValidationError
from .exceptions import ConfigurationError, GetScrapingError, InvalidRequestError
from .executor import RetryingExecutor, Sleep
from .matching import SelectorMatcher
from .models import ScrapeRequest, resolve_endpoint
from .response import ScrapeResponse
from .settings import DEFAULT_API_URL, ClientConfig

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"


class GetScrapingClient:
    """
    Async client for the GetScraping API.

    - Hosted:      GetScrapingClient("YOUR_API_KEY")
    - Self-hosted: GetScrapingClient("YOUR_API_KEY", api_url="https://scraper.internal")
    - Owns its aiohttp session when used as an async context manager,
      or uses the session passed in (and leaves closing it to the caller)
    - scrape() outside "async with" and without a session raises
      GetScrapingError rather than opening a session nobody closes
    - Holds only static configuration, so concurrent scrape() calls are safe

    Usage:
        async with GetScrapingClient("YOUR_API_KEY") as client:
            result = await client.scrape({
                "url": "https://example.com",
                "retry_config": {"num_retries": 3, "success_selector": "#content"},
            })
            html = result.text()
            # reuse the returned cookies in a follow-up scrape
            await client.scrape({"url": "https://example.com/next", "cookies": result.cookies})
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_API_URL,
        *,
        session: aiohttp.ClientSession | None = None,
        config: ClientConfig | None = None,
        matcher: SelectorMatcher | None = None,
        sleep: Sleep | None = None,
    ):
        if not api_key:
            raise ConfigurationError("api_key is required")
        if not api_url:
            raise ConfigurationError("api_url is required")

        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.config = config or ClientConfig(api_key=api_key, api_url=self.api_url)
        self.matcher = matcher
        self._sleep = sleep or asyncio.sleep
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs) -> "GetScrapingClient":
        return cls(config.api_key, config.api_url, config=config, **kwargs)

    async def __aenter__(self):
        if self._session is None:
            self._session = self._new_session()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _new_session(self) -> aiohttp.ClientSession:
        timeout = aiohttp.ClientTimeout(
            total=self.config.http_total_timeout_s,
            connect=self.config.http_connect_timeout_s,
        )
        return aiohttp.ClientSession(
            timeout=timeout,
            headers={"User-Agent": self.config.user_agent},
        )

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise GetScrapingError(
                "No open session: use 'async with GetScrapingClient(...)' or pass session="
            )
        return self._session

    def build_headers(self, request: ScrapeRequest) -> dict[str, str]:
        headers = {API_KEY_HEADER: self.api_key}
        if not request.omit_default_headers:
            headers["Content-Type"] = "application/json"
        return headers

    def request_timeout(self, request: ScrapeRequest) -> aiohttp.ClientTimeout:
        """
        The upstream enforces timeout_millis on the target; the local
        timeout only has to outlast it.
        """
        if request.timeout_millis is not None:
            total = request.timeout_millis / 1000 + self.config.timeout_grace_s
        else:
            total = self.config.http_total_timeout_s
        return aiohttp.ClientTimeout(total=total, connect=self.config.http_connect_timeout_s)

    async def scrape(self, params: ScrapeRequest | Mapping[str, Any]) -> ScrapeResponse:
        """
        Scrape a url through the API.

        Returns the final attempt's response. A response that never met the
        retry_config success criteria is still returned, so check status /
        content rather than relying on the absence of an exception.

        Raises:
            InvalidRequestError: params failed validation (no request made).
            GetScrapingError: no open session.
            TransportError: every attempt failed to reach the API.
        """
        request = self._coerce(params)
        session = self.session
        endpoint = resolve_endpoint(request, self.api_url)
        headers = self.build_headers(request)
        body = json.dumps(request.to_payload()).encode("utf-8")
        timeout = self.request_timeout(request)

        async def send() -> ScrapeResponse:
            return await self._post(session, endpoint, headers, body, timeout)

        executor = RetryingExecutor(
            send,
            request.retry_config,
            delay_s=self.config.retry_delay_s,
            jitter_s=self.config.retry_jitter_s,
            matcher=self.matcher,
            sleep=self._sleep,
        )
        logger.debug("Scraping %s via %s", request.url, endpoint)
        return await executor.run()

    async def _post(self, session: aiohttp.ClientSession, endpoint: str, headers: dict[str, str], body: bytes, timeout: aiohttp.ClientTimeout) -> ScrapeResponse:
        async with session.post(endpoint, data=body, headers=headers, timeout=timeout) as resp:
            content = await resp.read()
            return ScrapeResponse(
                url=endpoint,
                status=resp.status,
                headers=CIMultiDictProxy(resp.headers.copy()),
                body=content,
                encoding=resp.charset,
            )

    @staticmethod
    def _coerce(params: ScrapeRequest | Mapping[str, Any]) -> ScrapeRequest:
        if isinstance(params, ScrapeRequest):
            return params
        try:
            return ScrapeRequest.model_validate(dict(params))
        except ValidationError as e:
            raise InvalidRequestError(str(e)) from e
