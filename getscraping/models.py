from enum import Enum
from typing import Literal
from urllib.parse import urlparse
from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Params(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class InterceptRequest(_Params):
    """
    Return the response of a request the page makes while loading, instead
    of the page itself.

    e.g. if https://example.com calls https://example.com/api/some_endpoint
    on load:
        InterceptRequest(url_regex=r"/api/some_endpoint", return_json=True)

    If the regex matches several requests the first one is returned unless
    request_number says otherwise (1-based).
    """
    url_regex: str
    request_number: int = Field(default=1, ge=1)
    return_json: bool = False


class ActionType(str, Enum):
    CLICK = "click"
    HOVER = "hover"
    WAIT_FOR_SELECTOR = "wait_for_selector"
    WAIT_MILLIS = "wait_millis"
    SCROLL = "scroll"
    EXECUTE_JS = "execute_js"


class BrowserAction(_Params):
    """One step run in the browser after the page loads, in list order."""
    type: ActionType
    selector: str | None = None
    script: str | None = None
    wait_millis: int | None = Field(default=None, ge=0)


class RenderingOptions(_Params):
    """
    Routes the scrape through a browser on the service side.

    Everything here is executed upstream; the client only serializes it.
    screenshot: the S3 location comes back in the SCREENSHOT_LOCATION header.
    """
    render_js: bool = True
    screenshot: bool | None = None
    wait_millis: int | None = Field(default=None, ge=0)
    wait_for_request: str | None = None
    wait_for_selector: str | None = None
    intercept_request: InterceptRequest | None = None
    js_actions: list[BrowserAction] | None = None


class RetryPolicy(_Params):
    """
    When and how to retry a scrape.

    num_retries          : attempt budget, at least one attempt is always made.
    success_status_codes : statuses that count as success (default 200-302).
    success_selector     : CSS or XPath selector that must match the body.
                           If both are set, both must pass.
    """
    num_retries: int = Field(default=0, ge=0)
    success_status_codes: list[int] | None = None
    success_selector: str | None = None


class ScrapeRequest(_Params):
    """
    One scrape request as sent to the GetScraping API.

    Proxy selectors (use_isp_proxy, use_residential_proxy, use_mobile_proxy,
    use_own_proxy, use_external_proxy) are passed through as-is; the service
    decides which one wins if several are set.
    """
    url: str
    method: Literal["GET", "POST"] = "GET"
    body: str | None = None
    cookies: list[str] | None = None
    headers: dict[str, str] | None = None
    omit_default_headers: bool = False

    use_isp_proxy: bool | None = None
    use_residential_proxy: bool | None = None
    use_mobile_proxy: bool | None = None
    use_own_proxy: str | None = None
    use_external_proxy: bool | None = None

    js_rendering_options: RenderingOptions | None = None
    retry_config: RetryPolicy | None = None
    timeout_millis: int | None = Field(default=None, gt=0)

    @field_validator("url")
    @classmethod
    def _absolute_url(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("url must not be empty")
        parsed = urlparse(v)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError("url must be absolute and include http:// or https://")
        return v

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, v):
        return v.upper() if isinstance(v, str) else v

    @property
    def renders_js(self) -> bool:
        opts = self.js_rendering_options
        return opts is not None and opts.render_js

    def to_payload(self) -> dict:
        """JSON-ready body for the API, unset fields left out."""
        return self.model_dump(mode="json", exclude_none=True)


# Names used by the hosted API documentation.
GetScrapingParams = ScrapeRequest
JavascriptRenderingOptions = RenderingOptions
RetryConfig = RetryPolicy

SCRAPE_PATH = "/scrape"
SCRAPE_WITH_JS_PATH = "/scrape_with_js"


def resolve_endpoint(request: ScrapeRequest, api_url: str) -> str:
    base = api_url.rstrip("/")
    if request.renders_js:
        return base + SCRAPE_WITH_JS_PATH
    return base + SCRAPE_PATH
