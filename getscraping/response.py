import codecs
import json
from dataclasses import dataclass, field
from multidict import CIMultiDict, CIMultiDictProxy

SCREENSHOT_LOCATION_HEADER = "SCREENSHOT_LOCATION"
DEFAULT_ENCODING = "utf-8"


def resolve_encoding(name: str | None) -> str:
    if not name:
        return DEFAULT_ENCODING
    try:
        # also rejects non-text codecs such as base64
        b"".decode(name)
    except LookupError:
        return DEFAULT_ENCODING
    return codecs.lookup(name).name


@dataclass
class ScrapeResponse:
    """
    Upstream HTTP response for one attempt, fully buffered.

    Fields:
        url      : The API endpoint that was called.
        status   : HTTP status code returned by the API.
        headers  : Response headers (case-insensitive, repeated keys kept).
        body     : Raw response body. HTML, or JSON when the request used
                   intercept_request with return_json.
        encoding : Charset used by text(). Unknown codec names fall back to
                   utf-8.
        attempts : Attempt number that produced this response (1-based).
    """
    url: str
    status: int
    headers: CIMultiDictProxy = field(default_factory=lambda: CIMultiDictProxy(CIMultiDict()))
    body: bytes = b""
    encoding: str | None = DEFAULT_ENCODING
    attempts: int = 1

    def __post_init__(self):
        self.encoding = resolve_encoding(self.encoding)

    @property
    def ok(self) -> bool:
        return 200 <= self.status <= 299

    def text(self) -> str:
        return self.body.decode(self.encoding, errors="replace")

    def json(self):
        return json.loads(self.body)

    @property
    def cookies(self) -> list[str]:
        """
        Set-Cookie values of the scraped page, in the form expected by
        ScrapeRequest.cookies for a follow-up scrape.
        """
        return [c.split(";", 1)[0].strip() for c in self.headers.getall("Set-Cookie", [])]

    @property
    def screenshot_location(self) -> str | None:
        return self.headers.get(SCREENSHOT_LOCATION_HEADER)
