"""Exceptions raised by the GetScraping client."""


class GetScrapingError(Exception):
    """Base exception for client errors."""
    pass


class ConfigurationError(GetScrapingError):
    """Client was constructed without a usable api key or base url."""
    pass


class InvalidRequestError(GetScrapingError, ValueError):
    """Scrape parameters failed validation. Raised before any network call."""
    pass


class TransportError(GetScrapingError):
    """
    Every attempt failed at the transport level (connection, DNS, timeout).

    The last underlying error is available as ``__cause__``.
    """

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


class ExhaustionError(GetScrapingError):
    """The retry loop could not make a single attempt."""
    pass
