import logging

from .client import GetScrapingClient
from .exceptions import (
    ConfigurationError,
    ExhaustionError,
    GetScrapingError,
    InvalidRequestError,
    TransportError,
)
from .models import (
    ActionType,
    BrowserAction,
    GetScrapingParams,
    InterceptRequest,
    JavascriptRenderingOptions,
    RenderingOptions,
    RetryConfig,
    RetryPolicy,
    ScrapeRequest,
    resolve_endpoint,
)
from .response import ScrapeResponse
from .settings import ClientConfig, load_client_config

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "ActionType",
    "BrowserAction",
    "ClientConfig",
    "ConfigurationError",
    "ExhaustionError",
    "GetScrapingClient",
    "GetScrapingError",
    "GetScrapingParams",
    "InterceptRequest",
    "InvalidRequestError",
    "JavascriptRenderingOptions",
    "RenderingOptions",
    "RetryConfig",
    "RetryPolicy",
    "ScrapeRequest",
    "ScrapeResponse",
    "TransportError",
    "load_client_config",
    "resolve_endpoint",
]
