"""
Policy module: decides whether a scrape response satisfies the caller's
success criteria.

The logic is:
- status check against success_status_codes, or 200-302 when none are given
- selector check only when success_selector is non-empty
- when both are configured, both must pass
"""

from .matching import SelectorMatcher, SoupSelectorMatcher
from .models import RetryPolicy
from .response import ScrapeResponse

DEFAULT_SUCCESS_STATUS_CODES = frozenset(range(200, 303))

_DEFAULT_MATCHER = SoupSelectorMatcher()


def status_ok(status: int, retry_config: RetryPolicy) -> bool:
    if retry_config.success_status_codes:
        return status in retry_config.success_status_codes
    return status in DEFAULT_SUCCESS_STATUS_CODES


def selector_ok(response: ScrapeResponse, retry_config: RetryPolicy, matcher: SelectorMatcher | None = None) -> bool:
    selector = retry_config.success_selector
    if not selector:
        return True
    m = matcher or _DEFAULT_MATCHER
    return m.find_first_match(response.text(), selector)


def is_successful(response: ScrapeResponse, retry_config: RetryPolicy, matcher: SelectorMatcher | None = None) -> bool:
    if not status_ok(response.status, retry_config):
        return False

    # Body is only parsed once the status already passed
    return selector_ok(response, retry_config, matcher)
