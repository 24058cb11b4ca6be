import asyncio
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable
import aiohttp
from .exceptions import ExhaustionError, TransportError
from .matching import SelectorMatcher
from .models import RetryPolicy
from .policy import is_successful
from .response import ScrapeResponse

logger = logging.getLogger(__name__)

# Errors that count as a failed attempt rather than a caller bug.
TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError)

Send = Callable[[], Awaitable[ScrapeResponse]]
Sleep = Callable[[float], Awaitable[None]]


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    UNSUCCESSFUL = "unsuccessful"
    TRANSPORT_ERROR = "transport_error"


@dataclass
class AttemptOutcome:
    """
    Result of one physical attempt. Exactly one of response / error is set.

    Fields:
        kind     : SUCCESS, UNSUCCESSFUL (response failed the success
                   criteria) or TRANSPORT_ERROR.
        attempt  : 1-based attempt number.
        response : The buffered response, for SUCCESS and UNSUCCESSFUL.
        error    : The transport exception, for TRANSPORT_ERROR.
    """
    kind: OutcomeKind
    attempt: int
    response: ScrapeResponse | None = None
    error: BaseException | None = None


def attempt_budget(retry_config: RetryPolicy | None) -> int:
    if retry_config is None:
        return 1
    return max(retry_config.num_retries, 1)


class RetryingExecutor:
    """
    Runs one logical scrape as a sequence of attempts.

    - send() performs a single physical request and returns a buffered response
    - Without a retry policy: one attempt, any response is returned as-is
    - With a policy: responses are judged by policy.is_successful
    - Unsuccessful responses are retried, then the last one is returned
    - Transport errors are retried, then raised as TransportError
    - Waits delay_s (+ up to jitter_s) between attempts, never after the last
    """

    def __init__(
        self,
        send: Send,
        retry_config: RetryPolicy | None = None,
        *,
        delay_s: float = 0.2,
        jitter_s: float = 0.0,
        sleep: Sleep = asyncio.sleep,
        matcher: SelectorMatcher | None = None,
    ):
        self.send = send
        self.retry_config = retry_config
        self.delay_s = delay_s
        self.jitter_s = jitter_s
        self.sleep = sleep
        self.matcher = matcher

    async def attempt(self, n: int) -> AttemptOutcome:
        try:
            response = await self.send()
        except TRANSPORT_ERRORS as e:
            return AttemptOutcome(OutcomeKind.TRANSPORT_ERROR, n, error=e)

        response.attempts = n
        if self.retry_config is None or is_successful(response, self.retry_config, self.matcher):
            return AttemptOutcome(OutcomeKind.SUCCESS, n, response=response)
        return AttemptOutcome(OutcomeKind.UNSUCCESSFUL, n, response=response)

    async def run(self, attempts: int | None = None) -> ScrapeResponse:
        remaining = attempt_budget(self.retry_config) if attempts is None else attempts
        n = 0

        while remaining > 0:
            n += 1
            outcome = await self.attempt(n)
            remaining -= 1
            final = remaining == 0

            if outcome.kind is OutcomeKind.SUCCESS:
                logger.debug("Attempt %d succeeded with status %d", n, outcome.response.status)
                return outcome.response

            if outcome.kind is OutcomeKind.UNSUCCESSFUL:
                if final:
                    logger.warning(
                        "Success criteria not met after %d attempt(s), returning last response (status %d)",
                        n, outcome.response.status,
                    )
                    return outcome.response
                logger.warning("Attempt %d unsuccessful (status %d), retrying", n, outcome.response.status)

            elif outcome.kind is OutcomeKind.TRANSPORT_ERROR:
                if final:
                    raise TransportError(
                        f"Request failed after {n} attempt(s): {type(outcome.error).__name__}: {outcome.error}",
                        attempts=n,
                    ) from outcome.error
                logger.warning("Attempt %d failed with %s, retrying", n, type(outcome.error).__name__)

            await self.sleep(self._next_delay())

        raise ExhaustionError("unable to fetch url")

    def _next_delay(self) -> float:
        if self.jitter_s > 0:
            return self.delay_s + random.uniform(0, self.jitter_s)
        return self.delay_s
