import asyncio
import logging

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .errors import NON_RETRYABLE

logger = logging.getLogger(__name__)


async def retry_with_backoff(fn, max_retries=3, initial_delay=1.0, sleep=asyncio.sleep):
    """
    Await ``fn()`` until it succeeds or ``max_retries`` attempts have failed.
    ``fn`` may be any callable returning an awaitable, e.g. a lambda.

    The wait before retry ``n`` is ``initial_delay * 2 ** (n - 1)`` seconds,
    with no jitter and no ceiling. The last error is re-raised unchanged.
    Reverts and oversized log queries are raised on the first attempt.
    """
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(max(1, max_retries)),
        wait=wait_exponential(multiplier=initial_delay),
        retry=retry_if_not_exception_type(NON_RETRYABLE),
        sleep=sleep,
        reraise=True,
        before_sleep=before_sleep_log(logger, logging.DEBUG),
    ):
        with attempt:
            return await fn()


class RequestExecutor:
    """Binds the retry budget from a config so strategies can just ``await call(fn)``."""

    def __init__(self, max_retries=3, initial_delay=1.0, sleep=asyncio.sleep):
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self._sleep = sleep

    @classmethod
    def from_config(cls, config, sleep=asyncio.sleep):
        return cls(config.max_retries, config.initial_backoff, sleep=sleep)

    async def __call__(self, fn):
        return await retry_with_backoff(
            fn,
            max_retries=self.max_retries,
            initial_delay=self.initial_delay,
            sleep=self._sleep,
        )
