"""Bounded exponential-backoff retry for source fetches."""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, TypeVar

from .providers.base import RateLimited, TransportError, UpstreamError, UpstreamStatusError


logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryHook = Callable[[int, UpstreamError, float], None]


class ExhaustedRetries(UpstreamError):
    """Raised when every attempt failed with a retryable error."""

    def __init__(self, last_error: UpstreamError, attempts: int) -> None:
        super().__init__(f"gave up after {attempts} attempts: {last_error}")
        self.last_error = last_error
        self.attempts = attempts

    @property
    def rate_limited(self) -> bool:
        return isinstance(self.last_error, RateLimited)


def is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, TransportError):
        return True
    if isinstance(exc, UpstreamStatusError):
        return exc.code == 429 or exc.code >= 500
    return False


class RetryPolicy:
    """Retry a call up to ``max_retries`` times.

    The delay before retry ``n`` (counting from zero) is
    ``2 ** n * base_delay``, so the defaults wait 1, 2 and 4 seconds across
    four attempts in total. Errors that are not retryable, and anything that
    is not an :class:`UpstreamError`, are raised immediately.
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        sleep: Callable[[float], Any] = time.sleep,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must not be negative")
        if base_delay < 0:
            raise ValueError("base_delay must not be negative")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, retry: int) -> float:
        return (2 ** retry) * self.base_delay

    def call(
        self,
        func: Callable[..., T],
        *args: Any,
        context: str = "",
        on_retry: Optional[RetryHook] = None,
        **kwargs: Any,
    ) -> T:
        label = context or getattr(func, "__name__", "call")
        attempt = 0
        while True:
            attempt += 1
            try:
                return func(*args, **kwargs)
            except UpstreamError as exc:
                if not is_retryable(exc):
                    logger.error("%s failed on attempt %s (not retryable): %s", label, attempt, exc)
                    raise
                if attempt >= self.max_attempts:
                    logger.error("%s failed after %s attempts: %s", label, attempt, exc)
                    raise ExhaustedRetries(exc, attempt) from exc
                delay = self.delay_for(attempt - 1)
                if isinstance(exc, RateLimited):
                    logger.warning("%s rate limited on attempt %s, retrying in %.1fs", label, attempt, delay)
                else:
                    logger.warning("%s failed on attempt %s (%s), retrying in %.1fs", label, attempt, exc, delay)
                if on_retry is not None:
                    on_retry(attempt, exc, delay)
                self._sleep(delay)


__all__ = ["ExhaustedRetries", "RetryPolicy", "is_retryable"]
