"""Retry logic with exponential backoff for upstream HTTP calls."""

import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar

import httpx

T = TypeVar("T")

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class RetryConfig:
    """
    Backoff policy for one upstream service.

    Parameters
    ----------
    max_retries : int
        Extra attempts after the first call; 0 disables retrying
    base_delay : float
        Seconds to wait after the first failure
    max_delay : float
        Upper bound on any single wait
    exponential_base : float
        Growth factor applied per attempt

    """

    def __init__(
        self,
        max_retries: int = 2,
        base_delay: float = 0.5,
        max_delay: float = 4.0,
        exponential_base: float = 2.0,
    ) -> None:
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base

    def get_delay(self, attempt: int) -> float:
        """Seconds to sleep after failed attempt ``attempt`` (0-indexed), capped at ``max_delay``."""
        delay = self.base_delay * (self.exponential_base**attempt)
        return min(delay, self.max_delay)


NO_RETRY = RetryConfig(max_retries=0, base_delay=0.0)


def is_retryable(exc: Exception) -> bool:
    """
    Whether an httpx failure is worth retrying.

    Transport errors (timeouts, connection resets), rate limiting and server
    errors are retried; other HTTP status errors are not.

    """
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    return isinstance(exc, httpx.TransportError)


def call_with_retry(
    config: RetryConfig,
    retry_on: Callable[[Exception], bool],
    func: Callable[..., T],
    *args: Any,
    **kwargs: Any,
) -> T:
    """Invoke ``func`` and retry failures accepted by ``retry_on``."""
    last_exception = None

    for attempt in range(config.max_retries + 1):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            last_exception = e

            # Don't retry on last attempt or on non-retryable failures
            if attempt == config.max_retries or not retry_on(e):
                break

            delay = config.get_delay(attempt)
            logger.debug(
                "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                getattr(func, "__name__", "call"),
                attempt + 1,
                config.max_retries + 1,
                delay,
                e,
            )
            time.sleep(delay)

    raise last_exception  # type: ignore
