"""HTTP boundary: shared client, timeouts and retry."""

from holdings_tracker.net.client import DEFAULT_TIMEOUT, ServiceClient
from holdings_tracker.net.retry import NO_RETRY, RetryConfig, call_with_retry, is_retryable

__all__ = [
    "DEFAULT_TIMEOUT",
    "NO_RETRY",
    "RetryConfig",
    "ServiceClient",
    "call_with_retry",
    "is_retryable",
]
