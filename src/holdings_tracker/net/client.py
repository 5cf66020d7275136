"""Shared httpx client wrapper for upstream JSON services."""

import logging
from typing import Any

import httpx

from holdings_tracker.errors import ServiceError
from holdings_tracker.net.retry import RetryConfig, call_with_retry, is_retryable

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class ServiceClient:
    """
    JSON-over-HTTP client with a bounded timeout and retry policy.

    Every request carries the configured timeout; a timed-out call surfaces
    as :class:`ServiceError` like any other failure.

    Parameters
    ----------
    base_url : str
        Base URL prepended to relative paths
    timeout : float
        Per-request timeout in seconds
    retry_config : RetryConfig | None
        Retry policy for transport errors, 429 and 5xx
    headers : dict[str, str] | None
        Default headers
    transport : httpx.BaseTransport | None
        Custom transport (used for testing)

    """

    def __init__(
        self,
        base_url: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        retry_config: RetryConfig | None = None,
        headers: dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.retry_config = retry_config or RetryConfig()
        self.client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """
        GET ``url`` and decode the JSON body.

        Raises
        ------
        ServiceError
            On timeout, transport error, non-2xx status or invalid JSON

        """
        return self._request("GET", url, params=params)

    def post_json(self, url: str, payload: Any) -> Any:
        """POST a JSON payload and decode the JSON body."""
        return self._request("POST", url, json=payload)

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        def send() -> httpx.Response:
            response = self.client.request(method, url, **kwargs)
            response.raise_for_status()
            return response

        try:
            response = call_with_retry(self.retry_config, is_retryable, send)
        except httpx.TimeoutException as e:
            msg = f"Request timeout for {method} {url}: {e}"
            raise ServiceError(msg) from e
        except httpx.HTTPStatusError as e:
            msg = f"HTTP error {e.response.status_code} for {method} {url}"
            raise ServiceError(msg) from e
        except httpx.HTTPError as e:
            msg = f"HTTP request failed for {method} {url}: {e}"
            raise ServiceError(msg) from e

        try:
            return response.json()
        except ValueError as e:
            msg = f"Invalid JSON from {method} {url}"
            raise ServiceError(msg) from e

    def close(self) -> None:
        """Close HTTP client."""
        self.client.close()

    def __enter__(self) -> "ServiceClient":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()
