"""Base chain adapter with normalization and failure handling."""

import logging
from abc import ABC, abstractmethod
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Any, ClassVar

import httpx

from holdings_tracker.config import Settings
from holdings_tracker.data import get_chain_config
from holdings_tracker.errors import HoldingsTrackerError
from holdings_tracker.net import RetryConfig, ServiceClient

logger = logging.getLogger(__name__)

ZERO_BALANCE = "0.00"

# Failures that degrade a balance to zero rather than propagate
NON_FATAL_ERRORS = (HoldingsTrackerError, KeyError, IndexError, TypeError, ValueError, InvalidOperation)


class BaseChainAdapter(ABC):
    """
    Abstract base class for chain adapters.

    Subclasses implement :meth:`query_native_balance` against one chain's
    explorer or RPC endpoint. :meth:`fetch_native_balance` normalizes the
    result and swallows non-fatal failures, reporting them as ``'0.00'``.

    Attributes
    ----------
    name : str
        Chain identifier (must be set in subclass)
    supports_tokens : bool
        Whether token discovery is available on this chain

    Parameters
    ----------
    settings : Settings | None
        Runtime settings (timeout, API keys)
    retry_config : RetryConfig | None
        Retry policy for upstream calls
    transport : httpx.BaseTransport | None
        Custom transport (used for testing)

    """

    name: ClassVar[str] = ""
    supports_tokens: ClassVar[bool] = False

    def __init__(
        self,
        settings: Settings | None = None,
        retry_config: RetryConfig | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not self.name:
            msg = f"{self.__class__.__name__} must define 'name' attribute"
            raise ValueError(msg)
        self.settings = settings or Settings()
        self.config: dict[str, Any] = get_chain_config(self.name)
        self.client = ServiceClient(
            base_url=self.endpoint(),
            timeout=self.settings.http_timeout,
            retry_config=retry_config,
            transport=transport,
        )

    @abstractmethod
    def endpoint(self) -> str:
        """Base URL of the chain's explorer or RPC service."""
        ...

    @abstractmethod
    def query_native_balance(self, address: str) -> Decimal:
        """
        Query the native balance in whole-token units.

        Must be implemented by subclasses.

        Raises
        ------
        AdapterError
            If the chain answers with an error or an unusable payload
        ServiceError
            If the HTTP call fails

        """
        ...

    @property
    def native_symbol(self) -> str:
        return self.config["native_symbol"]

    @property
    def native_decimals(self) -> int:
        return int(self.config["native_decimals"])

    @property
    def display_decimals(self) -> int:
        return int(self.config.get("display_decimals", 6))

    def fetch_native_balance(self, address: str) -> str:
        """
        Fetch the native balance as a normalized decimal string.

        Parameters
        ----------
        address : str
            Wallet address

        Returns
        -------
        str
            Balance at display precision, or '0.00' if the call failed

        """
        try:
            amount = self.query_native_balance(address)
        except NON_FATAL_ERRORS as e:
            logger.warning("%s balance lookup failed for %s: %s", self.name, address, e)
            return ZERO_BALANCE
        return self.format_amount(amount)

    def from_base_units(self, raw: int | str, decimals: int | None = None) -> Decimal:
        """Convert an integer amount of base units (wei, satoshi, ...) to whole tokens."""
        decimals = self.native_decimals if decimals is None else decimals
        return Decimal(int(raw)) / (Decimal(10) ** decimals)

    def format_amount(self, amount: Decimal, places: int | None = None) -> str:
        """Render an amount at display precision, truncating rather than rounding up."""
        if amount == 0:
            return ZERO_BALANCE
        places = self.display_decimals if places is None else places
        quantum = Decimal(1).scaleb(-places)
        return str(amount.quantize(quantum, rounding=ROUND_DOWN))

    def close(self) -> None:
        """Close HTTP client."""
        self.client.close()

    def __enter__(self) -> "BaseChainAdapter":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()
