"""CoinGecko pricing service for spot, contract and historical crypto prices."""

import logging
from datetime import UTC, datetime
from decimal import Decimal

import httpx

from holdings_tracker.core.models import PricePoint
from holdings_tracker.data import get_all_supported_chains, get_coingecko_id, get_coingecko_platform
from holdings_tracker.data.loader import symbol_to_coingecko_id
from holdings_tracker.errors import PriceUnavailableError, ServiceError
from holdings_tracker.net import DEFAULT_TIMEOUT, RetryConfig, ServiceClient

logger = logging.getLogger(__name__)


class CoinGeckoPricing:
    """
    Fetches crypto prices from the CoinGecko API.

    Parameters
    ----------
    api_key : str | None
        Demo API key sent as ``x-cg-demo-api-key`` (optional)
    base_url : str
        API base URL
    timeout : float
        Request timeout in seconds
    retry_config : RetryConfig | None
        Retry policy for rate-limit and server errors
    transport : httpx.BaseTransport | None
        Custom transport (used for testing)

    """

    BASE_URL = "https://api.coingecko.com/api/v3"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        retry_config: RetryConfig | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"accept": "application/json"}
        if api_key:
            headers["x-cg-demo-api-key"] = api_key
        self.client = ServiceClient(
            base_url=base_url,
            timeout=timeout,
            retry_config=retry_config,
            headers=headers,
            transport=transport,
        )

    def resolve_coin_id(self, key: str) -> str:
        """
        Map a chain id or ticker symbol to a CoinGecko coin id.

        Parameters
        ----------
        key : str
            Chain id ('ethereum'), native symbol ('ETH') or coin id

        Returns
        -------
        str
            CoinGecko coin id

        """
        lowered = key.strip().lower()
        if lowered in get_all_supported_chains():
            coin_id = get_coingecko_id(lowered)
            if coin_id:
                return coin_id
        return symbol_to_coingecko_id(lowered)

    def get_prices(self, coin_ids: list[str]) -> dict[str, Decimal]:
        """
        Fetch USD spot prices for several coin ids in one call.

        Parameters
        ----------
        coin_ids : list[str]
            CoinGecko coin ids

        Returns
        -------
        dict[str, Decimal]
            Mapping of coin id to USD price; ids without a price are omitted

        Raises
        ------
        ServiceError
            If the request fails

        """
        if not coin_ids:
            return {}

        data = self.client.get_json(
            "/simple/price",
            params={"ids": ",".join(coin_ids), "vs_currencies": "usd"},
        )

        result = {}
        for coin_id in coin_ids:
            price_info = data.get(coin_id) if isinstance(data, dict) else None
            if price_info and price_info.get("usd") is not None:
                result[coin_id] = Decimal(str(price_info["usd"]))
        return result

    def get_spot_price(self, key: str) -> Decimal:
        """
        Fetch the USD spot price for a chain id, symbol or coin id.

        Raises
        ------
        PriceUnavailableError
            If CoinGecko has no price for the key
        ServiceError
            If the request fails

        """
        coin_id = self.resolve_coin_id(key)
        prices = self.get_prices([coin_id])
        if coin_id not in prices:
            msg = f"No CoinGecko price for {coin_id}"
            raise PriceUnavailableError(msg)
        return prices[coin_id]

    def get_token_price(self, chain: str, contract_address: str) -> Decimal:
        """
        Fetch the USD price of a token by contract address.

        Parameters
        ----------
        chain : str
            Chain id
        contract_address : str
            Token contract address

        Returns
        -------
        Decimal
            USD price, zero when the token is unknown to CoinGecko

        Raises
        ------
        ServiceError
            If the request fails

        """
        platform = get_coingecko_platform(chain)
        if not platform:
            logger.warning("No CoinGecko platform mapping for %s", chain)
            return Decimal("0")

        data = self.client.get_json(
            f"/simple/token_price/{platform}",
            params={"contract_addresses": contract_address, "vs_currencies": "usd"},
        )

        price_info = data.get(contract_address.lower()) if isinstance(data, dict) else None
        if not price_info or price_info.get("usd") is None:
            return Decimal("0")
        return Decimal(str(price_info["usd"]))

    def get_token_price_by_key(self, key: str) -> Decimal:
        """Token price for a ``chain:contract`` cache key."""
        chain, _, contract_address = key.partition(":")
        if not contract_address:
            msg = f"Malformed token price key: {key}"
            raise ValueError(msg)
        return self.get_token_price(chain, contract_address)

    def get_historical_prices(self, coin_id: str, days: int | str) -> list[PricePoint]:
        """
        Fetch a USD price curve.

        Parameters
        ----------
        coin_id : str
            CoinGecko coin id
        days : int | str
            Lookback in days, or 'max'

        Returns
        -------
        list[PricePoint]
            Samples in chronological order

        Raises
        ------
        ServiceError
            If the request fails or the payload has no price list

        """
        data = self.client.get_json(
            f"/coins/{coin_id}/market_chart",
            params={"vs_currency": "usd", "days": str(days)},
        )

        raw_prices = data.get("prices") if isinstance(data, dict) else None
        if not isinstance(raw_prices, list):
            msg = f"CoinGecko market_chart for {coin_id} has no prices"
            raise ServiceError(msg)

        points = []
        for item in raw_prices:
            try:
                timestamp_ms, price = item[0], item[1]
                points.append(
                    PricePoint(
                        timestamp=datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC),
                        price=float(price),
                    )
                )
            except (IndexError, TypeError, ValueError):
                continue

        return sorted(points, key=lambda p: p.timestamp)

    def close(self) -> None:
        """Close HTTP client."""
        self.client.close()

    def __enter__(self) -> "CoinGeckoPricing":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()
