"""Equity, commodity and metal quotes from a Yahoo-style chart endpoint."""

import logging
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

import httpx

from holdings_tracker.core.models import PricePoint, WeightUnit
from holdings_tracker.errors import PriceUnavailableError, ServiceError
from holdings_tracker.net import DEFAULT_TIMEOUT, RetryConfig, ServiceClient

logger = logging.getLogger(__name__)

# Metal spot prices are quoted per troy ounce via front-month futures
METAL_SYMBOLS = {
    "gold": "GC=F",
    "xau": "GC=F",
    "silver": "SI=F",
    "xag": "SI=F",
    "platinum": "PL=F",
    "xpt": "PL=F",
    "palladium": "PA=F",
    "xpd": "PA=F",
}

GRAMS_PER_TROY_OZ = Decimal("31.1035")
KG_PER_TROY_OZ = Decimal("0.0311035")


def to_troy_oz(quantity: Decimal, unit: WeightUnit | str | None) -> Decimal:
    """
    Convert a metal weight to troy ounces.

    Parameters
    ----------
    quantity : Decimal
        Weight in ``unit``
    unit : WeightUnit | str | None
        'oz', 'g' or 'kg'; None or unknown units are treated as ounces

    Returns
    -------
    Decimal
        Weight in troy ounces

    """
    if unit is None:
        return quantity
    unit = str(unit).lower()
    if unit == WeightUnit.G:
        return quantity / GRAMS_PER_TROY_OZ
    if unit == WeightUnit.KG:
        return quantity / KG_PER_TROY_OZ
    return quantity


class QuotePricing:
    """
    Fetches spot and historical quotes for equities, commodities and metals.

    Parameters
    ----------
    base_url : str
        Chart API base URL
    timeout : float
        Request timeout in seconds
    retry_config : RetryConfig | None
        Retry policy for rate-limit and server errors
    transport : httpx.BaseTransport | None
        Custom transport (used for testing)

    """

    BASE_URL = "https://query1.finance.yahoo.com"

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        retry_config: RetryConfig | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.client = ServiceClient(
            base_url=base_url,
            timeout=timeout,
            retry_config=retry_config,
            headers={"User-Agent": "Mozilla/5.0 (holdings-tracker)"},
            transport=transport,
        )

    @staticmethod
    def resolve_symbol(symbol: str) -> str:
        """Map metal names to futures symbols; tickers are upper-cased."""
        stripped = symbol.strip()
        return METAL_SYMBOLS.get(stripped.lower(), stripped.upper())

    def get_spot_price(self, symbol: str) -> Decimal:
        """
        Fetch the latest market price for a ticker or metal name.

        Raises
        ------
        PriceUnavailableError
            If the chart metadata carries no price
        ServiceError
            If the request fails

        """
        result = self._chart(self.resolve_symbol(symbol), "1d", "1d")
        meta = result.get("meta") or {}
        price = meta.get("regularMarketPrice") or meta.get("previousClose")
        if not price:
            msg = f"No quote for {symbol}"
            raise PriceUnavailableError(msg)
        return Decimal(str(price))

    def get_historical_prices(self, symbol: str, quote_range: str, interval: str) -> list[PricePoint]:
        """
        Fetch closing prices for a range and interval.

        Parameters
        ----------
        symbol : str
            Ticker or metal name
        quote_range : str
            Range parameter (e.g., '1mo', '1y')
        interval : str
            Sampling interval (e.g., '1d', '1wk')

        Returns
        -------
        list[PricePoint]
            Samples in chronological order, gaps without a close skipped

        """
        result = self._chart(self.resolve_symbol(symbol), quote_range, interval)

        timestamps = result.get("timestamp") or []
        quotes = (result.get("indicators") or {}).get("quote") or [{}]
        closes = quotes[0].get("close") or []

        points = []
        for timestamp, close in zip(timestamps, closes, strict=False):
            if close is None:
                continue
            points.append(PricePoint(timestamp=datetime.fromtimestamp(timestamp, tz=UTC), price=float(close)))

        return sorted(points, key=lambda p: p.timestamp)

    def _chart(self, symbol: str, quote_range: str, interval: str) -> dict[str, Any]:
        data = self.client.get_json(
            f"/v8/finance/chart/{symbol}",
            params={"range": quote_range, "interval": interval},
        )

        chart = data.get("chart") if isinstance(data, dict) else None
        if not chart or chart.get("error") or not chart.get("result"):
            msg = f"Quote chart for {symbol} returned no result"
            raise ServiceError(msg)
        return chart["result"][0]

    def close(self) -> None:
        """Close HTTP client."""
        self.client.close()

    def __enter__(self) -> "QuotePricing":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()
