"""Time-range to sampling lookup shared by every historical series type."""

from datetime import datetime
from typing import NamedTuple


class RangeSpec(NamedTuple):
    """
    Sampling parameters for a range keyword.

    Attributes
    ----------
    key : str
        Range keyword (e.g., '1m')
    days : int | None
        Lookback in days, None for all available history
    quote_range : str
        Range parameter for the quote chart endpoint
    quote_interval : str
        Sampling interval for the quote chart endpoint
    intraday : bool
        Whether samples are finer than one day

    """

    key: str
    days: int | None
    quote_range: str
    quote_interval: str
    intraday: bool


TIME_RANGES: dict[str, RangeSpec] = {
    "1d": RangeSpec("1d", 1, "1d", "5m", True),
    "3d": RangeSpec("3d", 3, "5d", "15m", True),
    "1w": RangeSpec("1w", 7, "5d", "30m", True),
    "1m": RangeSpec("1m", 30, "1mo", "1d", False),
    "3m": RangeSpec("3m", 90, "3mo", "1d", False),
    "6m": RangeSpec("6m", 180, "6mo", "1d", False),
    "1y": RangeSpec("1y", 365, "1y", "1d", False),
    "5y": RangeSpec("5y", 1825, "5y", "1wk", False),
    "10y": RangeSpec("10y", 3650, "10y", "1mo", False),
    "all": RangeSpec("all", None, "max", "1mo", False),
}

DEFAULT_RANGE = "1m"


def resolve_range(key: str | None) -> RangeSpec:
    """Look up a range keyword, falling back to one month for unknown keys."""
    if key is None:
        return TIME_RANGES[DEFAULT_RANGE]
    return TIME_RANGES.get(key.strip().lower(), TIME_RANGES[DEFAULT_RANGE])


def clip_days(window: RangeSpec, max_days: int) -> int:
    """
    Lookback in days clipped to what an upstream service retains.

    Requests beyond the maximum (including 'all') are clipped to it.

    """
    if window.days is None:
        return max_days
    return min(window.days, max_days)


def date_label(timestamp: datetime, window: RangeSpec) -> str:
    """Date label used to align series sampled on the same calendar points."""
    if window.intraday:
        return timestamp.strftime("%Y-%m-%d %H:%M")
    return timestamp.strftime("%Y-%m-%d")
