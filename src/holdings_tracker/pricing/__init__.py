"""Price services, caching and time-range sampling."""

from holdings_tracker.pricing.cache import CacheEntry, PriceCache
from holdings_tracker.pricing.coingecko import CoinGeckoPricing
from holdings_tracker.pricing.quotes import QuotePricing, to_troy_oz
from holdings_tracker.pricing.ranges import TIME_RANGES, RangeSpec, clip_days, date_label, resolve_range

__all__ = [
    "TIME_RANGES",
    "CacheEntry",
    "CoinGeckoPricing",
    "PriceCache",
    "QuotePricing",
    "RangeSpec",
    "clip_days",
    "date_label",
    "resolve_range",
    "to_troy_oz",
]
