"""Historical portfolio value reconstruction."""

import logging
import math

from holdings_tracker.config import Settings
from holdings_tracker.core.models import AssetSeries, SeriesKind, TimePoint
from holdings_tracker.pricing.coingecko import CoinGeckoPricing
from holdings_tracker.pricing.quotes import QuotePricing
from holdings_tracker.pricing.ranges import RangeSpec, clip_days, date_label, resolve_range

logger = logging.getLogger(__name__)


def proportional_index(i: int, n: int, m: int) -> int:
    """
    Map index ``i`` of a length-``n`` series onto a length-``m`` series.

    Uses ``round(i / (n - 1) * (m - 1))`` with halves rounded up. A single
    point maps to index 0.

    """
    if n <= 1 or m <= 1:
        return 0
    return min(m - 1, math.floor(i / (n - 1) * (m - 1) + 0.5))


def series_value(series: AssetSeries, index: int) -> float:
    """Holding value at one sample: quantity times price."""
    return series.quantity * series.points[index].price


class HistoricalSeriesBuilder:
    """
    Merges per-asset price curves into one portfolio timeline.

    When an anchor series exists (explicitly flagged, otherwise the longest
    crypto series), its samples define the timeline and every other series
    is resampled onto it by proportional index. Without an anchor, the
    longest series defines the timeline and the others contribute only at
    samples whose date label matches exactly.

    Parameters
    ----------
    crypto_pricing : CoinGeckoPricing | None
        Historical crypto price service
    quote_pricing : QuotePricing | None
        Historical equity/metal quote service
    settings : Settings | None
        Runtime settings (crypto history limit)

    """

    def __init__(
        self,
        crypto_pricing: CoinGeckoPricing | None = None,
        quote_pricing: QuotePricing | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.crypto_pricing = crypto_pricing
        self.quote_pricing = quote_pricing
        self.settings = settings or Settings()

    def build(self, time_range: str | None, series: list[AssetSeries]) -> list[TimePoint]:
        """
        Merge series onto a common timeline.

        Parameters
        ----------
        time_range : str | None
            Range keyword (e.g., '1m'); controls date label granularity
        series : list[AssetSeries]
            Holdings with their price curves

        Returns
        -------
        list[TimePoint]
            Chronological samples with per-series values and their total

        """
        window = resolve_range(time_range)
        usable = [s for s in series if s.points]
        if not usable:
            return []

        anchor = self._select_anchor(usable)
        if anchor is not None:
            return self._merge_by_index(anchor, usable, window)
        return self._merge_by_label(usable, window)

    def crypto_series(
        self,
        label: str,
        key: str,
        quantity: float,
        time_range: str | None,
        anchor: bool = False,
        series_id: str | None = None,
    ) -> AssetSeries:
        """
        Fetch a crypto value curve.

        Parameters
        ----------
        label : str
            Series label in the merged output
        key : str
            Chain id, native symbol or CoinGecko coin id
        quantity : float
            Current quantity held
        time_range : str | None
            Range keyword; lookback is clipped to ``max_history_days``
        anchor : bool
            Whether this series defines the merged timeline
        series_id : str | None
            Unique holding id, used when labels collide

        Raises
        ------
        ServiceError
            If the historical price request fails

        """
        if self.crypto_pricing is None:
            msg = "No crypto pricing service configured"
            raise RuntimeError(msg)

        window = resolve_range(time_range)
        days = clip_days(window, self.settings.max_history_days)
        coin_id = self.crypto_pricing.resolve_coin_id(key)
        points = self.crypto_pricing.get_historical_prices(coin_id, days)
        logger.debug("Fetched %d %s samples over %d days", len(points), coin_id, days)

        return AssetSeries(
            label=label,
            kind=SeriesKind.CRYPTO,
            quantity=quantity,
            points=points,
            anchor=anchor,
            series_id=series_id,
        )

    def quote_series(
        self,
        label: str,
        symbol: str,
        quantity: float,
        time_range: str | None,
        kind: SeriesKind = SeriesKind.EQUITY,
        series_id: str | None = None,
    ) -> AssetSeries:
        """
        Fetch an equity or metal value curve.

        Metal quantities must already be in troy ounces.

        Raises
        ------
        ServiceError
            If the quote request fails

        """
        if self.quote_pricing is None:
            msg = "No quote pricing service configured"
            raise RuntimeError(msg)

        window = resolve_range(time_range)
        points = self.quote_pricing.get_historical_prices(symbol, window.quote_range, window.quote_interval)
        logger.debug("Fetched %d %s samples (%s/%s)", len(points), symbol, window.quote_range, window.quote_interval)

        return AssetSeries(label=label, kind=kind, quantity=quantity, points=points, series_id=series_id)

    @staticmethod
    def _select_anchor(series: list[AssetSeries]) -> AssetSeries | None:
        for s in series:
            if s.anchor:
                return s
        crypto = [s for s in series if s.kind == SeriesKind.CRYPTO]
        if not crypto:
            return None
        return max(crypto, key=lambda s: len(s.points))

    @staticmethod
    def _display_labels(series: list[AssetSeries]) -> list[str]:
        """One distinct output label per series, in input order."""
        used: set[str] = set()
        labels = []
        for s in series:
            label = s.label
            if label in used:
                base = f"{s.label} ({s.series_id[:8]})" if s.series_id else s.label
                label, n = base, 2
                while label in used:
                    label = f"{base} #{n}"
                    n += 1
            used.add(label)
            labels.append(label)
        return labels

    @classmethod
    def _merge_by_index(cls, anchor: AssetSeries, series: list[AssetSeries], window: RangeSpec) -> list[TimePoint]:
        n = len(anchor.points)
        labels = cls._display_labels(series)
        timeline = []
        for i, point in enumerate(anchor.points):
            values = {}
            for s, label in zip(series, labels):
                j = i if s is anchor else proportional_index(i, n, len(s.points))
                values[label] = round(series_value(s, j), 2)
            timeline.append(
                TimePoint(
                    timestamp=point.timestamp,
                    label=date_label(point.timestamp, window),
                    values=values,
                    total=round(sum(values.values()), 2),
                )
            )
        return timeline

    @classmethod
    def _merge_by_label(cls, series: list[AssetSeries], window: RangeSpec) -> list[TimePoint]:
        base = max(series, key=lambda s: len(s.points))
        labels = cls._display_labels(series)

        # First sample wins when several share a date label
        by_date: list[dict[str, float]] = []
        for s in series:
            values: dict[str, float] = {}
            for p in s.points:
                values.setdefault(date_label(p.timestamp, window), s.quantity * p.price)
            by_date.append(values)

        timeline = []
        seen = set()
        for point in base.points:
            date = date_label(point.timestamp, window)
            if date in seen:
                continue
            seen.add(date)

            values = {}
            for label, samples in zip(labels, by_date):
                value = samples.get(date)
                if value is not None:
                    values[label] = round(value, 2)
            timeline.append(
                TimePoint(
                    timestamp=point.timestamp,
                    label=date,
                    values=values,
                    total=round(sum(values.values()), 2),
                )
            )
        return timeline
