"""Point-in-time and historical valuation of wallets and manual positions."""

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation

from holdings_tracker.core.history import HistoricalSeriesBuilder
from holdings_tracker.core.models import (
    ZERO,
    AssetClass,
    AssetSeries,
    HoldingValuation,
    ManualPosition,
    NormalizedBalance,
    PortfolioValuation,
    SeriesKind,
    TimePoint,
    Wallet,
)
from holdings_tracker.errors import HoldingsTrackerError
from holdings_tracker.pricing.cache import PriceCache
from holdings_tracker.pricing.quotes import to_troy_oz

logger = logging.getLogger(__name__)

PCT_QUANTUM = Decimal("0.01")

QUOTED_CLASSES = (AssetClass.EQUITY, AssetClass.COMMODITY)

SERIES_KINDS = {
    AssetClass.CRYPTO: SeriesKind.CRYPTO,
    AssetClass.EQUITY: SeriesKind.EQUITY,
    AssetClass.COMMODITY: SeriesKind.EQUITY,
    AssetClass.METAL: SeriesKind.METAL,
}


class ValuationEngine:
    """
    Combines wallet balances and manual positions into portfolio totals.

    Wallet values come straight from refreshed balances. Manual positions
    are priced from the caches (quotes for equities, commodities and metals,
    spot for crypto); a position without a live price is valued at its cost
    basis. Tokenized positions have no price source and always use cost.

    Parameters
    ----------
    spot_prices : PriceCache
        Crypto spot prices keyed by chain id, symbol or coin id
    quote_prices : PriceCache
        Equity, commodity and metal quotes keyed by ticker or metal name
    history_builder : HistoricalSeriesBuilder | None
        Used by :meth:`history`

    """

    def __init__(
        self,
        spot_prices: PriceCache,
        quote_prices: PriceCache,
        history_builder: HistoricalSeriesBuilder | None = None,
    ) -> None:
        self.spot_prices = spot_prices
        self.quote_prices = quote_prices
        self.history_builder = history_builder

    def value(
        self,
        balances: Mapping[str, NormalizedBalance],
        positions: Iterable[ManualPosition] = (),
        wallets: Iterable[Wallet] = (),
    ) -> PortfolioValuation:
        """
        Value the whole portfolio.

        Parameters
        ----------
        balances : Mapping[str, NormalizedBalance]
            Refreshed wallet balances keyed by address
        positions : Iterable[ManualPosition]
            Manual positions
        wallets : Iterable[Wallet]
            Wallet records, used only for display names

        Returns
        -------
        PortfolioValuation
            Totals, per-holding values and breakdowns by chain and asset class

        """
        names = {(w.address, w.chain.lower()): w.name for w in wallets}
        summary = PortfolioValuation()

        for balance in balances.values():
            holding = self.value_balance(balance, names.get((balance.address, balance.chain)))
            summary.holdings.append(holding)
            summary.wallets_usd_value += holding.current_value
            summary.by_chain[balance.chain] = summary.by_chain.get(balance.chain, ZERO) + holding.current_value

        for position in positions:
            holding = self.value_position(position)
            summary.holdings.append(holding)
            summary.positions_usd_value += holding.current_value
            if holding.pnl is not None:
                summary.total_pnl += holding.pnl

        for holding in summary.holdings:
            key = str(holding.asset_class)
            summary.by_asset_class[key] = summary.by_asset_class.get(key, ZERO) + holding.current_value

        summary.total_usd_value = summary.wallets_usd_value + summary.positions_usd_value
        return summary

    def value_balance(self, balance: NormalizedBalance, name: str | None = None) -> HoldingValuation:
        """Wallet holding valued at native plus token USD values."""
        try:
            quantity = Decimal(balance.native_balance)
        except InvalidOperation:
            quantity = ZERO

        return HoldingValuation(
            source="wallet",
            label=name or balance.address,
            asset_class=AssetClass.CRYPTO,
            chain=balance.chain,
            quantity=quantity,
            current_price=balance.native_price if balance.native_price > 0 else None,
            current_value=balance.total_usd_value,
            priced=balance.native_price > 0 or quantity == 0,
        )

    def value_position(self, position: ManualPosition) -> HoldingValuation:
        """
        Value one manual position and its P&L.

        P&L is ``current_value - quantity * cost_basis``; the percentage is
        only given when that cost value is nonzero.

        """
        cost_value = position.quantity * position.cost_basis
        price, priced_quantity = self.resolve_price(position)

        if price is None:
            current_value = cost_value
        else:
            current_value = priced_quantity * price

        pnl = current_value - cost_value
        pnl_pct = None
        if cost_value != 0:
            pnl_pct = (pnl / cost_value * 100).quantize(PCT_QUANTUM)

        return HoldingValuation(
            source="position",
            label=position.name,
            asset_class=position.asset_class,
            quantity=position.quantity,
            current_price=price,
            current_value=current_value,
            cost_value=cost_value,
            pnl=pnl,
            pnl_pct=pnl_pct,
            priced=price is not None,
        )

    def resolve_price(self, position: ManualPosition) -> tuple[Decimal | None, Decimal]:
        """
        Live unit price for a position and the quantity it applies to.

        Metal prices are per troy ounce, so the quantity is converted from the
        position's weight unit. Returns ``(None, quantity)`` when no live
        price is available.

        """
        key = position.symbol or position.name
        quantity = position.quantity

        if position.asset_class == AssetClass.TOKENIZED or not key:
            return None, quantity

        if position.asset_class == AssetClass.METAL:
            price = self.quote_prices.get_spot(key)
            quantity = to_troy_oz(quantity, position.weight_unit)
        elif position.asset_class in QUOTED_CLASSES:
            price = self.quote_prices.get_spot(key)
        else:
            price = self.spot_prices.get_spot(key)

        # Zero means no data
        if price <= 0:
            logger.info("No live price for %s (%s); using cost basis", position.name, key)
            return None, position.quantity
        return price, quantity

    def history(
        self,
        time_range: str | None,
        balances: Mapping[str, NormalizedBalance],
        positions: Iterable[ManualPosition] = (),
    ) -> list[TimePoint]:
        """
        Reconstruct portfolio value over a time range.

        Each holding is valued at its current quantity times historical
        price. Holdings whose history cannot be fetched are left out.

        """
        if self.history_builder is None:
            msg = "No history builder configured"
            raise RuntimeError(msg)

        builder = self.history_builder
        series: list[AssetSeries] = []

        for balance in balances.values():
            try:
                quantity = float(balance.native_balance)
            except ValueError:
                continue
            if quantity <= 0:
                continue
            label = f"{balance.native_symbol} ({balance.address[:8]})"
            series_id = f"{balance.chain}:{balance.address}"
            fetched = self._safe_series(
                builder.crypto_series, label, balance.chain, quantity, time_range, series_id=series_id
            )
            series.append(fetched)

        for position in positions:
            kind = SERIES_KINDS.get(position.asset_class)
            key = position.symbol or position.name
            if kind is None or not key:
                continue

            quantity = position.quantity
            if kind == SeriesKind.METAL:
                quantity = to_troy_oz(quantity, position.weight_unit)

            if kind == SeriesKind.CRYPTO:
                fetch, extra = builder.crypto_series, {}
            else:
                fetch, extra = builder.quote_series, {"kind": kind}
            fetched = self._safe_series(
                fetch, position.name, key, float(quantity), time_range, series_id=position.id, **extra
            )
            series.append(fetched)

        return builder.build(time_range, [s for s in series if s is not None])

    @staticmethod
    def _safe_series(fetch, label: str, key: str, quantity: float, time_range: str | None, **kwargs):
        try:
            return fetch(label, key, quantity, time_range, **kwargs)
        except HoldingsTrackerError as e:
            logger.warning("History unavailable for %s: %s", label, e)
            return None
