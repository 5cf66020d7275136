"""Tests for portfolio valuation."""

from decimal import Decimal

import pytest

from holdings_tracker.core.history import HistoricalSeriesBuilder
from holdings_tracker.core.models import AssetClass, ManualPosition, NormalizedBalance, PricePoint, Wallet
from holdings_tracker.core.valuation import ValuationEngine
from holdings_tracker.errors import PriceUnavailableError, ServiceError
from holdings_tracker.pricing import PriceCache

from test_history import points


def cache(prices, clock):
    def fetch(key):
        if key not in prices:
            raise PriceUnavailableError(key)
        return Decimal(prices[key])

    return PriceCache(fetch, clock=clock)


def position(asset_class, name, quantity, cost, symbol=None, weight_unit=None):
    return ManualPosition(
        id=name,
        user_id="u1",
        asset_class=asset_class,
        name=name,
        symbol=symbol,
        quantity=Decimal(quantity),
        cost_basis=Decimal(cost),
        weight_unit=weight_unit,
    )


@pytest.fixture
def engine(clock):
    spot = cache({"bitcoin": "50000"}, clock)
    quotes = cache({"aapl": "150", "gold": "2000"}, clock)
    return ValuationEngine(spot, quotes)


def test_equity_pnl(engine):
    """Test live-priced positions and their P&L."""
    holding = engine.value_position(position(AssetClass.EQUITY, "Apple", "10", "100", symbol="AAPL"))

    assert holding.current_value == Decimal("1500")
    assert holding.pnl == Decimal("500")
    assert holding.pnl_pct == Decimal("50.00")
    assert holding.priced is True


def test_metal_priced_per_troy_ounce(engine):
    """Test metal weights are converted before pricing."""
    gold = position(AssetClass.METAL, "Gold bar", "31.1035", "60", symbol="gold", weight_unit="g")
    holding = engine.value_position(gold)

    assert holding.current_value == Decimal("2000")
    assert holding.cost_value == Decimal("1866.2100")
    assert holding.pnl == Decimal("133.7900")


def test_crypto_position_uses_spot(engine):
    """Test crypto positions are priced from the spot cache."""
    holding = engine.value_position(position(AssetClass.CRYPTO, "Cold BTC", "0.1", "20000", symbol="bitcoin"))

    assert holding.current_value == Decimal("5000.0")
    assert holding.pnl == Decimal("3000.0")


def test_unpriced_position_uses_cost_basis(engine):
    """Test missing prices fall back to cost basis."""
    holding = engine.value_position(position(AssetClass.EQUITY, "Private Co", "5", "40", symbol="PRIV"))

    assert holding.current_value == Decimal("200")
    assert holding.current_price is None
    assert holding.priced is False
    assert holding.pnl == Decimal("0")


def test_tokenized_position_has_no_live_price(engine):
    """Test tokenized placeholders are always valued at cost."""
    holding = engine.value_position(position(AssetClass.TOKENIZED, "Tokenized RE", "2", "50"))

    assert holding.current_value == Decimal("100")
    assert holding.priced is False


def test_zero_cost_has_no_percentage(engine):
    """Test P&L percentage is omitted without a cost basis."""
    holding = engine.value_position(position(AssetClass.EQUITY, "Gifted", "1", "0", symbol="AAPL"))

    assert holding.pnl == Decimal("150")
    assert holding.pnl_pct is None


def test_portfolio_totals(engine):
    """Test totals combine wallets and positions."""
    balances = {
        "bc1qa": NormalizedBalance(
            chain="bitcoin",
            address="bc1qa",
            native_symbol="BTC",
            native_balance="1.00000000",
            native_price=Decimal("50000"),
            native_usd_value=Decimal("50000"),
        ),
        "0xabc": NormalizedBalance(chain="ethereum", address="0xabc", native_symbol="ETH", native_balance="0.00"),
    }
    wallets = [Wallet(id="w1", user_id="u1", name="Cold", chain="bitcoin", address="bc1qa")]
    positions = [
        position(AssetClass.EQUITY, "Apple", "10", "100", symbol="AAPL"),
        position(AssetClass.TOKENIZED, "Tokenized RE", "2", "50"),
    ]

    summary = engine.value(balances, positions, wallets)

    assert summary.wallets_usd_value == Decimal("50000")
    assert summary.positions_usd_value == Decimal("1600")
    assert summary.total_usd_value == Decimal("51600")
    assert summary.total_pnl == Decimal("500")
    assert summary.by_chain == {"bitcoin": Decimal("50000"), "ethereum": Decimal("0")}
    assert summary.by_asset_class["crypto"] == Decimal("50000")
    assert summary.by_asset_class["equity"] == Decimal("1500")
    assert summary.by_asset_class["tokenized"] == Decimal("100")
    assert summary.holdings[0].label == "Cold"


class FakeCrypto:
    def resolve_coin_id(self, key):
        return key

    def get_historical_prices(self, coin_id, days):
        if coin_id == "solana":
            raise ServiceError("rate limited")
        return points([100.0, 110.0, 120.0])


class FakeQuotes:
    def get_historical_prices(self, symbol, quote_range, interval):
        return points([10.0, 20.0])


def test_history_combines_wallets_and_positions(engine):
    """Test history series for wallets and positions, skipping failures."""
    engine.history_builder = HistoricalSeriesBuilder(FakeCrypto(), FakeQuotes())
    balances = {
        "bc1qa": NormalizedBalance(chain="bitcoin", address="bc1qa", native_symbol="BTC", native_balance="2"),
        "sol": NormalizedBalance(chain="solana", address="sol", native_symbol="SOL", native_balance="5"),
        "empty": NormalizedBalance(chain="bitcoin", address="empty", native_symbol="BTC", native_balance="0.00"),
    }
    positions = [position(AssetClass.EQUITY, "Apple", "3", "100", symbol="AAPL")]

    timeline = engine.history("1m", balances, positions)

    assert len(timeline) == 3
    assert timeline[0].values == {"BTC (bc1qa)": 200.0, "Apple": 30.0}
    assert timeline[-1].total == 240.0 + 60.0


def test_history_counts_positions_with_the_same_name(engine):
    """Test two positions named alike both reach the history total."""
    engine.history_builder = HistoricalSeriesBuilder(FakeCrypto(), FakeQuotes())
    first = position(AssetClass.EQUITY, "Gold", "1", "0", symbol="GLD")
    second = first.model_copy(update={"id": "gold-2", "quantity": Decimal("2")})

    timeline = engine.history("1m", {}, [first, second])

    assert [p.total for p in timeline] == [30.0, 60.0]
    assert timeline[0].values == {"Gold": 10.0, "Gold (gold-2)": 20.0}
