"""Tests for the TTL price cache."""

import threading
from decimal import Decimal

import pytest

from holdings_tracker.errors import PriceUnavailableError, ServiceError
from holdings_tracker.pricing import PriceCache


class CountingFetcher:
    def __init__(self, prices: dict[str, str]) -> None:
        self.prices = prices
        self.calls: list[str] = []
        self.fail = False

    def __call__(self, key: str) -> Decimal:
        self.calls.append(key)
        if self.fail:
            raise ServiceError("upstream down")
        return Decimal(self.prices[key])


def test_hit_within_ttl_calls_upstream_once(clock):
    """Test two lookups inside the TTL issue one upstream call."""
    fetcher = CountingFetcher({"btc": "50000"})
    cache = PriceCache(fetcher, ttl=300, clock=clock)

    assert cache.get_spot("btc") == Decimal("50000")
    clock.advance(299)
    assert cache.get_spot("btc") == Decimal("50000")

    assert fetcher.calls == ["btc"]


def test_keys_are_case_insensitive(clock):
    """Test key normalization."""
    fetcher = CountingFetcher({"btc": "50000"})
    cache = PriceCache(fetcher, clock=clock)

    cache.get_spot("BTC")
    cache.get_spot(" btc ")

    assert fetcher.calls == ["btc"]
    assert cache.get_entry("Btc").price == Decimal("50000")


def test_expired_entry_refetches(clock):
    """Test expiry triggers a new upstream call and overwrite."""
    fetcher = CountingFetcher({"eth": "2000"})
    cache = PriceCache(fetcher, ttl=300, clock=clock)

    cache.get_spot("eth")
    fetcher.prices["eth"] = "2100"
    clock.advance(300)

    assert cache.get_spot("eth") == Decimal("2100")
    assert len(fetcher.calls) == 2


def test_stale_fallback_on_failure(clock):
    """Test a failed refresh past TTL returns the stale price."""
    fetcher = CountingFetcher({"btc": "50000"})
    cache = PriceCache(fetcher, ttl=300, clock=clock)

    cache.get_spot("btc")
    clock.advance(6 * 60)
    fetcher.fail = True

    assert cache.get_spot("btc") == Decimal("50000")
    # Stale entry is kept, not evicted
    assert cache.get_entry("btc") is not None


def test_failure_without_history_returns_zero(clock):
    """Test zero is returned when nothing was ever cached."""
    fetcher = CountingFetcher({})
    fetcher.fail = True
    cache = PriceCache(fetcher, clock=clock)

    assert cache.get_spot("btc") == Decimal("0")
    with pytest.raises(PriceUnavailableError):
        cache.require_spot("btc")


def test_zero_answer_is_cached_as_no_data(clock):
    """Test an unknown-token answer is remembered for the TTL."""
    fetcher = CountingFetcher({"ethereum:0xjunk": "0"})
    cache = PriceCache(fetcher, ttl=300, clock=clock)

    assert cache.get_spot("ethereum:0xjunk") == Decimal("0")
    clock.advance(10)
    assert cache.get_spot("ethereum:0xjunk") == Decimal("0")
    with pytest.raises(PriceUnavailableError):
        cache.require_spot("ethereum:0xjunk")

    assert fetcher.calls == ["ethereum:0xjunk"]

    fetcher.prices["ethereum:0xjunk"] = "0.5"
    clock.advance(300)
    assert cache.get_spot("ethereum:0xjunk") == Decimal("0.5")
    assert len(fetcher.calls) == 2


def test_failure_after_zero_answer_returns_zero(clock):
    """Test a cached zero is never served as a stale price."""
    fetcher = CountingFetcher({"junk": "0"})
    cache = PriceCache(fetcher, ttl=300, clock=clock)

    cache.get_spot("junk")
    clock.advance(300)
    fetcher.fail = True

    assert cache.get_spot("junk") == Decimal("0")


def test_concurrent_lookups_share_one_fetch(clock):
    """Test concurrent misses on one key issue a single upstream call."""
    gate = threading.Event()
    calls = []

    def slow_fetch(key: str) -> Decimal:
        calls.append(key)
        gate.wait(timeout=5)
        return Decimal("1")

    cache = PriceCache(slow_fetch, clock=clock)
    results = []
    threads = [threading.Thread(target=lambda: results.append(cache.get_spot("usdc"))) for _ in range(5)]
    for thread in threads:
        thread.start()
    gate.set()
    for thread in threads:
        thread.join(timeout=5)

    assert calls == ["usdc"]
    assert results == [Decimal("1")] * 5


def test_clear(clock):
    """Test clearing drops every entry."""
    cache = PriceCache(CountingFetcher({"a": "1"}), clock=clock)
    cache.get_spot("a")
    cache.clear()

    assert len(cache) == 0
