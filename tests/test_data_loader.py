"""Tests for chain metadata loading."""

import pytest

from holdings_tracker.data import (
    get_all_supported_chains,
    get_chain_config,
    get_coingecko_id,
    get_coingecko_platform,
    get_evm_chains,
    get_native_symbol,
    get_token_capable_chains,
)
from holdings_tracker.data.loader import symbol_to_coingecko_id


def test_get_all_supported_chains():
    """Test getting all supported chain ids."""
    chains = get_all_supported_chains()

    assert isinstance(chains, list)
    for chain in ["ethereum", "polygon", "binance", "avalanche", "cronos", "bitcoin", "solana", "ripple", "cardano"]:
        assert chain in chains


def test_get_evm_chains():
    """Test that exactly the five EVM chains are flagged."""
    assert sorted(get_evm_chains()) == ["avalanche", "binance", "cronos", "ethereum", "polygon"]


def test_token_capable_chains():
    """Test that token discovery is limited to explorer-backed EVM chains."""
    capable = get_token_capable_chains()

    assert "ethereum" in capable
    assert "polygon" in capable
    assert "cronos" not in capable
    assert "bitcoin" not in capable


def test_get_chain_config():
    """Test getting chain configuration."""
    config = get_chain_config("Ethereum")

    assert config["native_symbol"] == "ETH"
    assert config["native_decimals"] == 18
    assert config["explorer"]["chain_id"] == 1


def test_unknown_chain_raises():
    """Test that unknown chains raise KeyError."""
    with pytest.raises(KeyError):
        get_chain_config("dogecoin")


def test_native_symbol_fallback():
    """Test native symbol lookup and fallback for unknown chains."""
    assert get_native_symbol("bitcoin") == "BTC"
    assert get_native_symbol("dogecoin") == "DOGECOIN"


def test_coingecko_mappings():
    """Test CoinGecko coin id and platform lookups."""
    assert get_coingecko_id("ethereum") == "ethereum"
    assert get_coingecko_id("nonexistent") is None
    assert get_coingecko_platform("polygon") == "polygon-pos"
    assert get_coingecko_platform("bitcoin") is None


def test_symbol_to_coingecko_id():
    """Test mapping native symbols to coin ids."""
    assert symbol_to_coingecko_id("ETH") == "ethereum"
    assert symbol_to_coingecko_id("btc") == "bitcoin"
    assert symbol_to_coingecko_id("Chainlink") == "chainlink"
