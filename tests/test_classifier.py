"""Tests for address format classification."""

import pytest

from holdings_tracker.core.classifier import (
    EVM_FORMAT_LABEL,
    address_format_message,
    chain_selection_warning,
    classify,
    validate_address_for_chain,
)

EVM_CHAINS = ["avalanche", "binance", "cronos", "ethereum", "polygon"]


def test_evm_address_is_ambiguous():
    """Test that EVM addresses return every EVM chain."""
    result = classify("0x1234567890123456789012345678901234567890")

    assert sorted(result.candidates) == EVM_CHAINS
    assert result.ambiguous is True
    assert result.format_label == EVM_FORMAT_LABEL


@pytest.mark.parametrize(
    "address",
    [
        "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa",
        "3J98t1WpEZ73CNmQviecrnyiWrnqRhWNLy",
        "bc1qar0srrr7xfkvy5l643lydnw9re59gtzzwf5mdq",
    ],
)
def test_bitcoin_addresses(address):
    """Test Bitcoin legacy, P2SH and Bech32 formats."""
    result = classify(address)

    assert result.candidates == ["bitcoin"]
    assert result.ambiguous is False
    assert result.format_label == "Bitcoin"


def test_base58_bitcoin_never_solana():
    """Test that a legacy address that is also valid base58 resolves to Bitcoin."""
    # 34 base58 characters starting with '1' satisfies both patterns
    assert classify("1BoatSLRHtKNngkdXEeobR76b53LETtpyT").candidates == ["bitcoin"]


def test_ripple_address():
    """Test XRP Ledger classic addresses."""
    result = classify("rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh")

    assert result.candidates == ["ripple"]
    assert result.format_label == "Ripple"


def test_cardano_address():
    """Test Cardano Shelley addresses."""
    address = "addr1" + "q" * 98
    result = classify(address)

    assert result.candidates == ["cardano"]
    assert result.format_label == "Cardano"


def test_solana_address():
    """Test Solana base58 public keys."""
    result = classify("7EcDhSYGxXyscszYEp35KHN8vvw3svAuLKTzXwCFLtV")

    assert result.candidates == ["solana"]
    assert result.ambiguous is False


@pytest.mark.parametrize("address", ["", "   ", "\n"])
def test_empty_input(address):
    """Test empty or whitespace input is invalid."""
    result = classify(address)

    assert result.candidates == []
    assert result.ambiguous is False
    assert result.format_label == "invalid"


def test_unknown_format():
    """Test unrecognized strings."""
    result = classify("not-an-address")

    assert result.candidates == []
    assert result.format_label == "unknown"


def test_whitespace_is_trimmed():
    """Test surrounding whitespace does not affect detection."""
    assert classify("  bc1qar0srrr7xfkvy5l643lydnw9re59gtzzwf5mdq \n").candidates == ["bitcoin"]


def test_validate_address_for_chain():
    """Test chain membership check."""
    evm = "0x1234567890123456789012345678901234567890"

    assert validate_address_for_chain(evm, "polygon") is True
    assert validate_address_for_chain(evm, "Cronos") is True
    assert validate_address_for_chain(evm, "bitcoin") is False


def test_address_format_message():
    """Test user-facing format messages."""
    assert address_format_message("garbage") == "Unknown address format"
    assert address_format_message("bc1qar0srrr7xfkvy5l643lydnw9re59gtzzwf5mdq") == "Detected: Bitcoin"
    assert address_format_message("0x1234567890123456789012345678901234567890") == (
        f"Detected: {EVM_FORMAT_LABEL} - Please select the specific network"
    )


def test_chain_selection_warning():
    """Test mismatch warnings are advisory and skip unknown formats."""
    btc = "bc1qar0srrr7xfkvy5l643lydnw9re59gtzzwf5mdq"

    assert chain_selection_warning(btc, "bitcoin") is None
    assert chain_selection_warning("garbage", "bitcoin") is None

    warning = chain_selection_warning(btc, "ethereum")
    assert warning is not None
    assert "Bitcoin" in warning
