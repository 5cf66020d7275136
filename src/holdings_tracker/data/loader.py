"""Chain metadata loader."""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml


@lru_cache(maxsize=1)
def load_chains() -> dict[str, Any]:
    """
    Load chain metadata from chains.yaml.

    Returns
    -------
    dict[str, Any]
        Parsed configuration with a top-level ``chains`` mapping

    """
    path = Path(__file__).parent / "chains.yaml"
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)


def get_chain_config(chain: str) -> dict[str, Any]:
    """
    Get configuration for a specific chain.

    Parameters
    ----------
    chain : str
        Chain identifier (e.g., 'ethereum', 'bitcoin')

    Returns
    -------
    dict[str, Any]
        Chain configuration

    Raises
    ------
    KeyError
        If chain is not found in configuration

    """
    return load_chains()["chains"][chain.lower()]


def get_all_supported_chains() -> list[str]:
    """
    Get list of all configured chain identifiers.

    Returns
    -------
    list[str]
        Chain identifiers in configuration order

    """
    return list(load_chains()["chains"].keys())


def get_evm_chains() -> list[str]:
    """Chains sharing the 0x-prefixed 20-byte address format."""
    return [name for name, config in load_chains()["chains"].items() if config.get("evm")]


def get_token_capable_chains() -> list[str]:
    """Chains with a known explorer endpoint for token discovery."""
    return [name for name, config in load_chains()["chains"].items() if config.get("supports_tokens")]


def get_native_symbol(chain: str) -> str:
    """
    Get the native token symbol for a chain.

    Unknown chains fall back to the upper-cased chain identifier.

    """
    try:
        return get_chain_config(chain)["native_symbol"]
    except KeyError:
        return chain.upper()


def get_coingecko_id(chain: str) -> str | None:
    """CoinGecko coin id of the chain's native token, if known."""
    try:
        return get_chain_config(chain).get("coingecko_id")
    except KeyError:
        return None


def get_coingecko_platform(chain: str) -> str | None:
    """CoinGecko asset-platform id used for contract price lookups."""
    try:
        return get_chain_config(chain).get("coingecko_platform")
    except KeyError:
        return None


def symbol_to_coingecko_id(symbol: str) -> str:
    """
    Resolve a ticker symbol to a CoinGecko coin id.

    Native symbols of configured chains map to their coin id, anything else
    is assumed to already be a coin id and is lower-cased.

    """
    upper = symbol.upper()
    for config in load_chains()["chains"].values():
        if config.get("native_symbol") == upper and config.get("coingecko_id"):
            return config["coingecko_id"]
    return symbol.lower()
