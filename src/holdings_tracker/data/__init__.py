"""Chain metadata loading."""

from holdings_tracker.data.loader import (
    get_all_supported_chains,
    get_chain_config,
    get_coingecko_id,
    get_coingecko_platform,
    get_evm_chains,
    get_native_symbol,
    get_token_capable_chains,
    load_chains,
    symbol_to_coingecko_id,
)

__all__ = [
    "get_all_supported_chains",
    "get_chain_config",
    "get_coingecko_id",
    "get_coingecko_platform",
    "get_evm_chains",
    "get_native_symbol",
    "get_token_capable_chains",
    "load_chains",
    "symbol_to_coingecko_id",
]
