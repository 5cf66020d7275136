"""Chain adapters for native balance lookups."""

# Import all adapters to trigger auto-registration
from holdings_tracker.chains.base import BaseChainAdapter
from holdings_tracker.chains.bitcoin import BitcoinAdapter
from holdings_tracker.chains.cardano import CardanoAdapter
from holdings_tracker.chains.evm import (
    AvalancheAdapter,
    BinanceAdapter,
    CronosAdapter,
    EthereumAdapter,
    ExplorerAdapter,
    PolygonAdapter,
)
from holdings_tracker.chains.ripple import RippleAdapter
from holdings_tracker.chains.solana import SolanaAdapter

__all__ = [
    "AvalancheAdapter",
    "BaseChainAdapter",
    "BinanceAdapter",
    "BitcoinAdapter",
    "CardanoAdapter",
    "CronosAdapter",
    "EthereumAdapter",
    "ExplorerAdapter",
    "PolygonAdapter",
    "RippleAdapter",
    "SolanaAdapter",
]
