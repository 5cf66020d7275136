"""Core functionality including models, classification and the chain registry."""

from holdings_tracker.core.classifier import (
    address_format_message,
    chain_selection_warning,
    classify,
    validate_address_for_chain,
)
from holdings_tracker.core.concurrency import CancelToken
from holdings_tracker.core.models import (
    AddressClassification,
    AssetClass,
    AssetSeries,
    HoldingValuation,
    ManualPosition,
    NormalizedBalance,
    PortfolioValuation,
    PositionInput,
    PricePoint,
    SeriesKind,
    TimePoint,
    TokenHolding,
    Wallet,
    WalletInput,
    WeightUnit,
)
from holdings_tracker.core.registry import ChainRegistry

__all__ = [
    "AddressClassification",
    "AssetClass",
    "AssetSeries",
    "CancelToken",
    "ChainRegistry",
    "HoldingValuation",
    "ManualPosition",
    "NormalizedBalance",
    "PortfolioValuation",
    "PositionInput",
    "PricePoint",
    "SeriesKind",
    "TimePoint",
    "TokenHolding",
    "Wallet",
    "WalletInput",
    "WeightUnit",
    "address_format_message",
    "chain_selection_warning",
    "classify",
    "validate_address_for_chain",
]
