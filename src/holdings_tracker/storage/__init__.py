"""Persistence collaborators and wallet management."""

from holdings_tracker.storage.base import PortfolioStore
from holdings_tracker.storage.json_store import JsonFileStore
from holdings_tracker.storage.memory import InMemoryStore
from holdings_tracker.storage.service import WalletService

__all__ = [
    "InMemoryStore",
    "JsonFileStore",
    "PortfolioStore",
    "WalletService",
]
