"""Persistence interface for wallets and manual positions."""

from typing import Protocol

from holdings_tracker.core.models import ManualPosition, Wallet


class PortfolioStore(Protocol):
    """
    CRUD storage for a user's wallets and manual positions.

    Lookups and deletes of unknown ids raise ``RecordNotFoundError``; any
    other storage failure raises ``PersistenceError``.

    """

    def list_wallets(self, user_id: str) -> list[Wallet]:
        ...

    def get_wallet(self, wallet_id: str) -> Wallet:
        ...

    def create_wallet(self, wallet: Wallet) -> Wallet:
        ...

    def update_wallet(self, wallet: Wallet) -> Wallet:
        ...

    def delete_wallet(self, wallet_id: str) -> None:
        ...

    def list_positions(self, user_id: str) -> list[ManualPosition]:
        ...

    def get_position(self, position_id: str) -> ManualPosition:
        ...

    def create_position(self, position: ManualPosition) -> ManualPosition:
        ...

    def update_position(self, position: ManualPosition) -> ManualPosition:
        ...

    def delete_position(self, position_id: str) -> None:
        ...
