"""In-memory portfolio store."""

import threading

from holdings_tracker.core.models import ManualPosition, Wallet
from holdings_tracker.errors import RecordNotFoundError


class InMemoryStore:
    """Dict-backed store, mostly useful in tests and short-lived sessions."""

    def __init__(self) -> None:
        self._wallets: dict[str, Wallet] = {}
        self._positions: dict[str, ManualPosition] = {}
        self._lock = threading.Lock()

    def list_wallets(self, user_id: str) -> list[Wallet]:
        with self._lock:
            return [w.model_copy() for w in self._wallets.values() if w.user_id == user_id]

    def get_wallet(self, wallet_id: str) -> Wallet:
        with self._lock:
            wallet = self._wallets.get(wallet_id)
        if wallet is None:
            msg = f"Unknown wallet: {wallet_id}"
            raise RecordNotFoundError(msg)
        return wallet.model_copy()

    def create_wallet(self, wallet: Wallet) -> Wallet:
        with self._lock:
            self._wallets[wallet.id] = wallet.model_copy()
        return wallet

    def update_wallet(self, wallet: Wallet) -> Wallet:
        with self._lock:
            if wallet.id not in self._wallets:
                msg = f"Unknown wallet: {wallet.id}"
                raise RecordNotFoundError(msg)
            self._wallets[wallet.id] = wallet.model_copy()
        return wallet

    def delete_wallet(self, wallet_id: str) -> None:
        with self._lock:
            if self._wallets.pop(wallet_id, None) is None:
                msg = f"Unknown wallet: {wallet_id}"
                raise RecordNotFoundError(msg)

    def list_positions(self, user_id: str) -> list[ManualPosition]:
        with self._lock:
            return [p.model_copy() for p in self._positions.values() if p.user_id == user_id]

    def get_position(self, position_id: str) -> ManualPosition:
        with self._lock:
            position = self._positions.get(position_id)
        if position is None:
            msg = f"Unknown position: {position_id}"
            raise RecordNotFoundError(msg)
        return position.model_copy()

    def create_position(self, position: ManualPosition) -> ManualPosition:
        with self._lock:
            self._positions[position.id] = position.model_copy()
        return position

    def update_position(self, position: ManualPosition) -> ManualPosition:
        with self._lock:
            if position.id not in self._positions:
                msg = f"Unknown position: {position.id}"
                raise RecordNotFoundError(msg)
            self._positions[position.id] = position.model_copy()
        return position

    def delete_position(self, position_id: str) -> None:
        with self._lock:
            if self._positions.pop(position_id, None) is None:
                msg = f"Unknown position: {position_id}"
                raise RecordNotFoundError(msg)
