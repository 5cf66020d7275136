"""JSON file persistence for wallets and manual positions."""

import json
import logging
import threading
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from holdings_tracker.core.models import ManualPosition, Wallet
from holdings_tracker.errors import PersistenceError, RecordNotFoundError

logger = logging.getLogger(__name__)


class JsonFileStore:
    """
    Store that keeps every record in one JSON document.

    Layout: ``{"wallets": [...], "positions": [...]}``. The whole document is
    read on every call and rewritten on every change; writes go through a
    temporary file so a crash never leaves a half-written store.

    Parameters
    ----------
    path : Path | str
        Location of the JSON document; '~' is expanded

    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path).expanduser()
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def list_wallets(self, user_id: str) -> list[Wallet]:
        return [w for w in self._read_all()[0].values() if w.user_id == user_id]

    def get_wallet(self, wallet_id: str) -> Wallet:
        wallets, _ = self._read_all()
        if wallet_id not in wallets:
            msg = f"Unknown wallet: {wallet_id}"
            raise RecordNotFoundError(msg)
        return wallets[wallet_id]

    def create_wallet(self, wallet: Wallet) -> Wallet:
        with self._lock:
            wallets, positions = self._read_all()
            wallets[wallet.id] = wallet
            self._write_all(wallets, positions)
        return wallet

    def update_wallet(self, wallet: Wallet) -> Wallet:
        with self._lock:
            wallets, positions = self._read_all()
            if wallet.id not in wallets:
                msg = f"Unknown wallet: {wallet.id}"
                raise RecordNotFoundError(msg)
            wallets[wallet.id] = wallet
            self._write_all(wallets, positions)
        return wallet

    def delete_wallet(self, wallet_id: str) -> None:
        with self._lock:
            wallets, positions = self._read_all()
            if wallets.pop(wallet_id, None) is None:
                msg = f"Unknown wallet: {wallet_id}"
                raise RecordNotFoundError(msg)
            self._write_all(wallets, positions)

    def list_positions(self, user_id: str) -> list[ManualPosition]:
        return [p for p in self._read_all()[1].values() if p.user_id == user_id]

    def get_position(self, position_id: str) -> ManualPosition:
        _, positions = self._read_all()
        if position_id not in positions:
            msg = f"Unknown position: {position_id}"
            raise RecordNotFoundError(msg)
        return positions[position_id]

    def create_position(self, position: ManualPosition) -> ManualPosition:
        with self._lock:
            wallets, positions = self._read_all()
            positions[position.id] = position
            self._write_all(wallets, positions)
        return position

    def update_position(self, position: ManualPosition) -> ManualPosition:
        with self._lock:
            wallets, positions = self._read_all()
            if position.id not in positions:
                msg = f"Unknown position: {position.id}"
                raise RecordNotFoundError(msg)
            positions[position.id] = position
            self._write_all(wallets, positions)
        return position

    def delete_position(self, position_id: str) -> None:
        with self._lock:
            wallets, positions = self._read_all()
            if positions.pop(position_id, None) is None:
                msg = f"Unknown position: {position_id}"
                raise RecordNotFoundError(msg)
            self._write_all(wallets, positions)

    def _read_all(self) -> tuple[dict[str, Wallet], dict[str, ManualPosition]]:
        if not self._path.exists():
            return {}, {}
        try:
            data: dict[str, Any] = json.loads(self._path.read_text(encoding="utf-8"))
            wallets = [Wallet.model_validate(item) for item in data.get("wallets", [])]
            positions = [ManualPosition.model_validate(item) for item in data.get("positions", [])]
        except (OSError, ValueError, ValidationError, AttributeError) as e:
            msg = f"Cannot read store {self._path}: {e}"
            raise PersistenceError(msg) from e
        return {w.id: w for w in wallets}, {p.id: p for p in positions}

    def _write_all(self, wallets: dict[str, Wallet], positions: dict[str, ManualPosition]) -> None:
        payload = {
            "wallets": [w.model_dump(mode="json") for w in wallets.values()],
            "positions": [p.model_dump(mode="json") for p in positions.values()],
        }
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            tmp_path.replace(self._path)
        except OSError as e:
            msg = f"Cannot write store {self._path}: {e}"
            raise PersistenceError(msg) from e
        logger.debug("Saved %d wallets and %d positions to %s", len(wallets), len(positions), self._path)
