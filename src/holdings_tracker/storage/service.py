"""Wallet and position management on top of a portfolio store."""

import logging
import uuid
from collections import defaultdict

from holdings_tracker.core.classifier import chain_selection_warning
from holdings_tracker.core.models import (
    AssetClass,
    ManualPosition,
    PositionInput,
    Wallet,
    WalletInput,
    utc_now,
)
from holdings_tracker.storage.base import PortfolioStore
from holdings_tracker.vault.secrets import SecretVault

logger = logging.getLogger(__name__)


def new_id() -> str:
    return uuid.uuid4().hex


class WalletService:
    """
    User-facing operations on wallets and manual positions.

    Recovery phrases are encrypted with the :class:`SecretVault` before they
    reach the store; plaintext never does. Address/chain mismatches produce
    advisory warnings but never block a save.

    Parameters
    ----------
    store : PortfolioStore
        Persistence collaborator
    vault : SecretVault
        Encryption for recovery phrases

    """

    def __init__(self, store: PortfolioStore, vault: SecretVault) -> None:
        self.store = store
        self.vault = vault

    def add_wallet(self, user_id: str, identity: str, wallet_input: WalletInput) -> tuple[Wallet, list[str]]:
        """
        Create a wallet, encrypting the optional recovery phrase.

        Parameters
        ----------
        user_id : str
            Owning user
        identity : str
            Identity the recovery phrase is encrypted under
        wallet_input : WalletInput
            User-supplied fields

        Returns
        -------
        tuple[Wallet, list[str]]
            The stored wallet and any advisory warnings

        """
        address = wallet_input.address.strip()
        chain = wallet_input.chain.strip().lower()
        warnings = self._address_warnings(address, chain)

        wallet = Wallet(
            id=new_id(),
            user_id=user_id,
            name=wallet_input.name,
            chain=chain,
            address=address,
            encrypted_secret=self._encrypt_optional(wallet_input.secret, identity),
            notes=wallet_input.notes,
        )
        self.store.create_wallet(wallet)
        logger.info("Added %s wallet %s", chain, wallet.id)
        return wallet, warnings

    def update_wallet(
        self, wallet_id: str, identity: str, wallet_input: WalletInput
    ) -> tuple[Wallet, list[str]]:
        """
        Update a wallet. The stored secret is only replaced when a new phrase is given.

        Raises
        ------
        RecordNotFoundError
            If the wallet does not exist

        """
        wallet = self.store.get_wallet(wallet_id)
        address = wallet_input.address.strip()
        chain = wallet_input.chain.strip().lower()
        warnings = self._address_warnings(address, chain)

        wallet.name = wallet_input.name
        wallet.chain = chain
        wallet.address = address
        wallet.notes = wallet_input.notes
        if wallet_input.secret:
            wallet.encrypted_secret = self.vault.encrypt(wallet_input.secret, identity)
        wallet.updated_at = utc_now()

        self.store.update_wallet(wallet)
        return wallet, warnings

    def rotate_secret(self, wallet_id: str, old_identity: str, new_identity: str | None = None) -> Wallet:
        """
        Re-encrypt a wallet's secret with a fresh nonce, optionally under a new identity.

        Raises
        ------
        DecryptionError
            If ``old_identity`` does not decrypt the stored secret
        RecordNotFoundError
            If the wallet does not exist
        ValueError
            If the wallet has no stored secret

        """
        wallet = self.store.get_wallet(wallet_id)
        if wallet.encrypted_secret is None:
            msg = f"Wallet {wallet_id} has no stored secret"
            raise ValueError(msg)

        wallet.encrypted_secret = self.vault.rotate(wallet.encrypted_secret, old_identity, new_identity)
        wallet.updated_at = utc_now()
        self.store.update_wallet(wallet)
        logger.info("Rotated secret for wallet %s", wallet_id)
        return wallet

    def reveal_secret(self, wallet_id: str, identity: str) -> str | None:
        """
        Decrypt a wallet's recovery phrase.

        Returns
        -------
        str | None
            The phrase, or None for an address-only wallet

        Raises
        ------
        DecryptionError
            If the identity does not match or the blob is corrupt

        """
        wallet = self.store.get_wallet(wallet_id)
        if wallet.encrypted_secret is None:
            return None
        return self.vault.decrypt(wallet.encrypted_secret, identity)

    def remove_wallet(self, wallet_id: str) -> None:
        self.store.delete_wallet(wallet_id)
        logger.info("Removed wallet %s", wallet_id)

    def list_wallets(self, user_id: str) -> list[Wallet]:
        return self.store.list_wallets(user_id)

    def wallets_by_chain(self, user_id: str) -> dict[str, list[Wallet]]:
        """Group a user's wallets by chain id."""
        grouped: dict[str, list[Wallet]] = defaultdict(list)
        for wallet in self.store.list_wallets(user_id):
            grouped[wallet.chain].append(wallet)
        return dict(grouped)

    def add_position(self, user_id: str, position_input: PositionInput) -> ManualPosition:
        """Create a manual position."""
        position = ManualPosition(id=new_id(), user_id=user_id, **self._position_fields(position_input))
        self.store.create_position(position)
        logger.info("Added %s position %s", position.asset_class, position.id)
        return position

    def update_position(self, position_id: str, position_input: PositionInput) -> ManualPosition:
        """
        Replace a manual position's fields.

        Raises
        ------
        RecordNotFoundError
            If the position does not exist

        """
        current = self.store.get_position(position_id)
        position = current.model_copy(update={**self._position_fields(position_input), "updated_at": utc_now()})
        self.store.update_position(position)
        return position

    def remove_position(self, position_id: str) -> None:
        self.store.delete_position(position_id)
        logger.info("Removed position %s", position_id)

    def list_positions(self, user_id: str) -> list[ManualPosition]:
        return self.store.list_positions(user_id)

    def positions_by_class(self, user_id: str) -> dict[AssetClass, list[ManualPosition]]:
        """Group a user's manual positions by asset class."""
        grouped: dict[AssetClass, list[ManualPosition]] = defaultdict(list)
        for position in self.store.list_positions(user_id):
            grouped[position.asset_class].append(position)
        return dict(grouped)

    def _encrypt_optional(self, secret: str | None, identity: str) -> str | None:
        if not secret:
            return None
        return self.vault.encrypt(secret, identity)

    @staticmethod
    def _address_warnings(address: str, chain: str) -> list[str]:
        warning = chain_selection_warning(address, chain)
        if warning is None:
            return []
        logger.info("Saving %s address despite format mismatch", chain)
        return [warning]

    @staticmethod
    def _position_fields(position_input: PositionInput) -> dict:
        fields = position_input.model_dump()
        # Weight units only apply to metals
        if position_input.asset_class != AssetClass.METAL:
            fields["weight_unit"] = None
        return fields
