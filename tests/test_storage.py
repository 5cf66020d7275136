"""Tests for stores and wallet management."""

import json
from decimal import Decimal

import pytest

from holdings_tracker.core.models import AssetClass, PositionInput, WalletInput
from holdings_tracker.errors import DecryptionError, PersistenceError, RecordNotFoundError
from holdings_tracker.storage import InMemoryStore, JsonFileStore, WalletService

PHRASE = "apple banana cherry delta echo foxtrot golf hotel india juliet kilo lima"
BTC = "bc1qar0srrr7xfkvy5l643lydnw9re59gtzzwf5mdq"


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryStore()
    return JsonFileStore(tmp_path / "store.json")


@pytest.fixture
def service(store, vault):
    return WalletService(store, vault)


def test_add_wallet_encrypts_secret(service, store):
    """Test the recovery phrase is stored encrypted only."""
    wallet, warnings = service.add_wallet(
        "u1", "user@example.com", WalletInput(name="Cold", chain="Bitcoin", address=f" {BTC} ", secret=PHRASE)
    )

    stored = store.get_wallet(wallet.id)
    assert warnings == []
    assert stored.chain == "bitcoin"
    assert stored.address == BTC
    assert stored.encrypted_secret.startswith("v1:")
    assert PHRASE not in stored.encrypted_secret
    assert service.reveal_secret(wallet.id, "user@example.com") == PHRASE


def test_address_only_wallet(service):
    """Test wallets without a phrase reveal nothing."""
    wallet, _ = service.add_wallet("u1", "id", WalletInput(name="Watch", chain="bitcoin", address=BTC))

    assert wallet.encrypted_secret is None
    assert service.reveal_secret(wallet.id, "id") is None


def test_mismatched_chain_still_saves(service, store):
    """Test format warnings never block a save."""
    wallet, warnings = service.add_wallet("u1", "id", WalletInput(name="Odd", chain="ethereum", address=BTC))

    assert len(warnings) == 1
    assert store.get_wallet(wallet.id).chain == "ethereum"


def test_reveal_with_wrong_identity_propagates(service):
    """Test decryption failures reach the caller."""
    wallet_input = WalletInput(name="W", chain="bitcoin", address=BTC, secret=PHRASE)
    wallet, _ = service.add_wallet("u1", "a@example.com", wallet_input)

    with pytest.raises(DecryptionError):
        service.reveal_secret(wallet.id, "b@example.com")


def test_update_wallet_keeps_secret_without_new_phrase(service):
    """Test updates only re-encrypt when a new phrase is supplied."""
    wallet, _ = service.add_wallet("u1", "id", WalletInput(name="W", chain="bitcoin", address=BTC, secret=PHRASE))
    original = wallet.encrypted_secret

    updated, _ = service.update_wallet(wallet.id, "id", WalletInput(name="Renamed", chain="bitcoin", address=BTC))
    assert updated.name == "Renamed"
    assert updated.encrypted_secret == original

    updated, _ = service.update_wallet(
        wallet.id, "id", WalletInput(name="Renamed", chain="bitcoin", address=BTC, secret="new phrase")
    )
    assert updated.encrypted_secret != original
    assert service.reveal_secret(wallet.id, "id") == "new phrase"


def test_rotate_secret(service):
    """Test rotation under a new identity."""
    wallet, _ = service.add_wallet("u1", "old", WalletInput(name="W", chain="bitcoin", address=BTC, secret=PHRASE))

    rotated = service.rotate_secret(wallet.id, "old", "new")

    assert rotated.encrypted_secret != wallet.encrypted_secret
    assert service.reveal_secret(wallet.id, "new") == PHRASE
    with pytest.raises(DecryptionError):
        service.reveal_secret(wallet.id, "old")


def test_rotate_without_secret(service):
    """Test rotating an address-only wallet is rejected."""
    wallet, _ = service.add_wallet("u1", "id", WalletInput(name="W", chain="bitcoin", address=BTC))

    with pytest.raises(ValueError):
        service.rotate_secret(wallet.id, "id")


def test_remove_wallet(service):
    """Test removal and unknown ids."""
    wallet, _ = service.add_wallet("u1", "id", WalletInput(name="W", chain="bitcoin", address=BTC))

    service.remove_wallet(wallet.id)

    assert service.list_wallets("u1") == []
    with pytest.raises(RecordNotFoundError):
        service.remove_wallet(wallet.id)


def test_wallets_by_chain(service):
    """Test grouping is per user and per chain."""
    evm = "0x1234567890123456789012345678901234567890"
    service.add_wallet("u1", "id", WalletInput(name="A", chain="bitcoin", address=BTC))
    service.add_wallet("u1", "id", WalletInput(name="B", chain="ethereum", address=evm))
    service.add_wallet("u1", "id", WalletInput(name="C", chain="polygon", address=evm))
    service.add_wallet("u2", "id", WalletInput(name="D", chain="bitcoin", address=BTC))

    grouped = service.wallets_by_chain("u1")

    assert sorted(grouped) == ["bitcoin", "ethereum", "polygon"]
    assert [w.name for w in grouped["bitcoin"]] == ["A"]


def test_positions(service):
    """Test position CRUD and grouping."""
    gold = service.add_position(
        "u1",
        PositionInput(
            asset_class=AssetClass.METAL,
            name="Gold",
            symbol="gold",
            quantity=Decimal("10"),
            cost_basis=Decimal("60"),
            weight_unit="g",
        ),
    )
    apple = service.add_position(
        "u1",
        PositionInput(
            asset_class=AssetClass.EQUITY,
            name="Apple",
            symbol="AAPL",
            quantity=Decimal("3"),
            cost_basis=Decimal("100"),
            weight_unit="oz",
        ),
    )

    # Weight units only stick to metals
    assert apple.weight_unit is None
    assert gold.weight_unit == "g"

    updated = service.update_position(
        apple.id,
        PositionInput(
            asset_class=AssetClass.EQUITY,
            name="Apple Inc",
            symbol="AAPL",
            quantity=Decimal("4"),
            cost_basis=Decimal("100"),
        ),
    )
    assert updated.quantity == Decimal("4")
    assert updated.created_at == apple.created_at

    grouped = service.positions_by_class("u1")
    assert [p.name for p in grouped[AssetClass.EQUITY]] == ["Apple Inc"]
    assert [p.name for p in grouped[AssetClass.METAL]] == ["Gold"]

    service.remove_position(gold.id)
    assert [p.id for p in service.list_positions("u1")] == [apple.id]


def test_update_unknown_position(service):
    """Test updates of missing records raise."""
    with pytest.raises(RecordNotFoundError):
        service.update_position(
            "missing",
            PositionInput(asset_class=AssetClass.CRYPTO, name="X", quantity=Decimal("1"), cost_basis=Decimal("1")),
        )


def test_json_store_persists_across_instances(tmp_path, vault):
    """Test records survive reopening the file."""
    path = tmp_path / "nested" / "store.json"
    wallet, _ = WalletService(JsonFileStore(path), vault).add_wallet(
        "u1", "id", WalletInput(name="W", chain="bitcoin", address=BTC, secret=PHRASE)
    )

    reopened = WalletService(JsonFileStore(path), vault)

    assert reopened.reveal_secret(wallet.id, "id") == PHRASE
    data = json.loads(path.read_text())
    assert PHRASE not in path.read_text()
    assert data["wallets"][0]["id"] == wallet.id


def test_json_store_corrupt_file(tmp_path):
    """Test unreadable stores raise PersistenceError."""
    path = tmp_path / "store.json"
    path.write_text("{not json")

    with pytest.raises(PersistenceError):
        JsonFileStore(path).list_wallets("u1")
