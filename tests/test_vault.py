"""Tests for identity-keyed secret encryption."""

import base64

import pytest

from holdings_tracker.errors import DecryptionError
from holdings_tracker.vault import SecretVault

PHRASE = "apple banana cherry delta echo foxtrot golf hotel india juliet kilo lima"


def test_round_trip(vault):
    """Test decrypting with the same identity returns the secret."""
    blob = vault.encrypt(PHRASE, "user@example.com")

    assert vault.decrypt(blob, "user@example.com") == PHRASE


def test_wrong_identity_fails(vault):
    """Test decrypting with another identity raises."""
    blob = vault.encrypt(PHRASE, "user@example.com")

    with pytest.raises(DecryptionError):
        vault.decrypt(blob, "other@example.com")


def test_default_iterations_round_trip():
    """Test the production KDF parameters."""
    vault = SecretVault()
    blob = vault.encrypt(PHRASE, "user@example.com")

    assert vault.decrypt(blob, "user@example.com") == PHRASE
    with pytest.raises(DecryptionError):
        vault.decrypt(blob, "other@example.com")


def test_fresh_nonce_per_encryption(vault):
    """Test the same secret encrypts to different blobs."""
    first = vault.encrypt(PHRASE, "id")
    second = vault.encrypt(PHRASE, "id")

    assert first != second
    assert first.startswith("v1:")


def test_blob_layout(vault):
    """Test blob is nonce plus ciphertext plus tag."""
    blob = vault.encrypt("x", "id")
    raw = base64.b64decode(blob.split(":", 1)[1])

    # 12-byte nonce, 1-byte ciphertext, 16-byte tag
    assert len(raw) == 12 + 1 + 16


def test_legacy_unversioned_blob(vault):
    """Test blobs without a version prefix still decrypt."""
    blob = vault.encrypt(PHRASE, "id")
    legacy = blob.split(":", 1)[1]

    assert vault.is_versioned(blob) is True
    assert vault.is_versioned(legacy) is False
    assert vault.decrypt(legacy, "id") == PHRASE


def test_unknown_version(vault):
    """Test unknown scheme versions are rejected."""
    blob = vault.encrypt(PHRASE, "id")

    with pytest.raises(DecryptionError):
        vault.decrypt("v9:" + blob.split(":", 1)[1], "id")


@pytest.mark.parametrize("blob", ["", "v1:", "v1:not base64!!", "v1:" + base64.b64encode(b"short").decode()])
def test_corrupt_blobs(vault, blob):
    """Test empty, malformed and truncated blobs raise."""
    with pytest.raises(DecryptionError):
        vault.decrypt(blob, "id")


def test_tampered_ciphertext(vault):
    """Test a flipped byte fails authentication."""
    blob = vault.encrypt(PHRASE, "id")
    raw = bytearray(base64.b64decode(blob[3:]))
    raw[-1] ^= 0x01
    tampered = "v1:" + base64.b64encode(bytes(raw)).decode()

    with pytest.raises(DecryptionError):
        vault.decrypt(tampered, "id")


def test_empty_inputs_rejected(vault):
    """Test encrypt refuses empty secret or identity."""
    with pytest.raises(ValueError):
        vault.encrypt("", "id")
    with pytest.raises(ValueError):
        vault.encrypt("secret", "")


def test_rotate(vault):
    """Test rotation re-encrypts under a new identity."""
    blob = vault.encrypt(PHRASE, "old@example.com")
    rotated = vault.rotate(blob, "old@example.com", "new@example.com")

    assert rotated != blob
    assert vault.decrypt(rotated, "new@example.com") == PHRASE
    with pytest.raises(DecryptionError):
        vault.decrypt(rotated, "old@example.com")


def test_rotate_same_identity_new_nonce(vault):
    """Test rotating without a new identity still changes the blob."""
    blob = vault.encrypt(PHRASE, "id")
    rotated = vault.rotate(blob, "id")

    assert rotated != blob
    assert vault.decrypt(rotated, "id") == PHRASE


def test_different_salt_fails():
    """Test the application salt is part of the key."""
    blob = SecretVault(iterations=1_000, salt="a").encrypt(PHRASE, "id")

    with pytest.raises(DecryptionError):
        SecretVault(iterations=1_000, salt="b").decrypt(blob, "id")
