"""Identity-keyed encryption of recovery phrases.

Blob layout: ``v1:`` + base64(12-byte nonce || AES-256-GCM ciphertext+tag).

Blobs without a version prefix are legacy v1 blobs and decrypt with the same
scheme. Keys are derived with PBKDF2-HMAC-SHA256 from the identity string and
a fixed application salt; there is no per-user salt or key wrapping.
"""

import base64
import binascii
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from holdings_tracker.errors import DecryptionError

logger = logging.getLogger(__name__)

NONCE_SIZE = 12
KEY_SIZE = 32
DEFAULT_ITERATIONS = 100_000
DEFAULT_SALT = "holdings-tracker-vault-salt"
CURRENT_VERSION = "v1"
VERSION_SEPARATOR = ":"


class SecretVault:
    """
    Encrypts and decrypts secrets with a key derived from user identity.

    Parameters
    ----------
    iterations : int
        PBKDF2 iteration count
    salt : str
        Application-wide salt

    """

    def __init__(self, iterations: int = DEFAULT_ITERATIONS, salt: str = DEFAULT_SALT) -> None:
        self.iterations = iterations
        self.salt = salt.encode("utf-8")

    def derive_key(self, identity: str) -> bytes:
        """
        Derive a 256-bit key from an identity string.

        Parameters
        ----------
        identity : str
            Low-entropy user identifier (e.g., user id or email)

        Returns
        -------
        bytes
            32-byte symmetric key

        """
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_SIZE,
            salt=self.salt,
            iterations=self.iterations,
        )
        return kdf.derive(identity.encode("utf-8"))

    def encrypt(self, secret: str, identity: str) -> str:
        """
        Encrypt a secret into a self-contained blob.

        A fresh nonce is generated on every call, so encrypting the same
        secret twice yields different blobs.

        Parameters
        ----------
        secret : str
            Plaintext secret (e.g., a 12/24-word recovery phrase)
        identity : str
            Identity the key is derived from

        Returns
        -------
        str
            Versioned base64 blob

        Raises
        ------
        ValueError
            If secret or identity is empty

        """
        if not secret:
            msg = "secret must not be empty"
            raise ValueError(msg)
        if not identity:
            msg = "identity must not be empty"
            raise ValueError(msg)

        key = self.derive_key(identity)
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = AESGCM(key).encrypt(nonce, secret.encode("utf-8"), None)
        encoded = base64.b64encode(nonce + ciphertext).decode("ascii")
        return f"{CURRENT_VERSION}{VERSION_SEPARATOR}{encoded}"

    def decrypt(self, blob: str, identity: str) -> str:
        """
        Decrypt a blob produced by :meth:`encrypt`.

        Parameters
        ----------
        blob : str
            Versioned or legacy unversioned blob
        identity : str
            Identity used at encryption time

        Returns
        -------
        str
            Plaintext secret

        Raises
        ------
        DecryptionError
            If the identity does not match, the blob is corrupt or truncated,
            or the version is unknown

        """
        payload = self._split_version(blob)

        try:
            raw = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            msg = "Secret blob is not valid base64"
            raise DecryptionError(msg) from e

        # A GCM tag alone is 16 bytes
        if len(raw) <= NONCE_SIZE + 16:
            msg = "Secret blob is truncated"
            raise DecryptionError(msg)

        nonce, ciphertext = raw[:NONCE_SIZE], raw[NONCE_SIZE:]
        key = self.derive_key(identity)

        try:
            plaintext = AESGCM(key).decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            msg = "Secret blob could not be decrypted with the given identity"
            raise DecryptionError(msg) from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            msg = "Decrypted secret is not valid UTF-8"
            raise DecryptionError(msg) from e

    def rotate(self, blob: str, old_identity: str, new_identity: str | None = None) -> str:
        """
        Re-encrypt a secret, always with a freshly derived key and nonce.

        The old blob is discarded by the caller, never updated in place.

        """
        secret = self.decrypt(blob, old_identity)
        return self.encrypt(secret, new_identity or old_identity)

    @staticmethod
    def is_versioned(blob: str) -> bool:
        return VERSION_SEPARATOR in blob

    @staticmethod
    def _split_version(blob: str) -> str:
        if not blob:
            msg = "Secret blob is empty"
            raise DecryptionError(msg)

        if VERSION_SEPARATOR not in blob:
            logger.debug("Decrypting legacy unversioned secret blob")
            return blob

        version, payload = blob.split(VERSION_SEPARATOR, 1)
        if version != CURRENT_VERSION:
            msg = f"Unsupported secret blob version: {version}"
            raise DecryptionError(msg)
        return payload
