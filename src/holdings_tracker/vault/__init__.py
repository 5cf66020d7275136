"""Secret vault and session primitives for revealed secrets."""

from holdings_tracker.vault.secrets import SecretVault
from holdings_tracker.vault.session import ClipboardBackend, IdleMonitor, SecureClipboard

__all__ = [
    "ClipboardBackend",
    "IdleMonitor",
    "SecretVault",
    "SecureClipboard",
]
