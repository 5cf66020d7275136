"""Exception hierarchy for holdings tracking."""


class HoldingsTrackerError(Exception):
    """Base class for all holdings tracker errors."""


class ServiceError(HoldingsTrackerError):
    """An upstream HTTP service failed or returned an unusable payload."""


class AdapterError(HoldingsTrackerError):
    """A chain answered with an error or a payload the adapter cannot use."""


class UnsupportedChainError(AdapterError):
    """No chain adapter is registered for the requested chain."""


class EnrichmentError(HoldingsTrackerError):
    """Token discovery for a wallet failed."""


class DecryptionError(HoldingsTrackerError):
    """
    A secret blob could not be decrypted.

    Raised when the identity does not match the one used at encryption time
    or the blob is corrupt or truncated. Never swallowed: the secret is
    unrecoverable with the given identity.

    """


class PriceUnavailableError(HoldingsTrackerError):
    """Neither a fresh nor a stale price exists for a key."""


class PersistenceError(HoldingsTrackerError):
    """The storage collaborator failed."""


class RecordNotFoundError(PersistenceError):
    """A wallet or position id does not exist."""
