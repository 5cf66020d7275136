"""TTL price cache with stale-value fallback."""

import logging
import threading
import time
from collections.abc import Callable
from decimal import Decimal

from holdings_tracker.errors import PriceUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300.0
ZERO = Decimal("0")


class CacheEntry:
    """
    Cached price with its fetch timestamp.

    Parameters
    ----------
    key : str
        Normalized cache key
    price : Decimal
        Cached price
    fetched_at : float
        Clock reading at fetch time

    """

    def __init__(self, key: str, price: Decimal, fetched_at: float) -> None:
        self.key = key
        self.price = price
        self.fetched_at = fetched_at

    def is_fresh(self, ttl: float, now: float) -> bool:
        """
        Check if the entry is still within its TTL.

        Returns
        -------
        bool
            True while ``now - fetched_at < ttl``

        """
        return (now - self.fetched_at) < ttl


class PriceCache:
    """
    Price cache fronting an upstream price service.

    A hit within the TTL returns the cached price without a network call. On
    a miss or expiry the fetcher is called; any answer overwrites the entry,
    including a zero "no data" answer. A raised exception returns the
    previous (stale) price if one exists, else zero.
    Expired entries are never evicted proactively: they stay as stale
    fallbacks until overwritten by the next successful fetch.

    Callers must treat a zero price as "no data", never as a real price.

    Parameters
    ----------
    fetcher : Callable[[str], Decimal]
        Upstream lookup for a key; may raise on failure
    ttl : float
        Seconds an entry is considered fresh
    clock : Callable[[], float]
        Monotonic time source
    name : str
        Label used in log messages

    """

    def __init__(
        self,
        fetcher: Callable[[str], Decimal],
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
        name: str = "price",
    ) -> None:
        self.fetcher = fetcher
        self.ttl = ttl
        self.clock = clock
        self.name = name
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._key_locks: dict[str, threading.Lock] = {}

    @staticmethod
    def normalize_key(key: str) -> str:
        """Keys are case-insensitive."""
        return key.strip().lower()

    def get_spot(self, key: str) -> Decimal:
        """
        Get the price for a key.

        Parameters
        ----------
        key : str
            Symbol, chain id or composite key (case-insensitive)

        Returns
        -------
        Decimal
            Fresh price, stale price on upstream failure, or zero

        """
        try:
            return self.require_spot(key)
        except PriceUnavailableError:
            return ZERO

    def require_spot(self, key: str) -> Decimal:
        """
        Like :meth:`get_spot` but raise when no usable price exists.

        A zero answer from the upstream is cached like any other answer, so
        the key is not asked again until the TTL expires.

        Raises
        ------
        PriceUnavailableError
            If the upstream has no price for the key, or failed with nothing
            cached before

        """
        normalized = self.normalize_key(key)

        entry = self.get_entry(normalized)
        if entry is not None and entry.is_fresh(self.ttl, self.clock()):
            return self._usable(entry)

        # One upstream call per key at a time; other keys proceed in parallel
        with self._key_lock(normalized):
            entry = self.get_entry(normalized)
            if entry is not None and entry.is_fresh(self.ttl, self.clock()):
                return self._usable(entry)

            try:
                price = Decimal(str(self.fetcher(normalized)))
            except Exception as e:
                if entry is not None and entry.price > 0:
                    logger.warning("Using stale %s price for %s: %s", self.name, normalized, e)
                    return entry.price
                logger.warning("No %s price available for %s: %s", self.name, normalized, e)
                msg = f"No {self.name} price available for {normalized}"
                raise PriceUnavailableError(msg) from e

            if not price.is_finite() or price < 0:
                price = ZERO
            self.set(normalized, price)
            return self._usable(self.get_entry(normalized))

    def get_entry(self, key: str) -> CacheEntry | None:
        """Return the cached entry for a key, fresh or stale."""
        with self._lock:
            return self._entries.get(self.normalize_key(key))

    def set(self, key: str, price: Decimal) -> None:
        """Store a price stamped with the current clock reading."""
        normalized = self.normalize_key(key)
        with self._lock:
            self._entries[normalized] = CacheEntry(normalized, price, self.clock())

    def clear(self) -> None:
        """Clear all cached entries."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _key_lock(self, key: str) -> threading.Lock:
        with self._lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[key] = lock
            return lock

    def _usable(self, entry: CacheEntry) -> Decimal:
        if entry.price <= 0:
            msg = f"Upstream has no {self.name} price for {entry.key}"
            raise PriceUnavailableError(msg)
        return entry.price
