"""Balance aggregator for orchestrating balance fetching across wallets and chains."""

import logging
import threading
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any

import httpx

import holdings_tracker.chains  # noqa: F401  (registers adapters)
from holdings_tracker.config import Settings
from holdings_tracker.core.concurrency import CancelToken
from holdings_tracker.core.enrichment import TokenEnrichment
from holdings_tracker.core.models import NormalizedBalance, Wallet
from holdings_tracker.core.registry import ChainRegistry
from holdings_tracker.net import RetryConfig
from holdings_tracker.pricing.cache import PriceCache

logger = logging.getLogger(__name__)


class BalanceAggregator:
    """
    Orchestrates balance fetching across all wallets.

    Workflow per wallet:
    1. Select the chain adapter (unsupported chains are omitted)
    2. Fetch the native balance and run token enrichment
    3. On failure, fall back to a native-only balance
    4. If that fails too, omit the wallet

    Wallets are processed by a bounded worker pool; one wallet's failure
    never affects the others.

    Parameters
    ----------
    spot_prices : PriceCache
        Native price cache keyed by chain id
    token_prices : PriceCache
        Token price cache keyed by ``chain:contract``
    settings : Settings | None
        Runtime settings (worker count, timeouts, API keys)
    retry_config : RetryConfig | None
        Retry policy handed to chain adapters
    transport : httpx.BaseTransport | None
        Custom transport for chain adapters (used for testing)

    """

    def __init__(
        self,
        spot_prices: PriceCache,
        token_prices: PriceCache,
        settings: Settings | None = None,
        retry_config: RetryConfig | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.retry_config = retry_config
        self.transport = transport
        self.enrichment = TokenEnrichment(self.get_adapter, spot_prices, token_prices)
        self._adapters: dict[str, Any] = {}
        self._adapters_lock = threading.Lock()
        self._refresh_lock = threading.Lock()
        self._current_refresh: CancelToken | None = None

    @property
    def max_workers(self) -> int:
        return self.settings.max_workers

    def get_adapter(self, chain: str) -> Any:
        """
        Get the cached adapter instance for a chain.

        Raises
        ------
        UnsupportedChainError
            If no adapter is registered for the chain

        """
        chain = chain.lower()
        with self._adapters_lock:
            adapter = self._adapters.get(chain)
            if adapter is None:
                adapter = ChainRegistry.create_adapter(
                    chain,
                    settings=self.settings,
                    retry_config=self.retry_config,
                    transport=self.transport,
                )
                self._adapters[chain] = adapter
            return adapter

    def fetch_balance(self, address: str, chain: str, cancel: CancelToken | None = None) -> NormalizedBalance | None:
        """
        Get the valued balance of one wallet.

        Parameters
        ----------
        address : str
            Wallet address
        chain : str
            Chain id
        cancel : CancelToken | None
            Skips the work when already cancelled

        Returns
        -------
        NormalizedBalance | None
            Balance with tokens where available, or None if the chain is
            unsupported or both the enriched and native-only paths failed

        """
        if not ChainRegistry.is_supported(chain):
            logger.info("Skipping %s: no adapter for chain '%s'", address, chain)
            return None
        if cancel is not None and cancel.cancelled:
            return None

        adapter = self.get_adapter(chain)
        native_balance = None

        try:
            native_balance = adapter.fetch_native_balance(address)
            balance = self.enrichment.enrich(address, adapter.name, native_balance, cancel)
            if balance is not None:
                return balance
        except Exception as e:
            logger.warning("Enriched balance failed for %s on %s: %s", address, chain, e)

        try:
            # Refetch only when the native call itself failed
            if native_balance is None:
                native_balance = adapter.fetch_native_balance(address)
            return self.enrichment.native_only(adapter, address, native_balance)
        except Exception as e:
            logger.error("Balance unavailable for %s on %s: %s", address, chain, e)
            return None

    def fetch_all_balances(
        self,
        wallets: Iterable[Wallet],
        cancel: CancelToken | None = None,
        progress: Any | None = None,
        task_id: Any | None = None,
    ) -> dict[str, NormalizedBalance]:
        """
        Get balances for many wallets in parallel.

        Parameters
        ----------
        wallets : Iterable[Wallet]
            Wallets to refresh; wallets without an address are skipped
        cancel : CancelToken | None
            Stops collecting results and cancels queued work when set
        progress : Any | None
            Rich progress bar instance (optional)
        task_id : Any | None
            Task ID for progress updates (optional)

        Returns
        -------
        dict[str, NormalizedBalance]
            Balances keyed by address. Failed and unsupported wallets are
            absent; a cancelled refresh returns what completed so far.

        """
        targets = [wallet for wallet in wallets if wallet.address]
        balances: dict[str, NormalizedBalance] = {}
        if not targets:
            return balances

        executor = ThreadPoolExecutor(max_workers=min(len(targets), self.max_workers))
        try:
            future_to_wallet = {
                executor.submit(self.fetch_balance, wallet.address, wallet.chain, cancel): wallet
                for wallet in targets
            }

            for i, future in enumerate(as_completed(future_to_wallet)):
                if cancel is not None and cancel.cancelled:
                    logger.info("Refresh cancelled after %d of %d wallets", i, len(targets))
                    break

                wallet = future_to_wallet[future]
                try:
                    balance = future.result()
                except Exception as e:
                    logger.error("Balance fetch crashed for %s: %s", wallet.address, e)
                    continue

                if balance is not None:
                    balances[wallet.address] = balance

                if progress and task_id is not None:
                    progress.update(
                        task_id,
                        description=f"Fetched {wallet.name or wallet.address} ({wallet.chain})",
                        completed=100 * (i + 1) // len(targets),
                    )
        finally:
            # Running calls finish in the background; their results are dropped
            executor.shutdown(wait=cancel is None or not cancel.cancelled, cancel_futures=True)

        return balances

    def start_refresh(self) -> CancelToken:
        """Cancel the refresh in flight, if any, and return a token for a new one."""
        with self._refresh_lock:
            if self._current_refresh is not None:
                self._current_refresh.cancel()
            self._current_refresh = CancelToken()
            return self._current_refresh

    def refresh_all(
        self, wallets: Iterable[Wallet], progress: Any | None = None, task_id: Any | None = None
    ) -> dict[str, NormalizedBalance]:
        """Refresh every wallet, superseding any earlier refresh."""
        token = self.start_refresh()
        return self.fetch_all_balances(wallets, cancel=token, progress=progress, task_id=task_id)

    def close(self) -> None:
        """Close every cached adapter."""
        with self._adapters_lock:
            for adapter in self._adapters.values():
                adapter.close()
            self._adapters.clear()

    def __enter__(self) -> "BalanceAggregator":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()
