"""Token discovery and pricing for token-capable chains."""

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from decimal import Decimal, InvalidOperation
from typing import Any

from holdings_tracker.core.concurrency import CancelToken
from holdings_tracker.core.models import ZERO, NormalizedBalance, TokenHolding
from holdings_tracker.errors import EnrichmentError, HoldingsTrackerError
from holdings_tracker.pricing.cache import PriceCache

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_WORKERS = 4
MAX_TOKEN_DISPLAY_DECIMALS = 6


def token_price_key(chain: str, contract_address: str) -> str:
    """Cache key for a token price: ``chain:contract``."""
    return f"{chain.lower()}:{contract_address.lower()}"


class TokenEnrichment:
    """
    Adds non-native token holdings and USD values to a native balance.

    Discovery lists the wallet's token transfer events, deduplicates them by
    contract, then queries the current balance of every candidate contract
    in a bounded pool. Only strictly positive balances are kept. Tokens
    without a resolvable price stay in the result valued at zero.

    Any discovery failure degrades to a native-only result; it is logged but
    never raised.

    Parameters
    ----------
    adapter_for : Callable[[str], Any]
        Returns the chain adapter for a chain id
    spot_prices : PriceCache
        Native price cache keyed by chain id
    token_prices : PriceCache
        Token price cache keyed by ``chain:contract``
    max_workers : int
        Concurrent token balance queries per wallet

    """

    def __init__(
        self,
        adapter_for: Callable[[str], Any],
        spot_prices: PriceCache,
        token_prices: PriceCache,
        max_workers: int = DEFAULT_TOKEN_WORKERS,
    ) -> None:
        self.adapter_for = adapter_for
        self.spot_prices = spot_prices
        self.token_prices = token_prices
        self.max_workers = max_workers

    def enrich(
        self,
        address: str,
        chain: str,
        native_balance: str,
        cancel: CancelToken | None = None,
    ) -> NormalizedBalance:
        """
        Build a valued balance for a wallet.

        Parameters
        ----------
        address : str
            Wallet address
        chain : str
            Chain id
        native_balance : str
            Native balance already fetched by the chain adapter
        cancel : CancelToken | None
            Aborts discovery between token queries

        Returns
        -------
        NormalizedBalance
            Native plus retained tokens; native only if discovery failed or the
            chain is not token-capable

        """
        adapter = self.adapter_for(chain)
        balance = self.native_only(adapter, address, native_balance)

        if not adapter.supports_tokens:
            return balance

        try:
            balance.tokens = self.discover_tokens(adapter, address, cancel)
        except EnrichmentError as e:
            logger.warning("Token enrichment failed for %s on %s: %s", address, chain, e)
            balance.tokens = []

        return balance

    def native_only(self, adapter: Any, address: str, native_balance: str) -> NormalizedBalance:
        """Native balance valued at the cached spot price."""
        try:
            amount = Decimal(native_balance)
        except InvalidOperation:
            logger.warning("Unparseable %s balance %r for %s", adapter.name, native_balance, address)
            amount = ZERO

        price = self.spot_prices.get_spot(adapter.name) if amount > 0 else ZERO
        return NormalizedBalance(
            chain=adapter.name,
            address=address,
            native_symbol=adapter.native_symbol,
            native_balance=native_balance,
            native_price=price,
            native_usd_value=amount * price,
        )

    def discover_tokens(self, adapter: Any, address: str, cancel: CancelToken | None = None) -> list[TokenHolding]:
        """
        Discover and value the tokens a wallet currently holds.

        Raises
        ------
        EnrichmentError
            If listing transfers or any balance query fails, or on cancellation

        """
        try:
            transfers = adapter.list_token_transfers(address)
        except HoldingsTrackerError as e:
            msg = f"transfer listing failed: {e}"
            raise EnrichmentError(msg) from e

        candidates = self._dedupe_contracts(transfers)
        if not candidates:
            return []

        logger.debug("Checking %d token contracts for %s on %s", len(candidates), address, adapter.name)

        holdings: list[TokenHolding] = []
        with ThreadPoolExecutor(max_workers=min(len(candidates), self.max_workers)) as executor:
            future_to_contract = {
                executor.submit(self._token_holding, adapter, address, contract, meta): contract
                for contract, meta in candidates.items()
            }

            for future in as_completed(future_to_contract):
                if cancel is not None and cancel.cancelled:
                    for pending in future_to_contract:
                        pending.cancel()
                    msg = "refresh cancelled"
                    raise EnrichmentError(msg)

                contract = future_to_contract[future]
                try:
                    holding = future.result()
                except (HoldingsTrackerError, ValueError, TypeError, InvalidOperation) as e:
                    for pending in future_to_contract:
                        pending.cancel()
                    msg = f"balance query for {contract} failed: {e}"
                    raise EnrichmentError(msg) from e

                if holding is not None:
                    holdings.append(holding)

        # Completion order is arbitrary; present largest holdings first
        holdings.sort(key=lambda h: (-h.usd_value, h.symbol))
        return holdings

    def _token_holding(self, adapter: Any, address: str, contract: str, meta: dict[str, Any]) -> TokenHolding | None:
        raw = adapter.get_token_balance(address, contract)
        if raw <= 0:
            return None

        decimals = int(meta.get("tokenDecimal") or 0)
        amount = adapter.from_base_units(raw, decimals)
        price = self.token_prices.get_spot(token_price_key(adapter.name, contract))

        return TokenHolding(
            symbol=meta.get("tokenSymbol") or "UNKNOWN",
            name=meta.get("tokenName") or "Unknown Token",
            balance=adapter.format_amount(amount, min(decimals, MAX_TOKEN_DISPLAY_DECIMALS)),
            decimals=decimals,
            contract_address=contract,
            price=price,
            usd_value=amount * price,
        )

    @staticmethod
    def _dedupe_contracts(transfers: list[dict[str, Any]]) -> dict[str, dict[str, Any]]:
        candidates: dict[str, dict[str, Any]] = {}
        for transfer in transfers:
            contract = str(transfer.get("contractAddress") or "").lower()
            if contract and contract not in candidates:
                candidates[contract] = transfer
        return candidates
