"""Bitcoin adapter backed by an Esplora-compatible API."""

from decimal import Decimal

from holdings_tracker.chains.base import BaseChainAdapter
from holdings_tracker.core.registry import ChainRegistry
from holdings_tracker.errors import AdapterError


@ChainRegistry.register
class BitcoinAdapter(BaseChainAdapter):
    """
    Bitcoin balances from confirmed chain statistics.

    Balance is funded minus spent outputs; unconfirmed mempool activity is
    ignored.

    """

    name = "bitcoin"

    def endpoint(self) -> str:
        return self.config["api_url"]

    def query_native_balance(self, address: str) -> Decimal:
        data = self.client.get_json(f"/address/{address}")
        stats = data.get("chain_stats") if isinstance(data, dict) else None
        if not stats:
            msg = f"bitcoin API returned no chain stats for {address}"
            raise AdapterError(msg)
        satoshis = int(stats["funded_txo_sum"]) - int(stats["spent_txo_sum"])
        return self.from_base_units(satoshis)
