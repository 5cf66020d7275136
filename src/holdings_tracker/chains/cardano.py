"""Cardano adapter backed by the Koios REST API."""

from decimal import Decimal

from holdings_tracker.chains.base import BaseChainAdapter
from holdings_tracker.core.registry import ChainRegistry
from holdings_tracker.errors import AdapterError


@ChainRegistry.register
class CardanoAdapter(BaseChainAdapter):
    """ADA balance (lovelace) via ``address_info``."""

    name = "cardano"

    def endpoint(self) -> str:
        return self.config["api_url"]

    def query_native_balance(self, address: str) -> Decimal:
        data = self.client.post_json("/address_info", {"_addresses": [address]})
        if not isinstance(data, list):
            msg = "cardano API returned an unexpected payload"
            raise AdapterError(msg)
        # Addresses never seen on chain are simply absent
        if not data:
            return Decimal("0")
        return self.from_base_units(data[0].get("balance") or 0)
