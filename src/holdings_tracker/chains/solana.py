"""Solana adapter using the public JSON-RPC endpoint."""

from decimal import Decimal

from holdings_tracker.chains.base import BaseChainAdapter
from holdings_tracker.core.registry import ChainRegistry
from holdings_tracker.errors import AdapterError


@ChainRegistry.register
class SolanaAdapter(BaseChainAdapter):
    """SOL balance via ``getBalance`` (lamports)."""

    name = "solana"

    def endpoint(self) -> str:
        return self.config["rpc_url"]

    def query_native_balance(self, address: str) -> Decimal:
        data = self.client.post_json(
            "",
            {"jsonrpc": "2.0", "id": 1, "method": "getBalance", "params": [address]},
        )
        try:
            lamports = data["result"]["value"]
        except (KeyError, TypeError) as e:
            error = data.get("error") if isinstance(data, dict) else data
            msg = f"solana RPC error: {error}"
            raise AdapterError(msg) from e
        return self.from_base_units(lamports)
