"""XRP Ledger adapter."""

import logging
from decimal import Decimal

from holdings_tracker.chains.base import BaseChainAdapter
from holdings_tracker.core.registry import ChainRegistry
from holdings_tracker.errors import AdapterError

logger = logging.getLogger(__name__)


@ChainRegistry.register
class RippleAdapter(BaseChainAdapter):
    """
    XRP balance via ``account_info`` on a public rippled cluster.

    An unfunded account (``actNotFound``) holds zero XRP; this is a real
    answer, not a failure.

    """

    name = "ripple"

    def endpoint(self) -> str:
        return self.config["rpc_url"]

    def query_native_balance(self, address: str) -> Decimal:
        data = self.client.post_json(
            "",
            {"method": "account_info", "params": [{"account": address, "ledger_index": "validated"}]},
        )
        result = data.get("result") if isinstance(data, dict) else None
        if not isinstance(result, dict):
            msg = "ripple RPC returned no result"
            raise AdapterError(msg)

        if result.get("status") != "success":
            if result.get("error") == "actNotFound":
                logger.debug("XRP account %s is not funded", address)
                return Decimal("0")
            msg = f"ripple RPC error: {result.get('error_message') or result.get('error')}"
            raise AdapterError(msg)

        drops = result["account_data"]["Balance"]
        return self.from_base_units(drops)
