"""EVM chain adapters: Etherscan-family explorers and JSON-RPC."""

import logging
from decimal import Decimal
from typing import Any, ClassVar

from holdings_tracker.chains.base import BaseChainAdapter
from holdings_tracker.core.registry import ChainRegistry
from holdings_tracker.errors import AdapterError

logger = logging.getLogger(__name__)

# Explorer messages for a valid query with no rows
EMPTY_RESULT_MESSAGES = ("no transactions found", "no records found", "no token transfers found")


class ExplorerAdapter(BaseChainAdapter):
    """
    Adapter for chains served by an Etherscan-compatible explorer API.

    Provides the three endpoint families used for balances and token
    discovery: balance-by-address, token-transfers-by-address and
    token-balance-by-contract.

    """

    supports_tokens: ClassVar[bool] = True

    def endpoint(self) -> str:
        return self.config["explorer"]["url"]

    def query_native_balance(self, address: str) -> Decimal:
        result = self._call({"module": "account", "action": "balance", "address": address, "tag": "latest"})
        return self.from_base_units(result)

    def list_token_transfers(self, address: str) -> list[dict[str, Any]]:
        """
        Fetch ERC-20 transfer events touching an address.

        Parameters
        ----------
        address : str
            Wallet address

        Returns
        -------
        list[dict[str, Any]]
            Raw transfer rows (contractAddress, tokenSymbol, tokenName, tokenDecimal, ...)

        Raises
        ------
        AdapterError
            If the explorer reports an error
        ServiceError
            If the HTTP call fails

        """
        result = self._call(
            {
                "module": "account",
                "action": "tokentx",
                "address": address,
                "startblock": 0,
                "endblock": 99999999,
                "sort": "asc",
            },
            allow_empty=True,
        )
        if not isinstance(result, list):
            return []
        return result

    def get_token_balance(self, address: str, contract_address: str) -> int:
        """
        Fetch the raw (base-unit) balance of one token contract.

        Raises
        ------
        AdapterError
            If the explorer reports an error
        ServiceError
            If the HTTP call fails

        """
        result = self._call(
            {
                "module": "account",
                "action": "tokenbalance",
                "contractaddress": contract_address,
                "address": address,
                "tag": "latest",
            }
        )
        return int(result)

    def _call(self, params: dict[str, Any], allow_empty: bool = False) -> Any:
        query = {"chainid": self.config["explorer"]["chain_id"], **params}
        if self.settings.explorer_api_key:
            query["apikey"] = self.settings.explorer_api_key

        data = self.client.get_json("", params=query)
        if not isinstance(data, dict):
            msg = f"{self.name} explorer returned an unexpected payload"
            raise AdapterError(msg)

        if str(data.get("status")) == "1":
            return data.get("result")

        message = str(data.get("message") or "")
        if allow_empty and message.lower() in EMPTY_RESULT_MESSAGES:
            return []

        # Rate limits and API-key errors arrive as status 0 with HTTP 200
        msg = f"{self.name} explorer error: {message} {data.get('result')}".strip()
        raise AdapterError(msg)


@ChainRegistry.register
class EthereumAdapter(ExplorerAdapter):
    """Ethereum mainnet."""

    name = "ethereum"


@ChainRegistry.register
class PolygonAdapter(ExplorerAdapter):
    """Polygon PoS."""

    name = "polygon"


@ChainRegistry.register
class BinanceAdapter(ExplorerAdapter):
    """BNB Smart Chain."""

    name = "binance"


@ChainRegistry.register
class AvalancheAdapter(ExplorerAdapter):
    """Avalanche C-Chain."""

    name = "avalanche"


@ChainRegistry.register
class CronosAdapter(BaseChainAdapter):
    """
    Cronos via public JSON-RPC.

    The Cronos explorer API requires authentication, so only the native
    balance is available and token discovery is not attempted.

    """

    name = "cronos"

    def endpoint(self) -> str:
        return self.config["rpc_url"]

    def query_native_balance(self, address: str) -> Decimal:
        data = self.client.post_json(
            "",
            {"jsonrpc": "2.0", "id": 1, "method": "eth_getBalance", "params": [address, "latest"]},
        )
        if not isinstance(data, dict) or "result" not in data:
            error = data.get("error") if isinstance(data, dict) else data
            msg = f"cronos RPC error: {error}"
            raise AdapterError(msg)
        return self.from_base_units(int(data["result"], 16))
