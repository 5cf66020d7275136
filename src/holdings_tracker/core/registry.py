"""Chain adapter registry with auto-registration pattern."""

from typing import Any, Protocol

from holdings_tracker.errors import UnsupportedChainError


class ChainAdapterInterface(Protocol):
    """
    Interface that all chain adapters must implement.

    Attributes
    ----------
    name : str
        Chain identifier the adapter serves (e.g., 'ethereum', 'bitcoin')
    supports_tokens : bool
        Whether the adapter can discover non-native token holdings

    Methods
    -------
    fetch_native_balance(address)
        Native balance as a decimal string, '0.00' on failure

    """

    name: str
    supports_tokens: bool

    def fetch_native_balance(self, address: str) -> str:
        """
        Fetch the native balance for an address.

        Parameters
        ----------
        address : str
            Wallet address

        Returns
        -------
        str
            Decimal string at chain-specific precision

        """
        ...


class ChainRegistry:
    """
    Registry of chain adapters keyed by chain id.

    Adapters register themselves using the @ChainRegistry.register decorator,
    so adding a chain is a one-class change plus its metadata entry.

    """

    _adapters: dict[str, type] = {}

    @classmethod
    def register(cls, adapter_class: type) -> type:
        """
        Decorator to register a chain adapter.

        Parameters
        ----------
        adapter_class : type
            Adapter class to register

        Returns
        -------
        type
            The adapter class (for decorator chaining)

        Examples
        --------
        >>> @ChainRegistry.register
        ... class BitcoinAdapter(BaseChainAdapter):
        ...     name = "bitcoin"

        """
        if not getattr(adapter_class, "name", ""):
            msg = f"Adapter {adapter_class.__name__} must define 'name' attribute"
            raise ValueError(msg)

        cls._adapters[adapter_class.name] = adapter_class
        return adapter_class

    @classmethod
    def get_adapter_class(cls, chain: str) -> type | None:
        """
        Get adapter class by chain id.

        Parameters
        ----------
        chain : str
            Chain identifier (case-insensitive)

        Returns
        -------
        type | None
            Adapter class or None if the chain is unsupported

        """
        return cls._adapters.get(chain.lower())

    @classmethod
    def create_adapter(cls, chain: str, **kwargs: Any) -> Any:
        """
        Instantiate the adapter for a chain.

        Raises
        ------
        UnsupportedChainError
            If no adapter is registered for the chain

        """
        adapter_class = cls.get_adapter_class(chain)
        if adapter_class is None:
            msg = f"No chain adapter registered for '{chain}'"
            raise UnsupportedChainError(msg)
        return adapter_class(**kwargs)

    @classmethod
    def is_supported(cls, chain: str) -> bool:
        return chain.lower() in cls._adapters

    @classmethod
    def get_token_capable_chains(cls) -> list[str]:
        """Chains whose adapter supports token discovery."""
        return [name for name, adapter_class in cls._adapters.items() if adapter_class.supports_tokens]

    @classmethod
    def list_chains(cls) -> list[str]:
        """
        Get list of all registered chain ids.

        Returns
        -------
        list[str]
            Chain identifiers

        """
        return list(cls._adapters.keys())

    @classmethod
    def clear(cls) -> None:
        """Clear all registered adapters (useful for testing)."""
        cls._adapters.clear()
