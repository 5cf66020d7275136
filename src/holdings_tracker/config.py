"""Runtime settings."""

import os

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "HOLDINGS_"


class Settings(BaseModel):
    """
    Runtime configuration for network clients, caching and the vault.

    Attributes
    ----------
    explorer_api_key : str | None
        API key for the Etherscan-family explorer endpoints
    coingecko_api_key : str | None
        CoinGecko demo/pro API key (optional)
    http_timeout : float
        Timeout in seconds applied to every external HTTP call
    price_ttl : float
        Seconds a cached price is considered fresh
    max_workers : int
        Bounded fan-out size for balance refreshes (clamped to 4..8)
    kdf_iterations : int
        PBKDF2 iteration count for the secret vault
    vault_salt : str
        Application-wide KDF salt
    clipboard_clear_delay : float
        Seconds before a copied secret is wiped from the clipboard
    idle_timeout : float
        Seconds of inactivity before revealed secrets are re-hidden
    max_history_days : int
        Maximum lookback the crypto history service retains

    """

    explorer_api_key: str | None = None
    coingecko_api_key: str | None = None
    http_timeout: float = 10.0
    price_ttl: float = 300.0
    max_workers: int = 4
    kdf_iterations: int = 100_000
    vault_salt: str = "holdings-tracker-vault-salt"
    clipboard_clear_delay: float = 30.0
    idle_timeout: float = 300.0
    max_history_days: int = 365
    store_path: str = Field(default="~/.holdings-tracker/store.json")

    @field_validator("max_workers")
    @classmethod
    def _clamp_workers(cls, value: int) -> int:
        return max(4, min(8, value))

    @field_validator("http_timeout")
    @classmethod
    def _bounded_timeout(cls, value: float) -> float:
        if value <= 0:
            msg = "http_timeout must be positive"
            raise ValueError(msg)
        return value

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Settings":
        """
        Build settings from ``HOLDINGS_*`` environment variables.

        Parameters
        ----------
        environ : dict[str, str] | None
            Environment mapping. Uses ``os.environ`` if None.

        Returns
        -------
        Settings
            Settings with environment overrides applied

        """
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw
        return cls(**values)
