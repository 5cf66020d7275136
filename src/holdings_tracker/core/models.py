"""Data models for wallets, manual positions, balances and valuations."""

from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from enum import StrEnum

from pydantic import BaseModel, Field

ZERO = Decimal("0")


def format_usd(value: Decimal | float | None) -> str:
    """
    Format a USD amount for display.

    Non-positive, missing or non-finite amounts render as ``$0.00`` so that a
    missing price never shows up as a negative or NaN value.

    """
    if value is None:
        return "$0.00"
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return "$0.00"
    if not amount.is_finite() or amount <= 0:
        return "$0.00"
    return f"${amount:.2f}"


def utc_now() -> datetime:
    return datetime.now(UTC)


class AssetClass(StrEnum):
    """Asset class of a manually entered position."""

    EQUITY = "equity"
    METAL = "metal"
    COMMODITY = "commodity"
    CRYPTO = "crypto"
    TOKENIZED = "tokenized"


class WeightUnit(StrEnum):
    """Weight unit for metal positions."""

    OZ = "oz"
    G = "g"
    KG = "kg"


class Wallet(BaseModel):
    """
    On-chain wallet tracked by address.

    Attributes
    ----------
    id : str
        Opaque identifier assigned by the store
    user_id : str
        Owning user
    name : str
        Display name
    chain : str
        Chain identifier (e.g., 'ethereum', 'bitcoin')
    address : str
        Public address
    encrypted_secret : str | None
        Encrypted recovery phrase blob. None means address-only.
    notes : str | None
        Free-text note

    """

    id: str
    user_id: str
    name: str
    chain: str
    address: str
    encrypted_secret: str | None = None
    notes: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def has_secret(self) -> bool:
        return self.encrypted_secret is not None


class WalletInput(BaseModel):
    """User-supplied wallet fields. ``secret`` is plaintext and never stored."""

    name: str
    chain: str
    address: str
    secret: str | None = None
    notes: str | None = None


class ManualPosition(BaseModel):
    """
    Manually entered holding valued from quoted prices.

    Attributes
    ----------
    asset_class : AssetClass
        Asset class tag
    name : str
        Human-readable name
    symbol : str | None
        Ticker, coin id or metal name
    quantity : Decimal
        Units held (weight for metals)
    cost_basis : Decimal
        Cost per unit
    weight_unit : WeightUnit | None
        Only meaningful for metals

    """

    id: str
    user_id: str
    asset_class: AssetClass
    name: str
    symbol: str | None = None
    quantity: Decimal
    cost_basis: Decimal
    weight_unit: WeightUnit | None = None
    notes: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class PositionInput(BaseModel):
    """User-supplied position fields."""

    asset_class: AssetClass
    name: str
    symbol: str | None = None
    quantity: Decimal
    cost_basis: Decimal
    weight_unit: WeightUnit | None = None
    notes: str | None = None


class AddressClassification(BaseModel):
    """
    Result of classifying an address by format.

    Attributes
    ----------
    candidates : list[str]
        Chains whose address format matches
    ambiguous : bool
        True when the format cannot distinguish between candidates
    format_label : str
        Human-readable format name

    """

    candidates: list[str] = Field(default_factory=list)
    ambiguous: bool = False
    format_label: str


class TokenHolding(BaseModel):
    """Non-native token held by a wallet. Only emitted with a positive balance."""

    symbol: str
    name: str
    balance: str
    decimals: int
    contract_address: str
    price: Decimal = ZERO
    usd_value: Decimal = ZERO

    @property
    def usd_display(self) -> str:
        return format_usd(self.usd_value)


class NormalizedBalance(BaseModel):
    """
    Native and token balance of one wallet, valued in USD.

    Ephemeral: recomputed on every refresh.

    """

    chain: str
    address: str
    native_symbol: str
    native_balance: str = "0.00"
    native_price: Decimal = ZERO
    native_usd_value: Decimal = ZERO
    tokens: list[TokenHolding] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utc_now)

    @property
    def total_usd_value(self) -> Decimal:
        """Native value plus every retained token value, unknown prices included as zero."""
        return self.native_usd_value + sum((token.usd_value for token in self.tokens), ZERO)

    @property
    def native_usd_display(self) -> str:
        return format_usd(self.native_usd_value)

    @property
    def total_usd_display(self) -> str:
        return format_usd(self.total_usd_value)


class SeriesKind(StrEnum):
    """Source family of a historical price series."""

    CRYPTO = "crypto"
    EQUITY = "equity"
    METAL = "metal"


class PricePoint(BaseModel):
    """A single historical price sample."""

    timestamp: datetime
    price: float


class AssetSeries(BaseModel):
    """
    Historical price curve of one holding.

    The value at each sample is ``quantity * price``. A series flagged as
    ``anchor`` defines the output timeline when merging. ``series_id`` tells
    apart holdings that share a display label.

    """

    label: str
    kind: SeriesKind
    quantity: float = 1.0
    points: list[PricePoint] = Field(default_factory=list)
    anchor: bool = False
    series_id: str | None = None


class TimePoint(BaseModel):
    """One sample of the merged portfolio timeline."""

    timestamp: datetime
    label: str
    values: dict[str, float] = Field(default_factory=dict)
    total: float = 0.0


class HoldingValuation(BaseModel):
    """
    Current value and P&L of one holding.

    Attributes
    ----------
    source : str
        'wallet' or 'position'
    current_price : Decimal | None
        Live unit price, None when no price resolved
    current_value : Decimal
        Live value, or cost value when no price resolved
    pnl : Decimal | None
        current_value - cost_value, None without a cost basis
    pnl_pct : Decimal | None
        P&L as a percentage of cost value, None when cost value is zero

    """

    source: str
    label: str
    asset_class: AssetClass
    chain: str | None = None
    quantity: Decimal = ZERO
    current_price: Decimal | None = None
    current_value: Decimal = ZERO
    cost_value: Decimal | None = None
    pnl: Decimal | None = None
    pnl_pct: Decimal | None = None
    priced: bool = True


class PortfolioValuation(BaseModel):
    """Aggregated point-in-time valuation across wallets and positions."""

    total_usd_value: Decimal = ZERO
    wallets_usd_value: Decimal = ZERO
    positions_usd_value: Decimal = ZERO
    holdings: list[HoldingValuation] = Field(default_factory=list)
    by_chain: dict[str, Decimal] = Field(default_factory=dict)
    by_asset_class: dict[str, Decimal] = Field(default_factory=dict)
    total_pnl: Decimal = ZERO
