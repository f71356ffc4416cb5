from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field


class RiskTier(str, Enum):
    """Coarse liquidity/verification risk of a single asset."""
    STABLE = "stable"
    LOW = "low"
    MEDIUM = "medium"
    MEDIUM_HIGH = "medium_high"
    HIGH = "high"


class MissReason(str, Enum):
    TRANSPORT_ERROR = "transport_error"
    PARSE_ERROR = "parse_error"
    NO_MARKET_DATA = "no_market_data"


class SnapshotStatus(str, Enum):
    LOADING = "loading"
    COMPLETE = "complete"
    PARTIAL = "partial"


class QueryStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RawHolding(BaseModel):
    model_config = ConfigDict(frozen=True)

    asset_id: str = Field(description="Token mint address")
    quantity: Decimal = Field(gt=0, description="Balance in display units")
    raw_amount: int = Field(ge=0, description="Balance in base units")
    decimals: int = Field(ge=0, description="Token decimal places")


class MarketData(BaseModel):
    model_config = ConfigDict(frozen=True)

    asset_id: str = Field(description="Token mint address")
    symbol: str = Field(description="Token symbol")
    name: str = Field(description="Full token name")
    logo_url: Optional[str] = Field(default=None, description="Token logo")
    price_usd: Decimal = Field(description="Price per token in USD")
    market_cap_usd: Optional[Decimal] = Field(default=None, description="Market capitalization in USD")
    url: Optional[str] = Field(default=None, description="Market page for the first trading pair")
    price_change_24h: Optional[Decimal] = Field(default=None, description="24h price change in percent")
    volume_24h_usd: Optional[Decimal] = Field(default=None, description="24h trading volume in USD")
    liquidity_usd: Optional[Decimal] = Field(default=None, description="Pair liquidity in USD")
    pair_created_at: Optional[datetime] = Field(default=None, description="When the pair was created")


class NotFound(BaseModel):
    """Enrichment miss: no usable market data for ``asset_id``."""

    model_config = ConfigDict(frozen=True)

    asset_id: str
    reason: MissReason
    detail: Optional[str] = None


class Holding(BaseModel):
    model_config = ConfigDict(frozen=True)

    asset_id: str = Field(description="Token mint address")
    quantity: Decimal = Field(description="Balance in display units")
    symbol: Optional[str] = None
    name: Optional[str] = None
    logo_url: Optional[str] = None
    price_usd: Optional[Decimal] = None
    market_cap_usd: Optional[Decimal] = None
    url: Optional[str] = None
    price_change_24h: Optional[Decimal] = None
    volume_24h_usd: Optional[Decimal] = None
    liquidity_usd: Optional[Decimal] = None
    pair_created_at: Optional[datetime] = None
    risk_tier: Optional[RiskTier] = None

    @computed_field  # type: ignore[misc]
    @property
    def value_usd(self) -> Optional[Decimal]:
        if self.price_usd is None:
            return None
        return self.quantity * self.price_usd

    @computed_field  # type: ignore[misc]
    @property
    def is_high_risk_category(self) -> bool:
        return self.asset_id.lower().endswith("pump")

    @classmethod
    def from_market_data(cls, raw: RawHolding, market: MarketData, risk_tier: Optional[RiskTier] = None) -> "Holding":
        return cls(
            asset_id=raw.asset_id,
            quantity=raw.quantity,
            symbol=market.symbol,
            name=market.name,
            logo_url=market.logo_url,
            price_usd=market.price_usd,
            market_cap_usd=market.market_cap_usd,
            url=market.url,
            price_change_24h=market.price_change_24h,
            volume_24h_usd=market.volume_24h_usd,
            liquidity_usd=market.liquidity_usd,
            pair_created_at=market.pair_created_at,
            risk_tier=risk_tier,
        )


class DiscoveryResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str
    native_balance: Decimal = Field(description="SOL balance in display units")
    holdings: Tuple[RawHolding, ...] = ()


class PortfolioSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str = Field(description="Wallet address")
    generation: int = Field(default=0, description="Query generation that produced this snapshot")
    native_balance: Decimal = Field(description="SOL balance in display units")
    holdings: Tuple[Holding, ...] = Field(default=(), description="Enriched holdings in merge order")
    total_value_usd: Decimal = Field(default=Decimal("0"), description="Sum of holding values in USD")
    risk_score: float = Field(default=0.0, ge=0, le=100, description="Value-weighted risk score")
    tier_values_usd: Dict[RiskTier, Decimal] = Field(default_factory=dict, description="USD value per risk tier")
    discovered_count: int = Field(default=0, description="Holdings found on-chain")
    pending_count: int = Field(default=0, description="Holdings still awaiting enrichment")
    dropped_count: int = Field(default=0, description="Holdings that could not be priced")
    status: SnapshotStatus = SnapshotStatus.LOADING
    updated_at: datetime = Field(default_factory=_utcnow)

    def holding(self, asset_id: str) -> Optional[Holding]:
        for item in self.holdings:
            if item.asset_id == asset_id:
                return item
        return None


class QueryState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: QueryStatus = QueryStatus.IDLE
    address: Optional[str] = None
    generation: int = 0
    error: Optional[str] = Field(default=None, description="User-facing error message")
    error_code: Optional[str] = Field(default=None, description="invalid_address or discovery_failed")
