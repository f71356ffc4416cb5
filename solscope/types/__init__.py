from .portfolio import (
    DiscoveryResult,
    Holding,
    MarketData,
    MissReason,
    NotFound,
    PortfolioSnapshot,
    QueryState,
    QueryStatus,
    RawHolding,
    RiskTier,
    SnapshotStatus,
)
from .responses import QueryRequest, SnapshotResponse, HoldingsResponse

__all__ = [
    "DiscoveryResult",
    "Holding",
    "MarketData",
    "MissReason",
    "NotFound",
    "PortfolioSnapshot",
    "QueryState",
    "QueryStatus",
    "RawHolding",
    "RiskTier",
    "SnapshotStatus",
    "QueryRequest",
    "SnapshotResponse",
    "HoldingsResponse",
]
