from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from .portfolio import PortfolioSnapshot, QueryState


class QueryRequest(BaseModel):
    address: str = Field(description="Wallet address to analyze")


class SnapshotResponse(BaseModel):
    state: QueryState = Field(description="Loading/error state of the current query")
    snapshot: Optional[PortfolioSnapshot] = Field(default=None, description="Latest published snapshot")


class HoldingsResponse(BaseModel):
    state: QueryState = Field(description="Loading/error state of the current query")
    rows: List[Dict[str, Any]] = Field(default_factory=list, description="Filtered, sorted and formatted rows")
    total_rows: int = Field(default=0, description="Holdings before filtering")
    dropped_count: int = Field(default=0, description="Holdings that could not be priced")
