import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..config import settings
from ..core.aggregator import PortfolioAggregator
from ..core.filters import COLUMNS, HoldingFilter, SortKey, render_rows, sort_holdings
from ..core.formatting import distribution_series, value_series
from ..core.risk import tier_ratios
from ..errors import InvalidAddress
from ..types import HoldingsResponse, QueryRequest, QueryState, SnapshotResponse

router = APIRouter(prefix="/portfolio")
_logger = logging.getLogger(__name__)


def get_aggregator(request: Request) -> PortfolioAggregator:
    return request.app.state.aggregator


@router.post("/query")
async def start_query(
    payload: QueryRequest,
    wait: bool = Query(False, description="Block until every enrichment has settled"),
    aggregator: PortfolioAggregator = Depends(get_aggregator),
) -> QueryState:
    """Start a portfolio query for a wallet, replacing any query in flight"""

    try:
        aggregator.start_query(payload.address)
    except InvalidAddress as exc:
        raise HTTPException(status_code=400, detail=exc.message)

    if wait:
        await aggregator.wait()
    return aggregator.state


@router.get("/snapshot")
async def get_snapshot(aggregator: PortfolioAggregator = Depends(get_aggregator)) -> SnapshotResponse:
    """Latest published snapshot plus loading/error state"""
    return SnapshotResponse(state=aggregator.state, snapshot=aggregator.current_snapshot)


@router.get("/holdings")
async def get_holdings(
    search: Optional[str] = Query(None, description="Substring of symbol or mint"),
    high_risk: Optional[bool] = Query(None, description="true: only pump tokens, false: hide them"),
    min_market_cap: Optional[float] = Query(None, ge=0),
    max_market_cap: Optional[float] = Query(None, ge=0),
    min_volume_24h: Optional[float] = Query(None, ge=0),
    max_volume_24h: Optional[float] = Query(None, ge=0),
    min_pair_age_days: Optional[int] = Query(None, ge=0),
    max_pair_age_days: Optional[int] = Query(None, ge=0),
    hide_small: bool = Query(False, description="Hide holdings below the USD floor"),
    floor_usd: Optional[float] = Query(None, ge=0, description="USD floor used by hide_small"),
    sort: Optional[SortKey] = Query(None, description="Column to sort on"),
    descending: bool = Query(True),
    aggregator: PortfolioAggregator = Depends(get_aggregator),
) -> HoldingsResponse:
    """Filtered, sorted and formatted holding rows for table views"""

    snapshot = aggregator.current_snapshot
    if snapshot is None:
        return HoldingsResponse(state=aggregator.state)

    holding_filter = HoldingFilter(
        search=search,
        high_risk_category=high_risk,
        min_market_cap=min_market_cap,
        max_market_cap=max_market_cap,
        min_volume_24h=min_volume_24h,
        max_volume_24h=max_volume_24h,
        min_pair_age_days=min_pair_age_days,
        max_pair_age_days=max_pair_age_days,
        value_floor_usd=(settings.small_asset_floor_usd if floor_usd is None else floor_usd) if hide_small else None,
    )
    holdings = holding_filter.apply(snapshot.holdings)
    if sort is not None:
        holdings = sort_holdings(holdings, sort, descending=descending)

    return HoldingsResponse(
        state=aggregator.state,
        rows=render_rows(holdings),
        total_rows=len(snapshot.holdings),
        dropped_count=snapshot.dropped_count,
    )


@router.get("/columns")
async def get_columns() -> List[Dict[str, Any]]:
    return [column.describe() for column in COLUMNS]


@router.get("/charts")
async def get_charts(aggregator: PortfolioAggregator = Depends(get_aggregator)) -> Dict[str, Any]:
    """Series for the distribution, value and risk widgets"""
    snapshot = aggregator.current_snapshot
    if snapshot is None:
        return {"distribution": [], "values": [], "risk": None}
    return {
        "distribution": distribution_series(snapshot.holdings),
        "values": value_series(snapshot.holdings),
        "risk": {
            "score": snapshot.risk_score,
            "tiers": {tier.value: ratio for tier, ratio in tier_ratios(snapshot.holdings).items()},
        },
    }
