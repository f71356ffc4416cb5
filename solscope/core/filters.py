"""
Holding predicates, sorting and the column schema.

Everything here is a pure function over Holding so table and chart code
can combine filters freely. ``HoldingFilter`` bundles the common
combination, and ``COLUMNS`` is the single column definition that every
presentation variant renders from.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional, Sequence

from ..types.portfolio import Holding
from .formatting import format_market_cap, format_to_first_non_zero_decimal, format_usd
from .risk import TIER_WEIGHTS

Number = Any  # Decimal | float | int


def matches_search(holding: Holding, text: Optional[str]) -> bool:
    """Case-insensitive substring match on symbol or mint address."""
    needle = (text or "").strip().lower()
    if not needle:
        return True
    return needle in (holding.symbol or "").lower() or needle in holding.asset_id.lower()


def is_high_risk_category(holding: Holding) -> bool:
    """True for pump.fun launches (mint address ending in ``pump``)."""
    return holding.is_high_risk_category


def _in_range(value: Decimal, minimum: Optional[Number], maximum: Optional[Number]) -> bool:
    if minimum is not None and value < minimum:
        return False
    if maximum is not None and value > maximum:
        return False
    return True


def market_cap_in_range(holding: Holding, min_cap: Optional[Number] = None, max_cap: Optional[Number] = None) -> bool:
    """Inclusive market cap range; a missing market cap counts as 0."""
    return _in_range(holding.market_cap_usd or Decimal(0), min_cap, max_cap)


def volume_in_range(holding: Holding, min_volume: Optional[Number] = None, max_volume: Optional[Number] = None) -> bool:
    return _in_range(holding.volume_24h_usd or Decimal(0), min_volume, max_volume)


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def pair_age_days(holding: Holding, now: Optional[datetime] = None) -> Optional[int]:
    if holding.pair_created_at is None:
        return None
    now = _as_utc(now or datetime.now(timezone.utc))
    return int((now - _as_utc(holding.pair_created_at)).total_seconds() // 86400)


def pair_age_in_range(
    holding: Holding,
    min_days: Optional[int] = None,
    max_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> bool:
    """Inclusive pair age range in whole days. Holdings without a pair date only pass an open range."""
    if min_days is None and max_days is None:
        return True
    age = pair_age_days(holding, now)
    if age is None:
        return False
    return _in_range(Decimal(age), min_days, max_days)


def above_value_floor(holding: Holding, floor: Number = 1) -> bool:
    """Hide-small-assets check: ``value_usd >= floor``. Unpriced holdings count as 0."""
    return (holding.value_usd or Decimal(0)) >= floor


@dataclass
class HoldingFilter:
    search: Optional[str] = None
    high_risk_category: Optional[bool] = None  # True: only pump tokens, False: hide them
    min_market_cap: Optional[Number] = None
    max_market_cap: Optional[Number] = None
    min_volume_24h: Optional[Number] = None
    max_volume_24h: Optional[Number] = None
    min_pair_age_days: Optional[int] = None
    max_pair_age_days: Optional[int] = None
    value_floor_usd: Optional[Number] = None  # None keeps small assets

    def matches(self, holding: Holding, now: Optional[datetime] = None) -> bool:
        if not matches_search(holding, self.search):
            return False
        if self.high_risk_category is not None and is_high_risk_category(holding) != self.high_risk_category:
            return False
        if not market_cap_in_range(holding, self.min_market_cap, self.max_market_cap):
            return False
        if not volume_in_range(holding, self.min_volume_24h, self.max_volume_24h):
            return False
        if not pair_age_in_range(holding, self.min_pair_age_days, self.max_pair_age_days, now):
            return False
        if self.value_floor_usd is not None and not above_value_floor(holding, self.value_floor_usd):
            return False
        return True

    def apply(self, holdings: Iterable[Holding], now: Optional[datetime] = None) -> List[Holding]:
        return [h for h in holdings if self.matches(h, now)]


class SortKey(str, Enum):
    SYMBOL = "symbol"
    QUANTITY = "quantity"
    PRICE = "price_usd"
    VALUE = "value_usd"
    MARKET_CAP = "market_cap_usd"
    PRICE_CHANGE_24H = "price_change_24h"
    VOLUME_24H = "volume_24h_usd"
    RISK = "risk_tier"


def _sort_value(holding: Holding, key: SortKey) -> Any:
    if key == SortKey.SYMBOL:
        return holding.symbol.lower() if holding.symbol else None
    if key == SortKey.RISK:
        return _RISK_ORDER.get(holding.risk_tier) if holding.risk_tier else None
    return getattr(holding, key.value)


def sort_holdings(holdings: Iterable[Holding], key: SortKey | str, descending: bool = False) -> List[Holding]:
    """Stable sort on one column; holdings missing the value always go last."""
    key = SortKey(key)
    present = []
    missing = []
    for holding in holdings:
        (missing if _sort_value(holding, key) is None else present).append(holding)
    present.sort(key=lambda h: _sort_value(h, key), reverse=descending)
    return present + missing


@dataclass(frozen=True)
class ColumnSpec:
    key: str
    label: str
    accessor: Callable[[Holding], Any]
    formatter: Callable[[Any], str] = str
    sortable: bool = False
    sort_key: Optional[SortKey] = None

    def render(self, holding: Holding) -> str:
        value = self.accessor(holding)
        if value is None:
            return "-"
        return self.formatter(value)

    def describe(self) -> dict:
        return {
            "key": self.key,
            "label": self.label,
            "sortable": self.sortable,
            "sort_key": self.sort_key.value if self.sort_key else None,
        }


def _format_quantity(value: Decimal) -> str:
    return f"{value:.4f}"


def _format_percent(value: Decimal) -> str:
    return f"{value:+.2f}%"


_RISK_ORDER = {tier: index for index, tier in enumerate(TIER_WEIGHTS)}

COLUMNS: Sequence[ColumnSpec] = (
    ColumnSpec("symbol", "Symbol", lambda h: h.symbol, sortable=True, sort_key=SortKey.SYMBOL),
    ColumnSpec("name", "Name", lambda h: h.name),
    ColumnSpec("quantity", "Balance", lambda h: h.quantity, _format_quantity, True, SortKey.QUANTITY),
    ColumnSpec("price_usd", "Price (USD)", lambda h: h.price_usd, format_to_first_non_zero_decimal, True, SortKey.PRICE),
    ColumnSpec("value_usd", "Value (USD)", lambda h: h.value_usd, format_usd, True, SortKey.VALUE),
    ColumnSpec("market_cap_usd", "Market Cap", lambda h: h.market_cap_usd, format_market_cap, True, SortKey.MARKET_CAP),
    ColumnSpec("price_change_24h", "24h Change", lambda h: h.price_change_24h, _format_percent, True,
               SortKey.PRICE_CHANGE_24H),
    ColumnSpec("volume_24h_usd", "24h Volume", lambda h: h.volume_24h_usd, format_market_cap, True, SortKey.VOLUME_24H),
    ColumnSpec("risk_tier", "Risk", lambda h: h.risk_tier.value if h.risk_tier else None, sortable=True,
               sort_key=SortKey.RISK),
)


def render_rows(holdings: Iterable[Holding], columns: Sequence[ColumnSpec] = COLUMNS) -> List[dict]:
    """Format holdings into table rows keyed by column, plus the raw links a table needs."""
    rows = []
    for holding in holdings:
        row = {column.key: column.render(holding) for column in columns}
        row["asset_id"] = holding.asset_id
        row["logo_url"] = holding.logo_url
        row["url"] = holding.url
        row["is_high_risk_category"] = holding.is_high_risk_category
        rows.append(row)
    return rows
