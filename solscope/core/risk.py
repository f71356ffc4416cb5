"""
Risk classification.

Each holding falls into one tier, decided in this order (first match wins):

    known stable asset (SOL, USDC, USDT)  -> STABLE
    market cap >= $100M                   -> LOW
    market cap >= $20M                    -> MEDIUM
    anything else                         -> HIGH

A missing or non-numeric market cap counts as 0. The portfolio risk
score is the value-weighted average of the tier weights, clamped to
[0, 100]. It is a UI signal for concentration in illiquid or unverified
assets, not a financial guarantee.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional, Union

from ..config import settings
from ..types.portfolio import Holding, RiskTier

LOW_RISK_MARKET_CAP = Decimal("100000000")
MEDIUM_RISK_MARKET_CAP = Decimal("20000000")

TIER_WEIGHTS: Dict[RiskTier, int] = {
    RiskTier.STABLE: 0,
    RiskTier.LOW: 0,
    RiskTier.MEDIUM: 33,
    RiskTier.MEDIUM_HIGH: 66,
    RiskTier.HIGH: 100,
}


def _market_cap(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        return Decimal(0)
    try:
        parsed = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return Decimal(0)
    return parsed if parsed.is_finite() else Decimal(0)


def is_known_stable(asset_id: str, stable_ids: Optional[Iterable[str]] = None) -> bool:
    ids = settings.known_stable_mints if stable_ids is None else stable_ids
    return asset_id in set(ids)


def classify(holding: Union[Holding, Decimal, float, int, None], is_known_stable: bool = False) -> RiskTier:
    """Return the risk tier for a holding (or a bare market cap). Never raises."""
    if is_known_stable:
        return RiskTier.STABLE

    raw_cap = holding.market_cap_usd if isinstance(holding, Holding) else holding
    market_cap = _market_cap(raw_cap)
    if market_cap >= LOW_RISK_MARKET_CAP:
        return RiskTier.LOW
    if market_cap >= MEDIUM_RISK_MARKET_CAP:
        return RiskTier.MEDIUM
    return RiskTier.HIGH


def tier_values(holdings: Iterable[Holding]) -> Dict[RiskTier, Decimal]:
    """USD value per tier. Unpriced or unclassified holdings contribute nothing."""
    totals: Dict[RiskTier, Decimal] = {tier: Decimal(0) for tier in RiskTier}
    for holding in holdings:
        value = holding.value_usd
        if value is None or holding.risk_tier is None:
            continue
        totals[holding.risk_tier] += value
    return totals


def tier_ratios(holdings: Iterable[Holding]) -> Dict[RiskTier, float]:
    """Share of portfolio value per tier, in percent."""
    values = tier_values(holdings)
    total = sum(values.values(), Decimal(0))
    if total <= 0:
        return {tier: 0.0 for tier in RiskTier}
    return {tier: float(value / total * 100) for tier, value in values.items()}


def risk_score_from_tier_values(values: Dict[RiskTier, Decimal], total: Optional[Decimal] = None) -> float:
    if total is None:
        total = sum(values.values(), Decimal(0))
    if total <= 0:
        return 0.0
    score = sum(
        (value / total * TIER_WEIGHTS[tier] for tier, value in values.items()),
        Decimal(0),
    )
    return float(min(Decimal(100), max(Decimal(0), score)))


def risk_score(holdings: Iterable[Holding]) -> float:
    items = list(holdings)
    total = sum((h.value_usd or Decimal(0) for h in items), Decimal(0))
    return risk_score_from_tier_values(tier_values(items), total)
