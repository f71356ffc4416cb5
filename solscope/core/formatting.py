"""Display helpers shared by tables and chart widgets."""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from ..types.portfolio import Holding

_LEADING_ZEROS_RE = re.compile(r"^0\.(0*)([1-9])")


def _as_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None
    return parsed if parsed.is_finite() else None


def format_market_cap(market_cap: Any) -> str:
    """Compact USD market cap: ``$1.23B``, ``$4.50M``, ``$7.00K``; ``N/A`` when unknown or zero."""
    value = _as_decimal(market_cap)
    if not value:
        return "N/A"
    if value >= Decimal("1e9"):
        return f"${value / Decimal('1e9'):.2f}B"
    if value >= Decimal("1e6"):
        return f"${value / Decimal('1e6'):.2f}M"
    if value >= Decimal("1e3"):
        return f"${value / Decimal('1e3'):.2f}K"
    return f"${value:.2f}"


def format_usd(value: Any) -> str:
    amount = _as_decimal(value) or Decimal(0)
    return f"${amount:,.2f}"


def format_to_first_non_zero_decimal(number: Any) -> str:
    """Render a number up to its first significant decimal digit.

    Integers render as-is, ``0.25`` -> ``0.3``, ``1.0503`` -> ``1.05``.
    Values below 0.0001 use a zero-count notation: ``0.0000012`` -> ``0.{5}1``.
    Non-numeric input renders as ``-``.
    """
    value = _as_decimal(number)
    if value is None:
        return "-"
    if value == value.to_integral_value():
        return str(int(value))

    if 0 < value < Decimal("0.0001"):
        match = _LEADING_ZEROS_RE.match(f"{value:.20f}")
        if match:
            return f"0.{{{len(match.group(1))}}}{match.group(2)}"

    text = format(value, "f")
    integer_part, _, fraction = text.partition(".")
    significant = re.search(r"[1-9]", fraction)
    if significant is None:
        return integer_part
    rounded = value.quantize(Decimal(1).scaleb(-(significant.start() + 1)), rounding=ROUND_HALF_UP)
    return format(rounded.normalize(), "f")


def _by_value(holdings: Iterable[Holding]) -> List[Holding]:
    return sorted(holdings, key=lambda h: h.value_usd or Decimal(0), reverse=True)


def distribution_series(holdings: Iterable[Holding], limit: int = 5) -> List[Dict[str, Any]]:
    """Top holdings by value for the distribution pie chart."""
    return [
        {"name": h.symbol or h.asset_id, "value": float(h.value_usd or 0)}
        for h in _by_value(holdings)[:limit]
    ]


def value_series(holdings: Iterable[Holding], limit: int = 10) -> List[Dict[str, Any]]:
    """Top holdings by value with market cap, for the value bar chart."""
    return [
        {
            "name": h.symbol or h.asset_id,
            "value": float(h.value_usd or 0),
            "market_cap": float(h.market_cap_usd or 0),
        }
        for h in _by_value(holdings)[:limit]
    ]
