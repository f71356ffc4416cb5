"""
DexScreener market data provider.

Looks up the trading pairs of a Solana token:

    GET {base_url}/tokens/{mint} -> {"pairs": [{baseToken, info, priceUsd, marketCap, url, ...}] | null}

No API key is required, but the API enforces a per-IP request rate, so
callers are expected to go through a RateLimitedQueue.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..errors import TransportError
from ..types.portfolio import MarketData
from .base import MarketDataProvider


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None
    return parsed if parsed.is_finite() else None


def _to_datetime(value: Any) -> Optional[datetime]:
    millis = _to_decimal(value)
    if millis is None:
        return None
    try:
        return datetime.fromtimestamp(float(millis) / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


class DexScreenerProvider(MarketDataProvider):
    """DexScreener token pairs lookup."""

    name = "dexscreener"
    timeout_s = 15

    def __init__(self, base_url: Optional[str] = None) -> None:
        self.base_url = (base_url or settings.market_data_base_url).rstrip("/")
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout_s,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def ready(self) -> bool:
        """DexScreener requires no authentication."""
        return True

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "configured", "base_url": self.base_url}

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def get_token_pairs(self, asset_id: str) -> List[Dict[str, Any]]:
        client = await self._get_client()
        try:
            response = await client.get(f"{self.base_url}/tokens/{asset_id}")
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise TransportError(self.name, f"HTTP {exc.response.status_code} for {asset_id}",
                                 status_code=exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            raise TransportError(self.name, f"request for {asset_id} failed: {exc}") from exc
        except ValueError as exc:
            raise TransportError(self.name, f"invalid JSON for {asset_id}") from exc

        if not isinstance(data, dict):
            raise TransportError(self.name, f"unexpected payload for {asset_id}")

        pairs = data.get("pairs") or []
        if not isinstance(pairs, list):
            raise TransportError(self.name, f"unexpected pairs payload for {asset_id}")
        return [pair for pair in pairs if isinstance(pair, dict)]

    def parse_pair(self, asset_id: str, pair: Dict[str, Any]) -> MarketData:
        base_token = pair.get("baseToken") or {}
        info = pair.get("info") or {}
        volume = pair.get("volume") or {}
        price_change = pair.get("priceChange") or {}
        liquidity = pair.get("liquidity") or {}

        if not isinstance(base_token, dict):
            raise ValueError("baseToken is not an object")

        price = _to_decimal(pair.get("priceUsd"))
        if price is None:
            raise ValueError(f"priceUsd missing or not numeric: {pair.get('priceUsd')!r}")

        market_cap = _to_decimal(pair.get("marketCap"))
        if market_cap is None:
            market_cap = _to_decimal(pair.get("fdv"))

        return MarketData(
            asset_id=asset_id,
            symbol=base_token.get("symbol") or "UNKNOWN",
            name=base_token.get("name") or "Unknown Token",
            logo_url=info.get("imageUrl") if isinstance(info, dict) else None,
            price_usd=price,
            market_cap_usd=market_cap,
            url=pair.get("url"),
            price_change_24h=_to_decimal(price_change.get("h24")) if isinstance(price_change, dict) else None,
            volume_24h_usd=_to_decimal(volume.get("h24")) if isinstance(volume, dict) else None,
            liquidity_usd=_to_decimal(liquidity.get("usd")) if isinstance(liquidity, dict) else None,
            pair_created_at=_to_datetime(pair.get("pairCreatedAt")),
        )
