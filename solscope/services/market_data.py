"""Resolve one asset's market data through the shared rate-limited queue."""

from __future__ import annotations

import logging
from typing import Union

from ..core.queue import RateLimitedQueue
from ..errors import TransportError
from ..providers.base import MarketDataProvider
from ..types.portfolio import MarketData, MissReason, NotFound

logger = logging.getLogger(__name__)

ResolveResult = Union[MarketData, NotFound]


class MarketDataResolver:
    """Look up market metadata for a single asset.

    ``resolve`` never raises for provider problems: transport failures,
    malformed pairs and empty pair lists all come back as ``NotFound``
    with a reason, so callers can keep them apart if they need to.
    """

    def __init__(self, provider: MarketDataProvider, queue: RateLimitedQueue) -> None:
        self.provider = provider
        self.queue = queue

    async def resolve(self, asset_id: str) -> ResolveResult:
        try:
            pairs = await self.queue.enqueue(lambda: self.provider.get_token_pairs(asset_id))
        except TransportError as exc:
            logger.warning("Market data lookup failed for %s: %s", asset_id, exc.message)
            return NotFound(asset_id=asset_id, reason=MissReason.TRANSPORT_ERROR, detail=exc.message)

        if not pairs:
            logger.info("No market pairs listed for %s", asset_id)
            return NotFound(asset_id=asset_id, reason=MissReason.NO_MARKET_DATA)

        # Only the first pair is used when a token trades in several pools.
        try:
            return self.provider.parse_pair(asset_id, pairs[0])
        except (ValueError, TypeError) as exc:
            logger.warning("Unparseable market data for %s: %s", asset_id, exc)
            return NotFound(asset_id=asset_id, reason=MissReason.PARSE_ERROR, detail=str(exc))
