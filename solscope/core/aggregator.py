"""
Portfolio aggregator.

Orchestrates discovery -> enrichment -> classification for one wallet and
publishes a growing series of immutable PortfolioSnapshot objects. Each
query owns a private SnapshotBuilder; totals are always recomputed from
the full holding set when a snapshot is published, never adjusted from
deltas.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from decimal import Decimal
from typing import Any, AsyncIterator, Callable, Dict, Iterable, List, Optional, Tuple

from ..config import settings
from ..errors import DiscoveryFailed, PortfolioError, TransportError
from ..services.address import require_solana_address
from ..services.discovery import BalanceDiscovery
from ..services.market_data import MarketDataResolver, ResolveResult
from ..types.portfolio import (
    Holding,
    MarketData,
    MissReason,
    NotFound,
    PortfolioSnapshot,
    QueryState,
    QueryStatus,
    RawHolding,
    SnapshotStatus,
)
from .risk import classify, is_known_stable, risk_score_from_tier_values, tier_values

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[PortfolioSnapshot], None]

_UNSET: Any = object()


class SnapshotBuilder:
    """Private, mutable accumulator for one query's holdings."""

    def __init__(
        self,
        address: str,
        native_balance: Decimal,
        *,
        generation: int,
        discovered_count: int,
        stable_ids: Iterable[str],
    ) -> None:
        self.address = address
        self.native_balance = native_balance
        self.generation = generation
        self.discovered_count = discovered_count
        self.pending_count = discovered_count
        self.dropped_count = 0
        self._stable_ids = frozenset(stable_ids)
        self._holdings: Dict[str, Holding] = {}

    def merge(self, raw: RawHolding, market: MarketData) -> Holding:
        self.pending_count -= 1
        existing = self._holdings.get(raw.asset_id)
        if existing is not None:
            # Holdings are append-only; the first merge for a mint wins.
            return existing
        unclassified = Holding.from_market_data(raw, market)
        tier = classify(unclassified, is_known_stable(raw.asset_id, self._stable_ids))
        holding = unclassified.model_copy(update={"risk_tier": tier})
        self._holdings[raw.asset_id] = holding
        return holding

    def drop(self, miss: NotFound) -> None:
        self.pending_count -= 1
        self.dropped_count += 1

    def publish(self, status: SnapshotStatus = SnapshotStatus.LOADING) -> PortfolioSnapshot:
        holdings = tuple(self._holdings.values())
        total = sum((h.value_usd or Decimal(0) for h in holdings), Decimal(0))
        values = tier_values(holdings)
        return PortfolioSnapshot(
            address=self.address,
            generation=self.generation,
            native_balance=self.native_balance,
            holdings=holdings,
            total_value_usd=total,
            risk_score=risk_score_from_tier_values(values, total),
            tier_values_usd=values,
            discovered_count=self.discovered_count,
            pending_count=max(self.pending_count, 0),
            dropped_count=self.dropped_count,
            status=status,
        )


class PortfolioAggregator:
    """Run wallet queries and expose the live snapshot to presentation code."""

    def __init__(
        self,
        discovery: BalanceDiscovery,
        resolver: MarketDataResolver,
        *,
        deadline_seconds: Optional[float] = _UNSET,
        stable_ids: Optional[Iterable[str]] = None,
    ) -> None:
        self.discovery = discovery
        self.resolver = resolver
        self.deadline_seconds = settings.query_deadline_seconds if deadline_seconds is _UNSET else deadline_seconds
        self.stable_ids = list(settings.known_stable_mints if stable_ids is None else stable_ids)

        self._generation = 0
        self._task: asyncio.Task | None = None
        self._snapshot: Optional[PortfolioSnapshot] = None
        self._state = QueryState()
        self._subscribers: List[SnapshotCallback] = []

    # ---------------------------
    # Streaming query
    # ---------------------------
    async def run_query(self, address: str, *, generation: Optional[int] = None) -> AsyncIterator[PortfolioSnapshot]:
        """Yield a snapshot after discovery and after every settled enrichment.

        Raises InvalidAddress before touching the ledger, and DiscoveryFailed
        (without yielding anything) if balances cannot be loaded. The last
        snapshot is COMPLETE, or PARTIAL if the deadline expired first.
        """
        address = require_solana_address(address)
        loop = asyncio.get_running_loop()
        started = loop.time()

        try:
            discovered = await self.discovery.discover(address)
        except TransportError as exc:
            raise DiscoveryFailed(address, exc.message) from exc

        builder = SnapshotBuilder(
            address,
            discovered.native_balance,
            generation=self._generation if generation is None else generation,
            discovered_count=len(discovered.holdings),
            stable_ids=self.stable_ids,
        )
        yield builder.publish()

        tasks = [
            loop.create_task(self._enrich(raw), name=f"enrich-{raw.asset_id}")
            for raw in discovered.holdings
        ]
        status = SnapshotStatus.COMPLETE
        timeout = None
        if self.deadline_seconds is not None:
            timeout = max(0.0, self.deadline_seconds - (loop.time() - started))

        try:
            for next_settled in asyncio.as_completed(tasks, timeout=timeout):
                try:
                    raw, result = await next_settled
                except asyncio.TimeoutError:
                    status = SnapshotStatus.PARTIAL
                    logger.warning(
                        "Query for %s hit its %.1fs deadline with %d enrichments pending",
                        address, self.deadline_seconds, builder.pending_count,
                    )
                    break

                if isinstance(result, NotFound):
                    builder.drop(result)
                else:
                    builder.merge(raw, result)
                yield builder.publish()
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        logger.info(
            "Query for %s finished (%s): %d priced, %d dropped",
            address, status.value, builder.discovered_count - builder.dropped_count - builder.pending_count,
            builder.dropped_count,
        )
        yield builder.publish(status)

    async def _enrich(self, raw: RawHolding) -> Tuple[RawHolding, ResolveResult]:
        try:
            return raw, await self.resolver.resolve(raw.asset_id)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected enrichment failure for %s", raw.asset_id)
            return raw, NotFound(asset_id=raw.asset_id, reason=MissReason.TRANSPORT_ERROR, detail=str(exc))

    # ---------------------------
    # Presentation boundary
    # ---------------------------
    @property
    def current_snapshot(self) -> Optional[PortfolioSnapshot]:
        return self._snapshot

    @property
    def state(self) -> QueryState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_loading(self) -> bool:
        return self._state.status == QueryStatus.LOADING

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        """Register ``callback`` for every published snapshot; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def start_query(self, address: str) -> asyncio.Task:
        """Start a new query, superseding any query still in flight.

        Must be called from a running event loop. Raises InvalidAddress
        (after recording it in ``state``) when the address is malformed.
        """
        self._generation += 1
        generation = self._generation
        self._cancel_current()
        self._snapshot = None

        try:
            address = require_solana_address(address)
        except PortfolioError as exc:
            self._state = QueryState(
                status=QueryStatus.FAILED,
                address=address,
                generation=generation,
                error=exc.message,
                error_code=exc.code,
            )
            raise

        self._state = QueryState(status=QueryStatus.LOADING, address=address, generation=generation)
        self._task = asyncio.get_running_loop().create_task(
            self._run(address, generation), name=f"portfolio-query-{generation}"
        )
        return self._task

    async def wait(self) -> Optional[PortfolioSnapshot]:
        """Wait for the current query to settle and return the latest snapshot."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})
        return self._snapshot

    async def aclose(self) -> None:
        task = self._cancel_current()
        if task is not None:
            await asyncio.wait({task})

    def _cancel_current(self) -> asyncio.Task | None:
        task = self._task
        if task is not None and not task.done():
            task.cancel()
        return task

    async def _run(self, address: str, generation: int) -> None:
        try:
            async with aclosing(self.run_query(address, generation=generation)) as stream:
                async for snapshot in stream:
                    if generation != self._generation:
                        logger.debug("Discarding snapshot from superseded query %d", generation)
                        return
                    self._publish(snapshot)
        except PortfolioError as exc:
            if generation == self._generation:
                self._state = QueryState(
                    status=QueryStatus.FAILED,
                    address=address,
                    generation=generation,
                    error=exc.message,
                    error_code=exc.code,
                )
            return
        except asyncio.CancelledError:
            logger.debug("Query %d for %s cancelled", generation, address)
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception("Query %d for %s crashed", generation, address)
            if generation == self._generation:
                self._state = QueryState(
                    status=QueryStatus.FAILED,
                    address=address,
                    generation=generation,
                    error=f"Unexpected error: {exc}",
                )
            return

        if generation == self._generation and self._snapshot is not None:
            final = (
                QueryStatus.PARTIAL if self._snapshot.status == SnapshotStatus.PARTIAL else QueryStatus.COMPLETE
            )
            self._state = QueryState(status=final, address=address, generation=generation)

    def _publish(self, snapshot: PortfolioSnapshot) -> None:
        self._snapshot = snapshot
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:  # noqa: BLE001
                logger.warning("Snapshot subscriber %r failed", callback, exc_info=True)
