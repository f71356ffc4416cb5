"""Shared in-memory providers for pipeline tests."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from solscope.core.aggregator import PortfolioAggregator
from solscope.core.queue import RateLimitedQueue
from solscope.errors import TransportError
from solscope.providers.base import LedgerProvider, RawTokenBalance
from solscope.providers.dexscreener import DexScreenerProvider
from solscope.services.discovery import BalanceDiscovery
from solscope.services.market_data import MarketDataResolver

WALLET = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
OTHER_WALLET = "HN7cABqLq46Es1jh92dQQisAq662SmxELLLsHHe4YWrH"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
BONK = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"
PUMP = "7GCihgDB8fe6KNjn2MYtkzZcRjQy3t9GHdC8uHYmW2hrpump"


def make_pair(price: Any, market_cap: Any = None, symbol: str = "TKN", **extra: Any) -> Dict[str, Any]:
    pair = {
        "baseToken": {"symbol": symbol, "name": f"{symbol} Token"},
        "info": {"imageUrl": f"https://img.example/{symbol}.png"},
        "priceUsd": None if price is None else str(price),
        "marketCap": market_cap,
        "url": f"https://dexscreener.com/solana/{symbol.lower()}",
    }
    pair.update(extra)
    return pair


class FakeLedger(LedgerProvider):
    name = "fake-ledger"

    def __init__(
        self,
        lamports: int = 0,
        balances: Optional[List[RawTokenBalance]] = None,
        fail: bool = False,
        delay: float = 0.0,
    ) -> None:
        self.lamports = lamports
        self.balances = balances or []
        self.fail = fail
        self.delay = delay
        self.calls: List[str] = []

    async def ready(self) -> bool:
        return True

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy"}

    async def get_native_balance(self, address: str) -> int:
        self.calls.append(f"getBalance:{address}")
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise TransportError(self.name, "connection reset")
        return self.lamports

    async def get_fungible_holdings(self, address: str, program_id: str) -> List[RawTokenBalance]:
        self.calls.append(f"getTokenAccountsByOwner:{address}")
        return list(self.balances)


class FakeMarket(DexScreenerProvider):
    """DexScreener parsing on top of canned pair lists."""

    name = "fake-market"

    def __init__(
        self,
        pairs: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        failing: Optional[set] = None,
        slow: Optional[Dict[str, float]] = None,
    ) -> None:
        super().__init__(base_url="https://dex.example")
        self.pairs = pairs or {}
        self.failing = failing or set()
        self.slow = slow or {}
        self.calls: List[str] = []

    async def get_token_pairs(self, asset_id: str) -> List[Dict[str, Any]]:
        self.calls.append(asset_id)
        if asset_id in self.slow:
            await asyncio.sleep(self.slow[asset_id])
        if asset_id in self.failing:
            raise TransportError(self.name, "HTTP 429", status_code=429)
        return self.pairs.get(asset_id, [])


@pytest.fixture
def build_aggregator():
    """Factory: wire an aggregator around fake providers with a zero-delay queue."""

    def _build(ledger: FakeLedger, market: FakeMarket, *, delay: float = 0.0, deadline: Optional[float] = None,
               include_native_holding: bool = False) -> PortfolioAggregator:
        queue = RateLimitedQueue(delay, name="test")
        discovery = BalanceDiscovery(ledger, program_ids=["prog"], include_native_holding=include_native_holding)
        resolver = MarketDataResolver(market, queue)
        return PortfolioAggregator(discovery, resolver, deadline_seconds=deadline)

    return _build
