from abc import ABC, abstractmethod
from typing import Any, Dict, List, NamedTuple

from ..types.portfolio import MarketData


class RawTokenBalance(NamedTuple):
    asset_id: str
    raw_amount: int
    decimals: int


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: int = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class LedgerProvider(Provider):
    """Provider for on-chain balances"""

    @abstractmethod
    async def get_native_balance(self, address: str) -> int:
        """Get the native balance in base units (lamports)"""
        pass

    @abstractmethod
    async def get_fungible_holdings(self, address: str, program_id: str) -> List[RawTokenBalance]:
        """Get every token account owned by ``address`` under ``program_id``"""
        pass


class MarketDataProvider(Provider):
    """Provider for token market data"""

    @abstractmethod
    async def get_token_pairs(self, asset_id: str) -> List[Dict[str, Any]]:
        """Get the trading pairs listed for a token, most relevant first"""
        pass

    @abstractmethod
    def parse_pair(self, asset_id: str, pair: Dict[str, Any]) -> MarketData:
        """Convert one provider pair payload into MarketData; raise ValueError if malformed"""
        pass
