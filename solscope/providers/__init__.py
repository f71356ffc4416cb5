from .base import LedgerProvider, MarketDataProvider, Provider, RawTokenBalance
from .dexscreener import DexScreenerProvider
from .solana import SolanaRpcProvider

__all__ = [
    "Provider",
    "LedgerProvider",
    "MarketDataProvider",
    "RawTokenBalance",
    "DexScreenerProvider",
    "SolanaRpcProvider",
]
