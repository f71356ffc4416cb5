from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import health, portfolio
from .config import settings
from .core.aggregator import PortfolioAggregator
from .core.queue import RateLimitedQueue
from .logging_config import setup_logging
from .providers.dexscreener import DexScreenerProvider
from .providers.solana import SolanaRpcProvider
from .services.discovery import BalanceDiscovery
from .services.market_data import MarketDataResolver


def build_aggregator() -> PortfolioAggregator:
    """Wire the default providers around one process-wide enrichment queue."""
    queue = RateLimitedQueue(settings.enrichment_delay_seconds)
    discovery = BalanceDiscovery(SolanaRpcProvider())
    resolver = MarketDataResolver(DexScreenerProvider(), queue)
    return PortfolioAggregator(discovery, resolver)


def create_app(aggregator: Optional[PortfolioAggregator] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        current = app.state.aggregator
        await current.aclose()
        await current.resolver.queue.aclose()
        for provider in (current.discovery.provider, current.resolver.provider):
            close = getattr(provider, "close", None)
            if close is not None:
                await close()

    app = FastAPI(
        title="Solscope API",
        description="Enriched Solana wallet portfolio snapshots",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.aggregator = aggregator or build_aggregator()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(portfolio.router, tags=["Portfolio"])

    @app.get("/")
    async def root():
        """Root endpoint with basic info"""
        return {
            "name": "Solscope API",
            "version": "0.1.0",
            "description": "Enriched Solana wallet portfolio snapshots",
            "docs": "/docs",
            "health": "/healthz",
        }

    return app


setup_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "solscope.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
