from fastapi import APIRouter, Request
from typing import Dict, Any

router = APIRouter()


@router.get("/healthz")
async def health_check(request: Request) -> Dict[str, Any]:
    """Health check endpoint that reports provider status"""

    aggregator = request.app.state.aggregator
    providers = {
        "ledger": aggregator.discovery.provider,
        "market_data": aggregator.resolver.provider,
    }

    provider_status = {}
    for role, provider in providers.items():
        status = await provider.health_check()
        provider_status[provider.name] = {"role": role, **status}

    ready = all(status["status"] in ["healthy", "configured"] for status in provider_status.values())

    return {
        "status": "healthy" if ready else "degraded",
        "providers": provider_status,
        "queue": {
            "draining": aggregator.resolver.queue.is_draining,
            "pending": aggregator.resolver.queue.pending,
        },
    }
