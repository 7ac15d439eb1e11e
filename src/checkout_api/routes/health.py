"""Health endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends

from ..config import Settings, get_settings
from ..dependencies import get_gateway
from ..gateway import CloverGateway, GatewayCredentials

router = APIRouter()


@router.get("")
async def health_check():
    """Liveness check."""
    return {
        "status": "ok",
        "timestamp": datetime.now().isoformat(),
    }


@router.get("/gateway")
async def gateway_health(
    settings: Settings = Depends(get_settings),
    gateway: CloverGateway = Depends(get_gateway),
):
    """
    Probe the gateway with the configured credentials.

    Returns:
        dict: Connectivity report; never raises for gateway failures
    """
    status = {
        "status": "healthy",
        "provider": "clover",
        "config": {
            "base_url": settings.CLOVER_API_BASE_URL,
            "has_credentials": settings.has_credentials,
        },
        "queue": vars(gateway.queue.get_stats()),
    }

    if not settings.has_credentials:
        status["status"] = "unconfigured"
        status["connectivity"] = {"connected": False, "error": "Missing Clover credentials"}
        return status

    outcome = await gateway.probe_merchant(
        GatewayCredentials(
            auth_token=settings.CLOVER_AUTH_TOKEN,
            merchant_id=settings.CLOVER_MERCHANT_ID,
        )
    )
    status["connectivity"] = {
        "connected": outcome.ok,
        "attempts": len(outcome.attempts),
    }
    if not outcome.ok:
        status["status"] = "degraded"
        status["connectivity"]["error"] = outcome.failure.message
        status["connectivity"]["kind"] = outcome.failure.kind.value
        status["connectivity"]["status_code"] = outcome.failure.status_code
    return status
