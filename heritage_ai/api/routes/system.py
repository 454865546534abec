"""
System routes: /health
"""

from fastapi import APIRouter, Depends

from heritage_ai import __version__
from heritage_ai.api.dependencies import get_gateway
from heritage_ai.api.models import Envelope
from heritage_ai.services.gateway import Gateway

router = APIRouter(tags=["System"])


@router.get("/health")
async def health_check(gateway: Gateway = Depends(get_gateway)):
    """
    Liveness check. Reports degraded when no provider is configured.
    """
    return Envelope.ok({
        "status": "ok" if gateway.available else "degraded",
        "version": __version__,
        "aiAvailable": gateway.available,
    })
