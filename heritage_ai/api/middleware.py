"""
Service-to-service key check and CORS for the gateway API.
"""

import hmac
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from heritage_ai.api.models import Envelope
from heritage_ai.config import config

logger = logging.getLogger(__name__)

PUBLIC_PATHS = frozenset({"/health", "/docs", "/redoc", "/openapi.json"})


def _reject(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=Envelope.fail(message))


def service_key_middleware(expected_key: str):
    """
    Build an HTTP middleware requiring ``X-API-Key`` to match ``expected_key``.

    An empty ``expected_key`` disables the check (local development).
    """
    async def check_service_key(request, call_next):
        if not expected_key or request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        presented = request.headers.get("X-API-Key")
        if not presented:
            return _reject(401, "Missing API key. Include 'X-API-Key' header.")
        if not hmac.compare_digest(presented.encode(), expected_key.encode()):
            logger.warning("Rejected %s %s: invalid service key", request.method, request.url.path)
            return _reject(403, "Invalid API key")
        return await call_next(request)

    return check_service_key


def register_middleware(app: FastAPI) -> None:
    # CORS stays outermost
    app.middleware("http")(service_key_middleware(config.SERVICE_API_KEY))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
