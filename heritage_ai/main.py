"""
Heritage AI gateway - FastAPI application.
AI-assisted Q&A, suggestions, tagging and analysis for cultural-heritage entries.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from heritage_ai import __version__
from heritage_ai.api.middleware import register_middleware
from heritage_ai.api.models import Envelope
from heritage_ai.api.routes import all_routers
from heritage_ai.config import config, Config
from heritage_ai.errors import HeritageAIError, InternalError
from heritage_ai.services.gateway import Gateway
from heritage_ai.llm import get_configured_provider
from heritage_ai.store import create_store

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)


async def build_gateway() -> Gateway:
    """Wire the store and provider from configuration."""
    store = create_store()
    await store.initialize()
    provider = get_configured_provider()
    if provider is None:
        logger.warning("No AI provider available; generation endpoints will return 503")
    return Gateway(provider, store, Config.get_gateway_settings())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Builds the gateway unless one was injected.
    """
    logger.info("Starting Heritage AI gateway...")
    owns_gateway = app.state.gateway is None
    if owns_gateway:
        app.state.gateway = await build_gateway()

    yield

    if owns_gateway:
        logger.info("Shutting down Heritage AI gateway...")
        await app.state.gateway.store.close()
        close = getattr(app.state.gateway.provider, "close", None)
        if close is not None:
            await close()


def _field_name(loc) -> str:
    # Drop the "body"/"query"/"path" prefix
    parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts)


def _debug_errors(request) -> bool:
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        return Config.is_development()
    return gateway.settings.debug_errors


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(HeritageAIError)
    async def heritage_error_handler(request, exc: HeritageAIError):
        detail = None
        if isinstance(exc, InternalError) and _debug_errors(request):
            detail = exc.detail
        return JSONResponse(
            status_code=exc.status_code,
            content=Envelope.fail(exc.message, errors=exc.errors, error=detail),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request, exc: RequestValidationError):
        errors = [
            {"field": _field_name(err.get("loc", ())), "message": err.get("msg", "Invalid value")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=Envelope.fail("Validation failed", errors=errors),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=Envelope.fail(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc):
        logger.exception(f"Unhandled exception: {exc}")
        return JSONResponse(
            status_code=500,
            content=Envelope.fail(
                "Internal server error",
                error=str(exc) if _debug_errors(request) else None,
            ),
        )


def create_app(gateway: Optional[Gateway] = None) -> FastAPI:
    """Create the application; pass ``gateway`` to skip building one from config."""
    app = FastAPI(
        title="Heritage AI Gateway",
        description="AI-assisted Q&A and suggestions for cultural-heritage entries",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.gateway = gateway

    register_middleware(app)
    register_exception_handlers(app)
    for router in all_routers:
        app.include_router(router)
    return app


app = create_app()


# Entry point for running with uvicorn directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "heritage_ai.main:app",
        host=config.API_HOST,
        port=config.API_PORT,
        reload=False,
        log_level=config.LOG_LEVEL.lower()
    )
