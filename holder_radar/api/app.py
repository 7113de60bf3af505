"""FastAPI application factory for the holder snapshot API."""

from __future__ import annotations

import os

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from holder_radar.api.limiter import limiter
from holder_radar.parsers.exceptions import (
    ChainUnavailableError,
    HolderRadarError,
    InvalidMintError,
    PriceUnavailableError,
    StorageError,
)

# Snapshot errors → HTTP status for synchronous callers
ERROR_STATUS: dict[type[HolderRadarError], int] = {
    InvalidMintError: status.HTTP_400_BAD_REQUEST,
    PriceUnavailableError: status.HTTP_424_FAILED_DEPENDENCY,
    ChainUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
    StorageError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


async def _snapshot_error_handler(request: Request, exc: Exception) -> JSONResponse:
    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, error_code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            code = error_code
            break
    return JSONResponse(
        status_code=code,
        content={"error": str(exc), "kind": type(exc).__name__, "code": code},
    )


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    app = FastAPI(
        title="Holder Radar API",
        version="0.1.0",
        docs_url="/api/docs" if os.getenv("API_DEBUG") else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if os.getenv("API_DEBUG") else None,
    )

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(HolderRadarError, _snapshot_error_handler)

    from holder_radar.api.routers.health import router as health_router
    from holder_radar.api.routers.tokens import router as tokens_router

    app.include_router(health_router)
    app.include_router(tokens_router)

    return app
