"""
FastAPI application entrypoint for the map-insight service.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api.routes import router as api_router
from app.core.config import get_settings
from app.core.errors import DataSourceError, ValidationError
from app.core.logging import configure_logging
from app.core.rate_limit import limiter

logger = logging.getLogger(__name__)


async def _data_source_error_handler(
    request: Request, exc: DataSourceError
) -> JSONResponse:
    # Store details stay in the log; clients only learn that loading failed.
    logger.error("Data source failure on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Failed to load map insights"},
    )


async def _validation_error_handler(
    request: Request, exc: ValidationError
) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="RFx Map Insights",
        version="0.1.0",
        description="Cached geospatial RFx telemetry with AI-generated summaries.",
    )
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(DataSourceError, _data_source_error_handler)
    app.add_exception_handler(ValidationError, _validation_error_handler)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
