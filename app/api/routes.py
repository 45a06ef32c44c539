"""
FastAPI routes for the map-insight service.
"""

import logging
from http import HTTPStatus
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends, Request

from app.core.rate_limit import insight_rate_limit, limiter
from app.dependencies import (
    get_map_insight_service,
    get_region,
    require_identity,
)
from app.schemas import CombinedInsightPayload, MetricsSnapshot
from app.services import MapInsightService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get(
    "/map-insights",
    status_code=HTTPStatus.OK,
    response_model=CombinedInsightPayload,
)
@limiter.limit(insight_rate_limit)
async def get_map_insights(
    request: Request,
    region: Annotated[str, Depends(get_region)],
    user: Annotated[Dict[str, Any], Depends(require_identity)],
    service: Annotated[MapInsightService, Depends(get_map_insight_service)],
) -> CombinedInsightPayload:
    """Overlays, metrics and an AI or system summary for one region."""
    logger.debug("Map insights requested for %s by %s", region, user.get("id"))
    return await service.get_map_insights(region)


@router.get(
    "/map-insights/metrics",
    status_code=HTTPStatus.OK,
    response_model=MetricsSnapshot,
)
@limiter.limit(insight_rate_limit)
async def get_map_insight_metrics(
    request: Request,
    region: Annotated[str, Depends(get_region)],
    user: Annotated[Dict[str, Any], Depends(require_identity)],
    service: Annotated[MapInsightService, Depends(get_map_insight_service)],
) -> MetricsSnapshot:
    """Numeric telemetry only, for dashboards that poll."""
    return await service.get_map_insight_metrics(region)


__all__ = ["router"]
