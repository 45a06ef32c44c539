"""
Aggregation entry point for the map and dashboard clients.

Only the upstream snapshot reads are cached. The summary and the envelope
timestamp are rebuilt on every request so ``generatedAt`` reflects request
time even when the inputs come from cache.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable

from app.core.errors import ValidationError
from app.schemas import CombinedInsightPayload, MetricsSnapshot, RegionSnapshot
from app.services.insight_cache import InsightCache
from app.services.normalization import build_overlays
from app.services.snapshot_fetcher import SnapshotFetcher
from app.services.summary_generator import SummaryGenerator

logger = logging.getLogger(__name__)

_REGION_PATTERN = re.compile(r"^[\w .\-/]+$")


def normalize_region(
    value: Any,
    *,
    default: str = "global",
    max_length: int = 64,
    case_sensitive: bool = True,
) -> str:
    """Validate a caller-supplied region; absent or blank means ``default``."""
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValidationError("region must be a string")

    region = value.strip()
    if not region:
        return default
    if len(region) > max_length:
        raise ValidationError(f"region must be at most {max_length} characters")
    if not _REGION_PATTERN.match(region):
        raise ValidationError(
            "region may only contain letters, digits, spaces, '_', '-', '.' and '/'"
        )
    return region if case_sensitive else region.lower()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MapInsightService:
    """Compose cached snapshots with a freshly generated summary."""

    def __init__(
        self,
        *,
        fetcher: SnapshotFetcher,
        summary_generator: SummaryGenerator,
        cache: InsightCache,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._fetcher = fetcher
        self._summaries = summary_generator
        self._cache = cache
        self._now = now

    @staticmethod
    def layers_key(region: str) -> str:
        return f"layers:{region}"

    @staticmethod
    def metrics_key(region: str) -> str:
        return f"metrics:{region}"

    async def _region_snapshot(self, region: str) -> RegionSnapshot:
        return await self._cache.get_or_load(
            self.layers_key(region),
            lambda: self._fetcher.fetch_region_snapshot(region),
        )

    async def _metrics_snapshot(self, region: str) -> MetricsSnapshot:
        return await self._cache.get_or_load(
            self.metrics_key(region),
            lambda: self._fetcher.fetch_metrics_snapshot(region),
        )

    async def get_map_insights(self, region: str) -> CombinedInsightPayload:
        """Return overlays, metrics and a summary for ``region``."""
        snapshot, metrics = await asyncio.gather(
            self._region_snapshot(region),
            self._metrics_snapshot(region),
        )
        overlays = build_overlays(snapshot, metrics)
        summary = await self._summaries.generate(
            region=region, overlays=overlays, metrics=metrics
        )
        logger.debug(
            "Map insights for %s assembled (features=%d, provider=%s)",
            region,
            len(overlays.features),
            summary.provider,
        )
        return CombinedInsightPayload(
            region=region,
            generated_at=self._now(),
            overlays=overlays,
            metrics=metrics,
            summary=summary,
        )

    async def get_map_insight_metrics(self, region: str) -> MetricsSnapshot:
        """Return only the cached metrics snapshot for polling dashboards."""
        return await self._metrics_snapshot(region)


__all__ = ["MapInsightService", "normalize_region"]
