"""Read the newest layer and metrics snapshots for a region from the row store."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Protocol

from app.core.errors import DataSourceError
from app.schemas import MetricsSnapshot, RegionSnapshot
from app.services.normalization import normalize_metrics, normalize_region_snapshot

logger = logging.getLogger(__name__)


class SnapshotStore(Protocol):
    async def query_latest(
        self,
        table: str,
        filters: Mapping[str, Any],
        order_by: str,
        limit: int,
    ) -> List[Dict[str, Any]]:
        ...


class SnapshotFetcher:
    """Fetch and normalize snapshots; "no rows" is valid empty data, not an error."""

    def __init__(
        self,
        store: SnapshotStore,
        *,
        layers_table: str = "map_insight_layers",
        metrics_table: str = "map_insight_metrics",
        order_column: str = "updated_at",
        metrics_history: int = 5,
    ) -> None:
        self._store = store
        self._layers_table = layers_table
        self._metrics_table = metrics_table
        self._order_column = order_column
        self._metrics_history = metrics_history

    async def _query(self, table: str, region: str, limit: int) -> List[Dict[str, Any]]:
        rows = await self._store.query_latest(
            table,
            {"region": region},
            self._order_column,
            limit,
        )
        if not isinstance(rows, list):
            raise DataSourceError(f"Store returned {type(rows).__name__} for '{table}'")
        return rows

    async def fetch_region_snapshot(self, region: str) -> RegionSnapshot:
        """Return the newest layer snapshot for ``region``."""
        rows = await self._query(self._layers_table, region, 1)
        if not rows:
            logger.info("No layer snapshot stored for region %s", region)
        return normalize_region_snapshot(region, rows[0] if rows else None)

    async def fetch_metrics_snapshot(self, region: str) -> MetricsSnapshot:
        """Return metrics normalized from the newest ``metrics_history`` rows."""
        rows = await self._query(self._metrics_table, region, self._metrics_history)
        if not rows:
            logger.info("No metrics snapshot stored for region %s", region)
        return normalize_metrics(region, rows)


__all__ = ["SnapshotFetcher", "SnapshotStore"]
