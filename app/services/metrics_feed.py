"""
Subscriber-side view of a region's metrics.

Dashboards fetch one full ``MetricsSnapshot`` and then keep it current from
partial updates (change notifications or polled rows) without refetching
everything.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Mapping, Optional

from app.schemas import MetricsSnapshot
from app.services.normalization import merge_metrics_delta

logger = logging.getLogger(__name__)

MetricsCallback = Callable[[MetricsSnapshot], None]

# Keys a change-notification envelope uses for the updated row.
_ENVELOPE_KEYS: tuple[str, ...] = ("new", "record")


class MetricsFeed:
    """Hold the last known snapshot for one region and fan out merged updates."""

    def __init__(self, region: str, initial: Optional[MetricsSnapshot] = None) -> None:
        self.region = region
        self._current = initial
        self._subscribers: List[MetricsCallback] = []

    @property
    def current(self) -> Optional[MetricsSnapshot]:
        return self._current

    def subscribe(self, callback: MetricsCallback) -> Callable[[], None]:
        """Register ``callback`` and return a function that removes it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def replace(self, snapshot: MetricsSnapshot) -> MetricsSnapshot:
        self._current = snapshot
        self._notify(snapshot)
        return snapshot

    def apply_delta(self, delta: Mapping[str, Any]) -> Optional[MetricsSnapshot]:
        """Merge a partial update; returns ``None`` when it targets another region."""
        row = _unwrap(delta)
        row_region = row.get("region")
        if row_region is not None and row_region != self.region:
            return None

        base = self._current or MetricsSnapshot(region=self.region)
        merged = merge_metrics_delta(base, row)
        self._current = merged
        self._notify(merged)
        return merged

    def _notify(self, snapshot: MetricsSnapshot) -> None:
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Metrics subscriber failed for region %s", self.region)


def _unwrap(delta: Mapping[str, Any]) -> Mapping[str, Any]:
    for key in _ENVELOPE_KEYS:
        inner = delta.get(key)
        if isinstance(inner, Mapping):
            return inner
    return delta


__all__ = ["MetricsCallback", "MetricsFeed"]
