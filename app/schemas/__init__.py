"""Public schema exports."""

from .insights import (
    AiInsights,
    CombinedInsightPayload,
    InsightSummary,
    MapOverlays,
    MetricsSnapshot,
    MetricsTotals,
    RegionSnapshot,
)

__all__ = [
    "AiInsights",
    "CombinedInsightPayload",
    "InsightSummary",
    "MapOverlays",
    "MetricsSnapshot",
    "MetricsTotals",
    "RegionSnapshot",
]
