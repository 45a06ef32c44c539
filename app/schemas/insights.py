"""
Pydantic models for map-insight snapshots and the combined payload.

Geometry and anomaly entries are kept as opaque mappings: the ingestion side
owns their shape and it drifts between producers. Field names serialize in
camelCase because the map and dashboard clients read them that way.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Number = Union[int, float]


class _SnapshotModel(BaseModel):
    """Immutable camelCase model shared by every snapshot type."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class MetricsTotals(_SnapshotModel):
    """Headline counters; every field is always present."""

    active_rfx: Number = 0
    open_opportunities: Number = 0
    vendor_coverage: Number = 0
    anomalies: Number = 0


class MetricsSnapshot(_SnapshotModel):
    """Rolling numeric telemetry for a region."""

    region: str
    updated_at: Optional[datetime] = None
    totals: MetricsTotals = Field(default_factory=MetricsTotals)
    trend: Dict[str, Number] = Field(
        default_factory=dict, description="Delta per counter vs the previous capture."
    )
    hotspots: List[Dict[str, Any]] = Field(
        default_factory=list, description="Weighted positions (lat, lng, intensity)."
    )
    alerts: List[Dict[str, Any]] = Field(
        default_factory=list, description="Anomaly descriptors."
    )


class AiInsights(_SnapshotModel):
    """AI-derived overlay layers rendered on top of the opportunity features."""

    heatmap: List[Dict[str, Any]] = Field(default_factory=list)
    connections: List[Dict[str, Any]] = Field(default_factory=list)
    confidence_zones: List[Dict[str, Any]] = Field(default_factory=list)
    anomalies: List[Dict[str, Any]] = Field(default_factory=list)


class RegionSnapshot(_SnapshotModel):
    """Latest known geospatial layer state for a region."""

    region: str
    updated_at: Optional[datetime] = None
    features: List[Dict[str, Any]] = Field(default_factory=list)
    ai_insights: AiInsights = Field(default_factory=AiInsights)


class MapOverlays(_SnapshotModel):
    """Overlay document served to the map after cross-layer fallbacks."""

    features: List[Dict[str, Any]] = Field(default_factory=list)
    ai_insights: AiInsights = Field(default_factory=AiInsights)
    hotspots: List[Dict[str, Any]] = Field(default_factory=list)
    updated_at: Optional[datetime] = None


class InsightSummary(_SnapshotModel):
    """Short natural-language synopsis of a region."""

    text: str = Field(..., min_length=1)
    bullets: List[str] = Field(default_factory=list, max_length=3)
    provider: Literal["openai", "system"] = Field(
        ..., description="Which path produced the summary; dashboards display it."
    )


class CombinedInsightPayload(_SnapshotModel):
    """Envelope returned by ``GET /map-insights``."""

    region: str
    generated_at: datetime
    overlays: MapOverlays
    metrics: MetricsSnapshot
    summary: InsightSummary
