"""
Schema-tolerant normalization of raw snapshot rows.

Upstream producers disagree on column names (nested ``totals`` vs flat
columns, camelCase vs snake_case, JSON columns sometimes arriving encoded as
strings). Every fallback chain lives here so callers always receive fully
populated models.
"""

from __future__ import annotations

import json
import math
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from app.schemas import (
    AiInsights,
    MapOverlays,
    MetricsSnapshot,
    MetricsTotals,
    RegionSnapshot,
)

# (field on MetricsTotals, nested keys, flat column alternates)
_TOTAL_SOURCES: tuple[tuple[str, tuple[str, ...], tuple[str, ...]], ...] = (
    ("active_rfx", ("activeRfx", "active_rfx"), ("active_rfx", "activeRfx")),
    (
        "open_opportunities",
        ("openOpportunities", "open_opportunities"),
        ("open_opportunities", "openOpportunities"),
    ),
    (
        "vendor_coverage",
        ("vendorCoverage", "vendor_coverage"),
        ("vendor_coverage", "vendorCoverage"),
    ),
    ("anomalies", ("anomalies",), ("anomaly_count", "anomalyCount", "anomalies")),
)

_TIMESTAMP_KEYS: tuple[str, ...] = ("updated_at", "updatedAt", "captured_at", "created_at")

_datetime_adapter = TypeAdapter(datetime)


def _decode(value: Any) -> Any:
    """Decode JSON columns that arrive as strings."""
    if isinstance(value, str):
        stripped = value.strip()
        if stripped[:1] in ("{", "["):
            try:
                return json.loads(stripped)
            except json.JSONDecodeError:
                return value
    return value


def _first(row: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = row.get(key)
        if value is not None:
            return _decode(value)
    return None


def _as_mapping(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, Mapping) else {}


def _as_records(value: Any) -> List[Dict[str, Any]]:
    """Keep only mapping entries of a list-like value."""
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        return []
    return [dict(item) for item in value if isinstance(item, Mapping)]


def to_number(value: Any) -> Optional[float | int]:
    """Coerce ints, floats and numeric strings; anything else yields ``None``."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        if not math.isfinite(number):
            return None
        return int(number) if number.is_integer() and "." not in text else number
    return None


def _numeric_mapping(value: Any) -> Dict[str, float | int]:
    numbers: Dict[str, float | int] = {}
    for key, item in _as_mapping(_decode(value)).items():
        number = to_number(item)
        if number is not None:
            numbers[key] = number
    return numbers


def parse_timestamp(row: Mapping[str, Any]) -> Optional[datetime]:
    raw = _first(row, _TIMESTAMP_KEYS)
    if raw is None:
        return None
    try:
        return _datetime_adapter.validate_python(raw)
    except PydanticValidationError:
        return None


def normalize_totals(
    row: Mapping[str, Any], fallback: Optional[MetricsTotals] = None
) -> MetricsTotals:
    """Read each counter from nested ``totals``, then flat columns, then ``fallback``."""
    nested = _as_mapping(_decode(row.get("totals")))
    values: Dict[str, float | int] = {}
    for field, nested_keys, flat_keys in _TOTAL_SOURCES:
        resolved = None
        for source, keys in ((nested, nested_keys), (row, flat_keys)):
            for key in keys:
                resolved = to_number(source.get(key))
                if resolved is not None:
                    break
            if resolved is not None:
                break
        if resolved is None:
            resolved = getattr(fallback, field) if fallback is not None else 0
        values[field] = resolved
    return MetricsTotals(**values)


def _normalize_trend(
    row: Mapping[str, Any],
    totals: MetricsTotals,
    previous_row: Optional[Mapping[str, Any]],
) -> Dict[str, float | int]:
    trend = _numeric_mapping(row.get("trend"))
    if trend:
        return trend

    # No producer-supplied trend: derive deltas against the previous capture.
    previous = normalize_totals(previous_row) if previous_row is not None else totals
    current = totals.model_dump(by_alias=True)
    prior = previous.model_dump(by_alias=True)
    return {key: current[key] - prior[key] for key in current}


def normalize_metrics(region: str, rows: Sequence[Mapping[str, Any]]) -> MetricsSnapshot:
    """Build a ``MetricsSnapshot`` from rows ordered newest first."""
    if not rows:
        return MetricsSnapshot(region=region)

    newest = rows[0]
    previous = rows[1] if len(rows) > 1 else None
    totals = normalize_totals(newest)
    # ``anomalies`` doubles as a count column; only a list is read as alerts.
    alerts_raw = _first(newest, ("alerts", "anomalies"))

    return MetricsSnapshot(
        region=region,
        updated_at=parse_timestamp(newest),
        totals=totals,
        trend=_normalize_trend(newest, totals, previous),
        hotspots=_as_records(_first(newest, ("hotspots", "heatmap"))),
        alerts=_as_records(alerts_raw),
    )


def _extract_features(row: Mapping[str, Any]) -> List[Dict[str, Any]]:
    raw = _first(row, ("features", "geojson"))
    if isinstance(raw, Mapping):
        raw = raw.get("features")
    return _as_records(raw)


def normalize_region_snapshot(
    region: str, row: Optional[Mapping[str, Any]]
) -> RegionSnapshot:
    """Build a ``RegionSnapshot``; a missing row yields an empty snapshot."""
    if row is None:
        return RegionSnapshot(region=region)

    insights = _as_mapping(_first(row, ("ai_insights", "aiInsights")))
    return RegionSnapshot(
        region=region,
        updated_at=parse_timestamp(row),
        features=_extract_features(row),
        ai_insights=AiInsights(
            heatmap=_as_records(_first(insights, ("heatmap",))),
            connections=_as_records(_first(insights, ("connections",))),
            confidence_zones=_as_records(
                _first(insights, ("confidenceZones", "confidence_zones"))
            ),
            anomalies=_as_records(_first(insights, ("anomalies",))),
        ),
    )


def build_overlays(snapshot: RegionSnapshot, metrics: MetricsSnapshot) -> MapOverlays:
    """Combine layers and metrics; each degrades into the other when empty."""
    insights = snapshot.ai_insights
    merged = insights.model_copy(
        update={
            "heatmap": insights.heatmap or list(metrics.hotspots),
            "anomalies": insights.anomalies or list(metrics.alerts),
        }
    )
    return MapOverlays(
        features=list(snapshot.features),
        ai_insights=merged,
        hotspots=list(metrics.hotspots),
        updated_at=snapshot.updated_at or metrics.updated_at,
    )


def merge_metrics_delta(
    previous: MetricsSnapshot, delta: Mapping[str, Any]
) -> MetricsSnapshot:
    """Overlay a partial metrics update onto the last known snapshot.

    Present fields overwrite; each total falls back to its prior value when the
    delta omits it.
    """
    totals = normalize_totals(delta, fallback=previous.totals)

    trend = {**previous.trend, **_numeric_mapping(delta.get("trend"))}

    hotspots = previous.hotspots
    raw_hotspots = _first(delta, ("hotspots", "heatmap"))
    if raw_hotspots is not None:
        hotspots = _as_records(raw_hotspots)

    alerts = previous.alerts
    # Same rule as normalize_metrics: a numeric ``anomalies`` is a count, not alerts.
    raw_alerts = _first(delta, ("alerts", "anomalies"))
    if isinstance(raw_alerts, list):
        alerts = _as_records(raw_alerts)

    return previous.model_copy(
        update={
            "updated_at": parse_timestamp(delta) or previous.updated_at,
            "totals": totals,
            "trend": trend,
            "hotspots": hotspots,
            "alerts": alerts,
        }
    )


__all__ = [
    "build_overlays",
    "merge_metrics_delta",
    "normalize_metrics",
    "normalize_region_snapshot",
    "normalize_totals",
    "parse_timestamp",
    "to_number",
]
