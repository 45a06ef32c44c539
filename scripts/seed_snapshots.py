"""Populate the local SQLite store with demo layer and metrics snapshots.

Usage (from the repository root)::

    python -m scripts.seed_snapshots                 # seed 'global' and named regions
    python -m scripts.seed_snapshots --region midwest

Only the SQLite substitute is written; a configured Supabase project is never
touched by this script.
"""

from __future__ import annotations

import argparse
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Sequence

from app.clients.sqlite_store import SQLiteStore
from app.core.config import get_settings

# label, lat, lng, status, budget
_OPPORTUNITIES: Sequence[tuple[str, float, float, str, int]] = (
    ("Columbus transit shelters", 39.96, -83.00, "open", 1_250_000),
    ("Chicago fleet telematics", 41.88, -87.63, "open", 780_000),
    ("Denver water SCADA upgrade", 39.74, -104.99, "evaluating", 2_400_000),
    ("Austin permitting portal", 30.27, -97.74, "open", 540_000),
    ("Seattle bridge inspection", 47.61, -122.33, "awarded", 3_100_000),
    ("Atlanta school HVAC", 33.75, -84.39, "open", 960_000),
)

_REGIONS: tuple[str, ...] = ("global", "midwest", "west", "south")


def _feature(label: str, lat: float, lng: float, status: str, budget: int) -> Dict[str, Any]:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [lng, lat]},
        "properties": {"title": label, "status": status, "budget": budget},
    }


def build_layer_row(region: str, captured_at: datetime) -> Dict[str, Any]:
    features = [_feature(*entry) for entry in _OPPORTUNITIES]
    points = [(entry[1], entry[2]) for entry in _OPPORTUNITIES]
    return {
        "region": region,
        "updated_at": captured_at,
        "features": features,
        "ai_insights": {
            "connections": [
                {"source": [a[1], a[0]], "target": [b[1], b[0]], "weight": 0.6}
                for a, b in zip(points, points[1:])
            ],
            "confidence_zones": [
                {
                    "polygon": [
                        [-90.0, 38.0],
                        [-80.0, 38.0],
                        [-80.0, 43.0],
                        [-90.0, 43.0],
                    ],
                    "confidence": 0.72,
                }
            ],
        },
    }


def build_metrics_rows(
    region: str, now: datetime, history: int, rng: random.Random
) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    active = rng.randint(20, 40)
    for offset in range(history, 0, -1):
        active = max(0, active + rng.randint(-3, 4))
        hotspots = [
            {"lat": lat, "lng": lng, "intensity": round(rng.uniform(0.2, 1.0), 2)}
            for _, lat, lng, _, _ in _OPPORTUNITIES[: rng.randint(2, len(_OPPORTUNITIES))]
        ]
        anomalies = rng.randint(0, 3)
        rows.append(
            {
                "region": region,
                "updated_at": now - timedelta(minutes=5 * offset),
                "totals": {
                    "activeRfx": active,
                    "openOpportunities": rng.randint(0, max(active, 1)),
                    "vendorCoverage": rng.randint(55, 95),
                    "anomalies": anomalies,
                },
                "hotspots": hotspots,
                "alerts": [
                    {
                        "position": [hotspots[0]["lng"], hotspots[0]["lat"]],
                        "severity": "medium",
                        "message": "Response volume spike",
                    }
                ][:anomalies],
            }
        )
    return rows


def seed(regions: Sequence[str], *, seed_value: int = 7) -> int:
    settings = get_settings()
    store = SQLiteStore(settings.data_store.sqlite_path)
    rng = random.Random(seed_value)
    now = datetime.now(timezone.utc)
    written = 0
    for region in regions:
        store.insert_row(settings.data_store.layers_table, build_layer_row(region, now))
        written += 1
        for row in build_metrics_rows(region, now, settings.insights.metrics_history, rng):
            store.insert_row(settings.data_store.metrics_table, row)
            written += 1
    return written


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--region",
        action="append",
        help="Region to seed (repeatable). Defaults to a built-in set.",
    )
    parser.add_argument("--seed", type=int, default=7, help="Random seed.")
    args = parser.parse_args(argv)

    regions = tuple(args.region) if args.region else _REGIONS
    written = seed(regions, seed_value=args.seed)
    print(f"Seeded {written} snapshot rows for {', '.join(regions)}")
    return 0


if __name__ == "__main__":  # pragma: no cover - manual execution path
    raise SystemExit(main())
