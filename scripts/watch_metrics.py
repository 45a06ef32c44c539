"""Poll the metrics endpoint and print merged changes as a dashboard would see them."""

from __future__ import annotations

import argparse
import asyncio
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

import httpx

from app.schemas import MetricsSnapshot
from app.services.metrics_feed import MetricsFeed
from app.utils.http import RetryConfig, request_with_retry


def _timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


def _print_header(title: str) -> None:
    line = "=" * len(title)
    print(f"\n{title}\n{line}")


def _describe_change(
    previous: Optional[Dict[str, Any]], current: Dict[str, Any]
) -> Optional[str]:
    if previous == current:
        return None
    parts = []
    for key, value in current.items():
        before = (previous or {}).get(key)
        if before != value:
            arrow = f"{before} → {value}" if before is not None else f"{value}"
            parts.append(f"{key}={arrow}")
    return ", ".join(parts)


def _printer(region: str):
    seen: Dict[str, Optional[Dict[str, Any]]] = {"totals": None}

    def _on_update(snapshot: MetricsSnapshot) -> None:
        totals = snapshot.totals.model_dump(by_alias=True)
        change = _describe_change(seen["totals"], totals)
        seen["totals"] = totals
        if change:
            print(
                f"[{_timestamp()}] {region} totals {change}"
                f" | hotspots={len(snapshot.hotspots)} alerts={len(snapshot.alerts)}"
            )

    return _on_update


async def watch(
    *,
    base_url: str,
    region: str,
    token: Optional[str],
    poll_interval: float,
) -> None:
    feed = MetricsFeed(region)
    feed.subscribe(_printer(region))
    headers = {"Authorization": f"Bearer {token}"} if token else {}

    _print_header(f"Watching map-insight metrics for '{region}' (Ctrl+C to exit)")
    async with httpx.AsyncClient(base_url=base_url, timeout=10.0) as client:
        while True:
            try:
                response = await request_with_retry(
                    client.get,
                    "/api/map-insights/metrics",
                    params={"region": region},
                    headers=headers,
                    retry_config=RetryConfig(attempts=2),
                )
                feed.apply_delta(response.json())
            except httpx.HTTPError as exc:
                print(f"[{_timestamp()}] Request failed: {exc}")
            await asyncio.sleep(poll_interval)


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--region", default="global")
    parser.add_argument("--token", default=None, help="Bearer token for the API.")
    parser.add_argument("--interval", type=float, default=15.0)
    args = parser.parse_args(argv)

    try:
        asyncio.run(
            watch(
                base_url=args.base_url,
                region=args.region,
                token=args.token,
                poll_interval=args.interval,
            )
        )
    except KeyboardInterrupt:
        print("\nStopped watching.")
    return 0


if __name__ == "__main__":  # pragma: no cover - manual execution path
    raise SystemExit(main())
