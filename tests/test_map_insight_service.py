try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import DataSourceError, ValidationError
from app.services.insight_cache import InsightCache
from app.services.map_insights import MapInsightService, normalize_region
from app.services.snapshot_fetcher import SnapshotFetcher
from app.services.summary_generator import SummaryGenerator


class StubStore:
    """In-memory row store keyed by table and region."""

    def __init__(self, tables: dict[str, dict[str, list[dict]]] | None = None, *, delay: float = 0.0):
        self.tables = tables or {}
        self.delay = delay
        self.queries: list[tuple[str, dict, str, int]] = []
        self.error: Exception | None = None

    async def query_latest(self, table, filters, order_by, limit):
        self.queries.append((table, dict(filters), order_by, limit))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        rows = self.tables.get(table, {}).get(filters.get("region"), [])
        return rows[:limit]


class SteppingNow:
    def __init__(self) -> None:
        self.current = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


def _seeded_store(**kwargs) -> StubStore:
    return StubStore(
        {
            "map_insight_layers": {
                "global": [
                    {
                        "updated_at": "2025-03-01T11:55:00Z",
                        "features": [
                            {"type": "Feature", "properties": {"title": f"RFx {i}"}}
                            for i in range(3)
                        ],
                    }
                ]
            },
            "map_insight_metrics": {
                "global": [
                    {
                        "updated_at": "2025-03-01T11:55:00Z",
                        "totals": {"activeRfx": 10, "openOpportunities": 4},
                        "hotspots": [{"lat": 40.0, "lng": -83.0, "intensity": 0.8}],
                    }
                ]
            },
        },
        **kwargs,
    )


def _service(store: StubStore, clock, *, completion_client=None, now=None) -> MapInsightService:
    return MapInsightService(
        fetcher=SnapshotFetcher(store, metrics_history=5),
        summary_generator=SummaryGenerator(completion_client, timeout_seconds=0.5),
        cache=InsightCache(ttl_ms=60_000, clock=clock),
        now=now or SteppingNow(),
    )


@pytest.mark.asyncio
async def test_cold_cache_builds_full_payload_with_system_summary(clock) -> None:
    store = _seeded_store()
    service = _service(store, clock)

    payload = await service.get_map_insights("global")

    assert payload.region == "global"
    assert len(payload.overlays.features) == 3
    assert payload.metrics.totals.active_rfx == 10
    assert payload.overlays.ai_insights.heatmap == payload.metrics.hotspots
    assert payload.summary.provider == "system"
    assert len(payload.summary.bullets) <= 3
    tables = sorted(query[0] for query in store.queries)
    assert tables == ["map_insight_layers", "map_insight_metrics"]


@pytest.mark.asyncio
async def test_repeat_requests_reuse_cached_inputs_but_refresh_generated_at(clock) -> None:
    store = _seeded_store()
    service = _service(store, clock)

    first = await service.get_map_insights("global")
    second = await service.get_map_insights("global")

    assert second.overlays == first.overlays
    assert second.metrics == first.metrics
    assert second.generated_at > first.generated_at
    assert len(store.queries) == 2


@pytest.mark.asyncio
async def test_concurrent_requests_query_store_once_per_table(clock) -> None:
    store = _seeded_store(delay=0.01)
    service = _service(store, clock)

    payloads = await asyncio.gather(*(service.get_map_insights("global") for _ in range(5)))

    assert len(store.queries) == 2
    assert all(payload.metrics == payloads[0].metrics for payload in payloads)


@pytest.mark.asyncio
async def test_expired_inputs_are_fetched_again(clock) -> None:
    store = _seeded_store()
    service = _service(store, clock)

    await service.get_map_insights("global")
    clock.advance(61)
    await service.get_map_insights("global")

    assert len(store.queries) == 4


@pytest.mark.asyncio
async def test_unknown_region_returns_empty_snapshots(clock) -> None:
    service = _service(_seeded_store(), clock)

    payload = await service.get_map_insights("antarctica")

    assert payload.overlays.features == []
    assert payload.metrics.totals.active_rfx == 0
    assert payload.summary.provider == "system"


@pytest.mark.asyncio
async def test_store_failure_propagates_and_is_not_cached(clock) -> None:
    store = _seeded_store()
    store.error = DataSourceError("connection refused")
    service = _service(store, clock)

    with pytest.raises(DataSourceError):
        await service.get_map_insights("global")

    store.error = None
    payload = await service.get_map_insights("global")
    assert payload.metrics.totals.active_rfx == 10


@pytest.mark.asyncio
async def test_metrics_only_request_shares_cache_with_full_payload(clock) -> None:
    store = _seeded_store()
    service = _service(store, clock)

    metrics = await service.get_map_insight_metrics("global")
    payload = await service.get_map_insights("global")

    assert payload.metrics == metrics
    metric_queries = [query for query in store.queries if query[0] == "map_insight_metrics"]
    assert len(metric_queries) == 1
    assert metric_queries[0][3] == 5


def test_normalize_region_defaults_and_validates() -> None:
    assert normalize_region(None) == "global"
    assert normalize_region("   ") == "global"
    assert normalize_region(" Midwest ") == "Midwest"
    assert normalize_region("Midwest", case_sensitive=False) == "midwest"

    with pytest.raises(ValidationError):
        normalize_region("x" * 65)
    with pytest.raises(ValidationError):
        normalize_region("west;drop table")
    with pytest.raises(ValidationError):
        normalize_region(42)


class StubCompletionClient:
    def __init__(self, text: str) -> None:
        self.text = text
        self.calls = 0

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls += 1
        return self.text


@pytest.mark.asyncio
async def test_cold_cache_with_provider_uses_completion(clock) -> None:
    completion = StubCompletionClient("Region stable.\n- A\n- B")
    service = _service(_seeded_store(), clock, completion_client=completion)

    payload = await service.get_map_insights("global")

    assert len(payload.overlays.features) == 3
    assert payload.metrics.totals.active_rfx == 10
    assert payload.summary.text == "Region stable."
    assert payload.summary.bullets == ["A", "B"]
    assert payload.summary.provider == "openai"

    await service.get_map_insights("global")
    assert completion.calls == 2
