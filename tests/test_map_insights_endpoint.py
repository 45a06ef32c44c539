try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from unittest.mock import patch

import httpx
import pytest

from app.core.errors import DataSourceError
from app.core.rate_limit import limiter
from app.main import app
from app.services.insight_cache import InsightCache
from app.services.map_insights import MapInsightService
from app.services.snapshot_fetcher import SnapshotFetcher
from app.services.summary_generator import SummaryGenerator


class StubIdentityClient:
    def __init__(self, valid_tokens: set[str]) -> None:
        self.valid_tokens = valid_tokens
        self.tokens_seen: list[str] = []

    async def get_user(self, token: str):
        self.tokens_seen.append(token)
        if token in self.valid_tokens:
            return {"id": "user-1", "email": "buyer@example.com"}
        return None


class StubStore:
    def __init__(self) -> None:
        self.error: Exception | None = None
        self.rows = {
            "map_insight_layers": [
                {"region": "global", "features": [{"type": "Feature"}, {"type": "Feature"}]}
            ],
            "map_insight_metrics": [
                {
                    "region": "global",
                    "updated_at": "2025-03-01T12:00:00+00:00",
                    "totals": {"activeRfx": 8, "vendorCoverage": 64},
                }
            ],
        }

    async def query_latest(self, table, filters, order_by, limit):
        if self.error is not None:
            raise self.error
        return [row for row in self.rows.get(table, []) if row["region"] == filters["region"]]


pytestmark = pytest.mark.anyio("asyncio")

AUTH = {"Authorization": "Bearer good-token"}


@pytest.fixture()
def overrides():
    from app import dependencies

    store = StubStore()
    identity = StubIdentityClient({"good-token"})
    service = MapInsightService(
        fetcher=SnapshotFetcher(store),
        summary_generator=SummaryGenerator(None),
        cache=InsightCache(ttl_ms=60_000),
    )

    app.dependency_overrides.clear()
    app.dependency_overrides.update(
        {
            dependencies.get_identity_client: lambda: identity,
            dependencies.get_map_insight_service: lambda: service,
        }
    )

    yield store, identity

    app.dependency_overrides.clear()


@pytest.fixture()
async def client(overrides):
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    ) as test_client:
        yield test_client


async def test_health_endpoint(client):
    response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_map_insights_returns_camel_case_payload(client):
    response = await client.get("/api/map-insights", params={"region": "global"}, headers=AUTH)

    assert response.status_code == 200
    body = response.json()
    assert body["region"] == "global"
    assert "generatedAt" in body
    assert len(body["overlays"]["features"]) == 2
    assert body["overlays"]["aiInsights"]["confidenceZones"] == []
    assert body["metrics"]["totals"] == {
        "activeRfx": 8,
        "openOpportunities": 0,
        "vendorCoverage": 64,
        "anomalies": 0,
    }
    assert body["summary"]["provider"] == "system"
    assert len(body["summary"]["bullets"]) == 3


async def test_region_defaults_to_global(client):
    response = await client.get("/api/map-insights", headers=AUTH)

    assert response.status_code == 200
    assert response.json()["region"] == "global"


async def test_invalid_region_is_rejected(client):
    response = await client.get(
        "/api/map-insights", params={"region": "x" * 80}, headers=AUTH
    )

    assert response.status_code == 400
    assert "region" in response.json()["detail"]


async def test_data_source_failure_returns_generic_error(overrides, client):
    store, _ = overrides
    store.error = DataSourceError("relation map_insight_layers: password=hunter2")

    response = await client.get("/api/map-insights", headers=AUTH)

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to load map insights"}
    assert "hunter2" not in response.text


async def test_missing_token_is_unauthorized(client):
    response = await client.get("/api/map-insights")

    assert response.status_code == 401
    assert response.json()["detail"] == "Authentication token missing"


async def test_rejected_token_is_unauthorized(client):
    response = await client.get(
        "/api/map-insights", headers={"Authorization": "Bearer stale-token"}
    )

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired token"


async def test_session_cookie_and_query_token_are_accepted(overrides, client):
    _, identity = overrides

    cookie_response = await client.get(
        "/api/map-insights/metrics", headers={"Cookie": "accelrfx-session=good-token"}
    )
    query_response = await client.get(
        "/api/map-insights/metrics", params={"access_token": "good-token"}
    )

    assert cookie_response.status_code == 200
    assert query_response.status_code == 200
    assert identity.tokens_seen == ["good-token", "good-token"]


async def test_metrics_endpoint_returns_metrics_only(client):
    response = await client.get(
        "/api/map-insights/metrics", params={"region": "global"}, headers=AUTH
    )

    assert response.status_code == 200
    body = response.json()
    assert body["region"] == "global"
    assert body["totals"]["activeRfx"] == 8
    assert "summary" not in body


async def test_rate_limit_returns_429(client):
    limiter.enabled = True
    try:
        with patch.object(limiter.limiter, "hit", return_value=False):
            limited = await client.get("/api/map-insights/metrics", headers=AUTH)
    finally:
        limiter.enabled = False

    assert limited.status_code == 429
    assert "error" in limited.json()
