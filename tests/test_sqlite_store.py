try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from app.clients.sqlite_store import SQLiteStore
from app.core.errors import DataSourceError


@pytest.fixture()
def store(tmp_path) -> SQLiteStore:
    return SQLiteStore(str(tmp_path / "nested" / "snapshots.db"))


@pytest.mark.asyncio
async def test_query_latest_orders_newest_first_and_filters_region(store) -> None:
    base = datetime(2025, 3, 1, tzinfo=timezone.utc)
    for minutes, region in ((0, "global"), (10, "global"), (5, "global"), (20, "west")):
        store.insert_row(
            "map_insight_metrics",
            {"region": region, "updated_at": base + timedelta(minutes=minutes), "n": minutes},
        )

    rows = await store.query_latest("map_insight_metrics", {"region": "global"}, "updated_at", 2)

    assert [row["n"] for row in rows] == [10, 5]
    assert rows[0]["updated_at"] == "2025-03-01T00:10:00+00:00"


@pytest.mark.asyncio
async def test_tables_are_isolated(store) -> None:
    store.insert_row("map_insight_layers", {"region": "global", "updated_at": "2025-01-01"})

    rows = await store.query_latest("map_insight_metrics", {"region": "global"}, "updated_at", 5)

    assert rows == []


@pytest.mark.asyncio
async def test_invalid_column_name_raises_data_source_error(store) -> None:
    with pytest.raises(DataSourceError):
        await store.query_latest(
            "map_insight_layers", {"region); DROP TABLE x; --": "global"}, "updated_at", 1
        )


@pytest.mark.asyncio
async def test_connections_are_closed_after_each_operation(store, monkeypatch) -> None:
    opened: list[sqlite3.Connection] = []
    connect = store._connect

    def tracking_connect() -> sqlite3.Connection:
        conn = connect()
        opened.append(conn)
        return conn

    monkeypatch.setattr(store, "_connect", tracking_connect)

    store.insert_row("map_insight_metrics", {"region": "global", "updated_at": "2025-01-01"})
    rows = await store.query_latest("map_insight_metrics", {"region": "global"}, "updated_at", 1)

    assert len(rows) == 1
    assert len(opened) == 2
    for conn in opened:
        with pytest.raises(sqlite3.ProgrammingError):
            conn.execute("SELECT 1")
