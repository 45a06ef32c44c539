"""SQLite-backed substitute for the hosted snapshot tables."""

from __future__ import annotations

import asyncio
import json
import re
import sqlite3
from contextlib import closing
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping

from app.core.errors import DataSourceError

_COLUMN_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _default_json_serializer(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Type {type(value)!r} not serializable")


def _json_path(column: str) -> str:
    if not _COLUMN_PATTERN.match(column):
        raise DataSourceError(f"Invalid column name: {column!r}")
    return f"$.{column}"


class SQLiteStore:
    """Row store keeping each snapshot as a JSON document grouped by table name."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS snapshot_rows (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    table_name TEXT NOT NULL,
                    data TEXT NOT NULL
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_snapshot_rows_table "
                "ON snapshot_rows (table_name)"
            )

    def insert_row(self, table: str, row: Mapping[str, Any]) -> None:
        data_json = json.dumps(dict(row), default=_default_json_serializer)
        with closing(self._connect()) as conn, conn:
            conn.execute(
                "INSERT INTO snapshot_rows (table_name, data) VALUES (?, ?)",
                (table, data_json),
            )

    def _select_latest(
        self,
        table: str,
        filters: Mapping[str, Any],
        order_by: str,
        limit: int,
    ) -> List[Dict[str, Any]]:
        clauses = ["table_name = ?"]
        params: list[Any] = [table]
        for column, value in filters.items():
            clauses.append("json_extract(data, ?) = ?")
            params.extend([_json_path(column), value])
        params.extend([_json_path(order_by), limit])

        query = (
            "SELECT data FROM snapshot_rows "
            f"WHERE {' AND '.join(clauses)} "
            "ORDER BY json_extract(data, ?) DESC, id DESC LIMIT ?"
        )
        with closing(self._connect()) as conn, conn:
            rows = conn.execute(query, params).fetchall()
        return [json.loads(row["data"]) for row in rows]

    async def query_latest(
        self,
        table: str,
        filters: Mapping[str, Any],
        order_by: str,
        limit: int,
    ) -> List[Dict[str, Any]]:
        """Return up to ``limit`` rows matching ``filters``, newest ``order_by`` first."""
        try:
            return await asyncio.to_thread(
                self._select_latest, table, filters, order_by, limit
            )
        except (sqlite3.Error, json.JSONDecodeError) as exc:
            raise DataSourceError(f"SQLite query on '{table}' failed: {exc}") from exc


__all__ = ["SQLiteStore"]
