"""Row-store client speaking Supabase's PostgREST interface."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import httpx

from app.core.errors import DataSourceError
from app.utils.http import RetryConfig, request_with_retry


class SupabaseStore:
    """Query the newest rows of a table through the Supabase REST endpoint."""

    _REST_PATH = "/rest/v1"

    def __init__(
        self,
        *,
        url: str,
        service_key: str,
        timeout_seconds: float = 10.0,
        retry_config: RetryConfig | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = url.rstrip("/")
        self._service_key = service_key
        self._timeout = timeout_seconds
        self._retry_config = retry_config or RetryConfig()
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self._service_key,
            "Authorization": f"Bearer {self._service_key}",
            "Accept": "application/json",
        }

    async def query_latest(
        self,
        table: str,
        filters: Mapping[str, Any],
        order_by: str,
        limit: int,
    ) -> List[Dict[str, Any]]:
        """Return up to ``limit`` rows matching ``filters``, newest ``order_by`` first."""

        params: Dict[str, str] = {
            "select": "*",
            "order": f"{order_by}.desc",
            "limit": str(limit),
        }
        for column, value in filters.items():
            params[column] = f"eq.{value}"

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await request_with_retry(
                    client.get,
                    f"{self._REST_PATH}/{table}",
                    params=params,
                    headers=self._headers(),
                    retry_config=self._retry_config,
                )
        except httpx.HTTPError as exc:
            raise DataSourceError(f"Supabase query on '{table}' failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise DataSourceError(
                f"Supabase returned a non-JSON body for '{table}'"
            ) from exc

        if not isinstance(payload, list) or not all(
            isinstance(row, dict) for row in payload
        ):
            raise DataSourceError(f"Supabase returned malformed rows for '{table}'")
        return payload


__all__ = ["SupabaseStore"]
