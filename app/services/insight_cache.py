"""
Time-windowed, single-flight memoization for map-insight inputs.

Entries live for ``ttl_ms`` after capture and are replaced in place on
refresh. Concurrent misses for one key share a single loader invocation: the
first caller starts the load and everyone else awaits the same task until it
resolves. Failed loads are not cached.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CacheEntry(Generic[T]):
    """A cached value and the clock reading at which it was captured."""

    key: str
    data: T
    captured_at: float


class InsightCache:
    """Per-key TTL cache bounded by an LRU limit on distinct keys."""

    def __init__(
        self,
        *,
        ttl_ms: int = 60_000,
        max_entries: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._ttl_seconds = ttl_ms / 1000.0
        self._max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry[Any]]" = OrderedDict()
        self._inflight: Dict[str, "asyncio.Task[Any]"] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _is_fresh(self, entry: CacheEntry[Any], now: float) -> bool:
        return now - entry.captured_at < self._ttl_seconds

    def peek(self, key: str) -> Optional[Any]:
        """Return the fresh value for ``key`` without loading or touching LRU order."""
        entry = self._entries.get(key)
        if entry is None or not self._is_fresh(entry, self._clock()):
            return None
        return entry.data

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        """Return the fresh value for ``key``, invoking ``loader`` at most once per miss."""
        entry = self._entries.get(key)
        if entry is not None and self._is_fresh(entry, self._clock()):
            self._entries.move_to_end(key)
            logger.debug("Insight cache hit for %s", key)
            return entry.data

        task = self._inflight.get(key)
        if task is None:
            logger.debug("Insight cache miss for %s", key)
            task = asyncio.ensure_future(self._load(key, loader))
            task.add_done_callback(_consume_exception)
            self._inflight[key] = task
        else:
            logger.debug("Joining in-flight load for %s", key)

        # A cancelled waiter must not cancel the load other callers share.
        return await asyncio.shield(task)

    async def _load(self, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        try:
            data = await loader()
        except Exception as exc:
            logger.warning("Insight cache loader for %s failed: %s", key, exc)
            raise
        else:
            self._store(key, data)
            return data
        finally:
            self._inflight.pop(key, None)

    def _store(self, key: str, data: Any) -> None:
        now = self._clock()
        self._entries[key] = CacheEntry(key=key, data=data, captured_at=now)
        self._entries.move_to_end(key)
        self._sweep(now)

    def _sweep(self, now: float) -> None:
        expired = [
            key for key, entry in self._entries.items() if not self._is_fresh(entry, now)
        ]
        for key in expired:
            del self._entries[key]
        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted %s from insight cache", evicted)

    def invalidate(self, key: str) -> None:
        """Drop the cached value for ``key``; an in-flight load is left running."""
        self._entries.pop(key, None)


def _consume_exception(task: "asyncio.Task[Any]") -> None:
    # Marks the failure as retrieved when every waiter was cancelled.
    if not task.cancelled():
        task.exception()


__all__ = ["CacheEntry", "InsightCache"]
