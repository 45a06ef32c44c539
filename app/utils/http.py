"""HTTP utilities providing retry/backoff semantics."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)


class RetryConfig:
    def __init__(self, *, attempts: int = 3, backoff_seconds: float = 0.5) -> None:
        self.attempts = attempts
        self.backoff_seconds = backoff_seconds


def _is_retryable(exc: httpx.HTTPError) -> bool:
    """Transport failures and 5xx responses are retried; 4xx are final."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, httpx.TransportError)


async def request_with_retry(
    func: Callable[..., Awaitable[httpx.Response]],
    *args,
    retry_config: RetryConfig | None = None,
    **kwargs,
) -> httpx.Response:
    config = retry_config or RetryConfig()
    attempt = 0
    last_exception: Exception | None = None

    while attempt < config.attempts:
        try:
            response = await func(*args, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPError as exc:
            last_exception = exc
            attempt += 1
            if not _is_retryable(exc) or attempt >= config.attempts:
                break
            logger.warning(
                "HTTP request failed (attempt %d/%d): %s",
                attempt,
                config.attempts,
                exc,
            )
            await asyncio.sleep(config.backoff_seconds * attempt)

    if last_exception is not None:
        raise last_exception
    raise RuntimeError("Request failed without raising an exception")


__all__ = ["RetryConfig", "request_with_retry"]
