"""Shared request limiter for the AI-backed endpoints."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import get_settings


def insight_rate_limit() -> str:
    """Return the configured limit string, e.g. ``10/minute``."""
    return get_settings().insights.rate_limit


# Keyed by client IP, matching the per-client buckets the dashboards expect.
limiter = Limiter(
    key_func=get_remote_address,
    enabled=get_settings().insights.rate_limit_enabled,
)

__all__ = ["insight_rate_limit", "limiter"]
