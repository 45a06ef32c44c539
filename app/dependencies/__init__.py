"""Expose dependency helpers for FastAPI routers."""

from .auth import extract_token, require_identity
from .clients import (
    get_completion_client,
    get_data_store,
    get_identity_client,
    get_insight_cache,
    get_map_insight_service,
    get_snapshot_fetcher,
    get_summary_generator,
)
from .config import SettingsDependency, get_app_settings, get_region

__all__ = [
    "SettingsDependency",
    "extract_token",
    "get_app_settings",
    "get_completion_client",
    "get_data_store",
    "get_identity_client",
    "get_insight_cache",
    "get_map_insight_service",
    "get_region",
    "get_snapshot_fetcher",
    "get_summary_generator",
    "require_identity",
]
