"""
FastAPI dependency utilities for configuration-driven request parameters.
"""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Query

from app.core.config import AppSettings, get_settings
from app.services.map_insights import normalize_region


@lru_cache()
def _settings_singleton() -> AppSettings:
    """Ensure configuration is created once per process."""
    return get_settings()


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return _settings_singleton()


SettingsDependency = Depends(get_app_settings)


def get_region(
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    region: Optional[str] = Query(
        default=None,
        description="Region key, e.g. 'global' or a named area. Defaults to 'global'.",
    ),
) -> str:
    """Validate the ``region`` query parameter against the insight settings."""
    insights = settings.insights
    return normalize_region(
        region,
        default=insights.default_region,
        max_length=insights.region_max_length,
        case_sensitive=insights.region_case_sensitive,
    )


__all__ = ["SettingsDependency", "get_app_settings", "get_region"]
