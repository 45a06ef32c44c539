"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the insight services and
the operator scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()

_SETTINGS_CONFIG = SettingsConfigDict(populate_by_name=True, extra="ignore")


class DataStoreSettings(BaseSettings):
    """Configuration for the hosted row store and its local substitute."""

    model_config = _SETTINGS_CONFIG

    url: Optional[str] = Field(None, validation_alias="SUPABASE_URL")
    service_key: Optional[str] = Field(
        None,
        validation_alias=AliasChoices(
            "SUPABASE_SERVICE_ROLE_KEY",
            "SUPABASE_SERVICE_KEY",
            "SUPABASE_KEY",
            "SUPABASE_ANON_KEY",
        ),
        description="First configured Supabase key, service role preferred.",
    )
    timeout_seconds: float = Field(10.0, gt=0, validation_alias="DATA_STORE_TIMEOUT")
    retry_attempts: int = Field(3, ge=1, validation_alias="DATA_STORE_RETRY_ATTEMPTS")
    layers_table: str = Field("map_insight_layers", validation_alias="MAP_LAYERS_TABLE")
    metrics_table: str = Field(
        "map_insight_metrics", validation_alias="MAP_METRICS_TABLE"
    )
    order_column: str = Field(
        "updated_at",
        validation_alias="MAP_SNAPSHOT_ORDER_COLUMN",
        description="Capture timestamp column used to pick the newest snapshot.",
    )
    sqlite_path: str = Field(
        "data/map_insights.db",
        validation_alias="MAP_INSIGHTS_DB_PATH",
        description="Local store used when Supabase is not configured.",
    )

    @property
    def supabase_configured(self) -> bool:
        return bool(self.url and self.service_key)


class OpenAISettings(BaseSettings):
    """Configuration for the completion provider."""

    model_config = _SETTINGS_CONFIG

    api_key: Optional[str] = Field(None, validation_alias="OPENAI_API_KEY")
    organization: Optional[str] = Field(None, validation_alias="OPENAI_ORGANIZATION")
    chat_model: str = Field("gpt-4o-mini", validation_alias="OPENAI_MODEL")
    timeout_seconds: float = Field(8.0, gt=0, validation_alias="OPENAI_TIMEOUT")
    temperature: float = Field(0.3, ge=0, le=2, validation_alias="OPENAI_TEMPERATURE")
    max_tokens: int = Field(300, ge=16, validation_alias="OPENAI_MAX_TOKENS")


class InsightSettings(BaseSettings):
    """Caching, region handling and throttling for the map-insight endpoints."""

    model_config = _SETTINGS_CONFIG

    cache_ttl_ms: int = Field(60_000, gt=0, validation_alias="MAP_INSIGHTS_CACHE_TTL_MS")
    cache_max_entries: int = Field(
        256, ge=1, validation_alias="MAP_INSIGHTS_CACHE_MAX_ENTRIES"
    )
    metrics_history: int = Field(5, ge=1, validation_alias="MAP_INSIGHTS_METRICS_HISTORY")
    default_region: str = Field("global", validation_alias="MAP_INSIGHTS_DEFAULT_REGION")
    region_max_length: int = Field(
        64, ge=1, validation_alias="MAP_INSIGHTS_REGION_MAX_LENGTH"
    )
    region_case_sensitive: bool = Field(
        True, validation_alias="MAP_INSIGHTS_REGION_CASE_SENSITIVE"
    )
    rate_limit: str = Field("10/minute", validation_alias="MAP_INSIGHTS_RATE_LIMIT")
    rate_limit_enabled: bool = Field(
        True, validation_alias="MAP_INSIGHTS_RATE_LIMIT_ENABLED"
    )


class AuthSettings(BaseSettings):
    """Identity delegation settings."""

    model_config = _SETTINGS_CONFIG

    session_cookie_names: str = Field(
        "session,accelrfx-session",
        validation_alias="AUTH_SESSION_COOKIES",
        description="Comma-separated cookie names that may carry a session token.",
    )
    allow_anonymous: bool = Field(
        False,
        validation_alias="AUTH_ALLOW_ANONYMOUS",
        description="Skip identity checks when no provider is configured (local only).",
    )

    @property
    def session_cookies(self) -> tuple[str, ...]:
        return tuple(
            name.strip() for name in self.session_cookie_names.split(",") if name.strip()
        )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    data_store: DataStoreSettings = Field(default_factory=DataStoreSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    insights: InsightSettings = Field(default_factory=InsightSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()


__all__ = [
    "AppSettings",
    "AuthSettings",
    "DataStoreSettings",
    "InsightSettings",
    "OpenAISettings",
    "get_settings",
]
