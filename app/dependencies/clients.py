"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache
import logging

from app.clients import (
    IdentityClient,
    OpenAICompletionClient,
    SQLiteStore,
    SupabaseStore,
)
from app.core.config import get_settings
from app.services import (
    InsightCache,
    MapInsightService,
    SnapshotFetcher,
    SummaryGenerator,
)
from app.services.snapshot_fetcher import SnapshotStore
from app.utils.http import RetryConfig

logger = logging.getLogger(__name__)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_data_store() -> SnapshotStore:
    """Provide Supabase when configured, otherwise the local SQLite store."""
    settings = _settings().data_store
    if settings.supabase_configured:
        return SupabaseStore(
            url=settings.url,
            service_key=settings.service_key,
            timeout_seconds=settings.timeout_seconds,
            retry_config=RetryConfig(attempts=settings.retry_attempts),
        )
    logger.info("Supabase not configured; using SQLite store at %s", settings.sqlite_path)
    return SQLiteStore(settings.sqlite_path)


@lru_cache()
def get_completion_client() -> OpenAICompletionClient | None:
    """Provide the OpenAI client when an API key is configured."""
    settings = _settings().openai
    if not settings.api_key:
        logger.info("OPENAI_API_KEY not set; map summaries use the system fallback")
        return None
    return OpenAICompletionClient(settings)


@lru_cache()
def get_identity_client() -> IdentityClient | None:
    """Provide the identity provider client when Supabase is configured."""
    settings = _settings().data_store
    if not settings.supabase_configured:
        return None
    return IdentityClient(url=settings.url, api_key=settings.service_key)


@lru_cache()
def get_insight_cache() -> InsightCache:
    """Provide the process-wide insight cache."""
    settings = _settings().insights
    return InsightCache(
        ttl_ms=settings.cache_ttl_ms,
        max_entries=settings.cache_max_entries,
    )


def get_snapshot_fetcher() -> SnapshotFetcher:
    """Build a snapshot fetcher over the configured store."""
    settings = _settings()
    return SnapshotFetcher(
        get_data_store(),
        layers_table=settings.data_store.layers_table,
        metrics_table=settings.data_store.metrics_table,
        order_column=settings.data_store.order_column,
        metrics_history=settings.insights.metrics_history,
    )


def get_summary_generator() -> SummaryGenerator:
    """Build a summary generator bounded by the provider timeout."""
    return SummaryGenerator(
        get_completion_client(),
        timeout_seconds=_settings().openai.timeout_seconds,
    )


@lru_cache()
def get_map_insight_service() -> MapInsightService:
    """Provide the aggregation service that owns the shared cache."""
    return MapInsightService(
        fetcher=get_snapshot_fetcher(),
        summary_generator=get_summary_generator(),
        cache=get_insight_cache(),
    )


__all__ = [
    "get_completion_client",
    "get_data_store",
    "get_identity_client",
    "get_insight_cache",
    "get_map_insight_service",
    "get_snapshot_fetcher",
    "get_summary_generator",
]
