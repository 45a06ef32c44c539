"""Service layer exports."""

from .insight_cache import CacheEntry, InsightCache
from .map_insights import MapInsightService, normalize_region
from .metrics_feed import MetricsFeed
from .snapshot_fetcher import SnapshotFetcher
from .summary_generator import SummaryGenerator

__all__ = [
    "CacheEntry",
    "InsightCache",
    "MapInsightService",
    "MetricsFeed",
    "SnapshotFetcher",
    "SummaryGenerator",
    "normalize_region",
]
