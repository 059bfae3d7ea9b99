"""Retrieval layer for web and social evidence."""

from .search_provider import SearchProvider, SerpAPISearchProvider, platform_for_url
from .research_aggregator import (
    ResearchAggregator,
    canonical_url,
    dedupe_results,
    recency_window_for_days,
)

__all__ = [
    "SearchProvider",
    "SerpAPISearchProvider",
    "platform_for_url",
    "ResearchAggregator",
    "canonical_url",
    "dedupe_results",
    "recency_window_for_days",
]
