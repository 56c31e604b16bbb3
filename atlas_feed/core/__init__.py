"""
Core domain models and pure feed logic.

This package contains the taxonomy, canonical content types and the
aggregation pipeline, independent of any provider or storage backend.
"""

from .dedup import collapse_similar_titles, dedup_by_id
from .pipeline import build_feed_page, interleave_by_provider, paginate, rank_items, sort_items
from .taxonomy import DEFAULT_TOPICS, Provider, Topic, map_provider_category, subjects_for_topic
from .types import (
    CanonicalContent,
    ErrorKind,
    FeedPage,
    FetchOptions,
    MediaExtras,
    NewsExtras,
    ProviderResult,
    ProviderStatus,
    SocialExtras,
    SortStrategy,
)

__all__ = [
    "CanonicalContent",
    "DEFAULT_TOPICS",
    "ErrorKind",
    "FeedPage",
    "FetchOptions",
    "MediaExtras",
    "NewsExtras",
    "Provider",
    "ProviderResult",
    "ProviderStatus",
    "SocialExtras",
    "SortStrategy",
    "Topic",
    "build_feed_page",
    "collapse_similar_titles",
    "dedup_by_id",
    "interleave_by_provider",
    "map_provider_category",
    "paginate",
    "rank_items",
    "sort_items",
    "subjects_for_topic",
]
