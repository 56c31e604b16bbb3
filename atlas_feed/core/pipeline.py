"""
Aggregation pipeline: merge provider result sets into one feed page.

The steps always run in this order:
1. Deduplicate by canonical id (first occurrence wins)
2. Sort by the requested strategy
3. Interleave by provider (date sort only)
4. Paginate

Everything here is a pure function over in-memory lists.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Any

from .dedup import collapse_similar_titles, dedup_by_id
from .taxonomy import Provider, Topic
from .types import (
    INTERLEAVE_ORDER,
    PROVIDER_ORDER,
    CanonicalContent,
    FeedPage,
    ProviderStatus,
    SortStrategy,
    utc_now,
)

# Relevance adds published epoch seconds scaled by this divisor to the score.
RECENCY_DIVISOR = 1e9


def _score(item: CanonicalContent) -> float:
    return item.engagement_score if item.engagement_score is not None else 0.0


def relevance_key(item: CanonicalContent) -> float:
    return _score(item) + item.published_at.timestamp() / RECENCY_DIVISOR


def sort_items(items: list[CanonicalContent], strategy: SortStrategy | str = SortStrategy.DATE) -> list[CanonicalContent]:
    """Return a new list sorted descending by the given strategy.

    Sorting is stable, so equal keys keep their encounter order.
    """
    strategy = SortStrategy(strategy)
    if strategy is SortStrategy.SCORE:
        return sorted(items, key=_score, reverse=True)
    if strategy is SortStrategy.RELEVANCE:
        return sorted(items, key=relevance_key, reverse=True)
    return sorted(items, key=lambda item: item.published_at, reverse=True)


def interleave_by_provider(
    items: list[CanonicalContent],
    order: tuple[Provider, ...] = INTERLEAVE_ORDER,
) -> list[CanonicalContent]:
    """Round-robin items by provider so no single provider dominates the head.

    Each provider's items keep their relative order. A provider that runs out
    is skipped for the remaining rounds.
    """
    by_provider: dict[Provider, list[CanonicalContent]] = {provider: [] for provider in order}
    for item in items:
        by_provider.setdefault(item.provider, []).append(item)

    result: list[CanonicalContent] = []
    longest = max((len(bucket) for bucket in by_provider.values()), default=0)
    for index in range(longest):
        for bucket in by_provider.values():
            if index < len(bucket):
                result.append(bucket[index])
    return result


def paginate(items: list[CanonicalContent], page: int, page_size: int) -> tuple[list[CanonicalContent], bool]:
    """Slice one page out of ``items``.

    Returns:
        The page's items and whether more items exist after it
    """
    start = (page - 1) * page_size
    end = page * page_size
    return items[start:end], end < len(items)


def rank_items(
    items: list[CanonicalContent],
    sort: SortStrategy | str = SortStrategy.DATE,
    title_similarity_threshold: int | None = None,
) -> list[CanonicalContent]:
    """Run dedup, sort and interleave over merged provider output."""
    strategy = SortStrategy(sort)
    ranked = dedup_by_id(items)
    if title_similarity_threshold is not None:
        ranked = collapse_similar_titles(ranked, title_similarity_threshold)
    ranked = sort_items(ranked, strategy)
    if strategy is SortStrategy.DATE:
        ranked = interleave_by_provider(ranked)
    return ranked


def build_feed_page(
    items: list[CanonicalContent],
    page: int,
    page_size: int,
    sort: SortStrategy | str = SortStrategy.DATE,
    statuses: list[ProviderStatus] | None = None,
    title_similarity_threshold: int | None = None,
    fetched_at: datetime | None = None,
) -> FeedPage:
    """Compose the full pipeline and wrap the result in a FeedPage."""
    ranked = rank_items(items, sort, title_similarity_threshold)
    page_items, has_more = paginate(ranked, page, page_size)
    return FeedPage(
        items=page_items,
        total=len(ranked),
        page=page,
        page_size=page_size,
        has_more=has_more,
        fetched_at=fetched_at or utc_now(),
        provider_statuses=list(statuses or []),
    )


def filter_by_topics(items: list[CanonicalContent], topics: list[Topic]) -> list[CanonicalContent]:
    """Keep items tagged with any of ``topics``. An empty topic list keeps everything."""
    if not topics:
        return list(items)
    wanted = set(topics)
    return [item for item in items if wanted.intersection(item.topics)]


def exclude_topics(items: list[CanonicalContent], excluded: list[Topic]) -> list[CanonicalContent]:
    """Drop items whose primary topic is excluded."""
    if not excluded:
        return list(items)
    blocked = set(excluded)
    return [item for item in items if item.primary_topic not in blocked]


def filter_by_providers(items: list[CanonicalContent], providers: list[Provider]) -> list[CanonicalContent]:
    if not providers:
        return list(items)
    wanted = set(providers)
    return [item for item in items if item.provider in wanted]


def group_by_topic(items: list[CanonicalContent]) -> dict[Topic, list[CanonicalContent]]:
    grouped: dict[Topic, list[CanonicalContent]] = defaultdict(list)
    for item in items:
        grouped[item.primary_topic].append(item)
    return dict(grouped)


def group_by_provider(items: list[CanonicalContent]) -> dict[Provider, list[CanonicalContent]]:
    grouped: dict[Provider, list[CanonicalContent]] = {provider: [] for provider in PROVIDER_ORDER}
    for item in items:
        grouped[item.provider].append(item)
    return grouped


def content_stats(items: list[CanonicalContent]) -> dict[str, Any]:
    """Summarize a list of records: counts per provider and topic, images, average score."""
    by_provider = {provider.value: 0 for provider in PROVIDER_ORDER}
    by_topic: dict[str, int] = {}
    with_images = 0
    scores: list[float] = []

    for item in items:
        by_provider[item.provider.value] += 1
        for topic in item.topics:
            by_topic[topic.value] = by_topic.get(topic.value, 0) + 1
        if item.image_url or item.thumbnail_url or item.image_urls:
            with_images += 1
        if item.engagement_score is not None:
            scores.append(item.engagement_score)

    return {
        "total": len(items),
        "by_provider": by_provider,
        "by_topic": by_topic,
        "with_images": with_images,
        "avg_score": round(sum(scores) / len(scores)) if scores else 0,
    }
