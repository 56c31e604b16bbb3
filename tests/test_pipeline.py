"""Tests for the merge/dedup/sort/interleave/paginate pipeline."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from atlas_feed.core.dedup import collapse_similar_titles, dedup_by_id
from atlas_feed.core.pipeline import (
    build_feed_page,
    content_stats,
    exclude_topics,
    filter_by_providers,
    filter_by_topics,
    group_by_provider,
    group_by_topic,
    interleave_by_provider,
    paginate,
    sort_items,
)
from atlas_feed.core.taxonomy import Provider, Topic
from atlas_feed.core.types import (
    CanonicalContent,
    MediaExtras,
    NewsExtras,
    SocialExtras,
    SortStrategy,
)

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

_EXTRAS = {
    Provider.NEWS: lambda: NewsExtras(category="technology"),
    Provider.MEDIA: lambda: MediaExtras(media_type="movie"),
    Provider.SOCIAL: lambda: SocialExtras(subreddit="technology"),
}


def make_item(
    provider: Provider,
    local_id: str,
    minutes_ago: int = 0,
    score: float | None = None,
    topic: Topic = Topic.TECHNOLOGY,
    title: str | None = None,
) -> CanonicalContent:
    return CanonicalContent(
        id=CanonicalContent.make_id(provider, local_id),
        provider=provider,
        provider_id=local_id,
        title=title or f"{provider.value} item {local_id}",
        published_at=BASE_TIME - timedelta(minutes=minutes_ago),
        fetched_at=BASE_TIME,
        topics=(topic,),
        primary_topic=topic,
        extras=_EXTRAS[provider](),
        engagement_score=score,
    )


def test_dedup_keeps_first_occurrence_and_is_idempotent():
    first = make_item(Provider.NEWS, "a", title="first")
    items = [first, make_item(Provider.SOCIAL, "b"), make_item(Provider.NEWS, "a", title="second")]

    once = dedup_by_id(items)
    assert [i.id for i in once] == ["news:a", "social:b"]
    assert once[0].title == "first"
    assert dedup_by_id(once) == once


def test_collapse_similar_titles_drops_near_duplicates():
    items = [
        make_item(Provider.NEWS, "a", title="Apple unveils new MacBook Pro"),
        make_item(Provider.SOCIAL, "b", title="Apple unveils new MacBook Pro!"),
        make_item(Provider.SOCIAL, "c", title="Local team wins championship"),
    ]
    assert [i.id for i in collapse_similar_titles(items, 90)] == ["news:a", "social:c"]


def test_sort_by_date_descending():
    items = [make_item(Provider.NEWS, "old", 30), make_item(Provider.NEWS, "new", 1)]
    assert [i.provider_id for i in sort_items(items, SortStrategy.DATE)] == ["new", "old"]


def test_sort_by_score_treats_missing_as_zero_and_is_stable():
    items = [
        make_item(Provider.NEWS, "none1"),
        make_item(Provider.SOCIAL, "high", score=50),
        make_item(Provider.NEWS, "none2"),
    ]
    assert [i.provider_id for i in sort_items(items, "score")] == ["high", "none1", "none2"]


def test_relevance_uses_score_plus_scaled_epoch_seconds():
    # Epoch seconds / 1e9 is ~1.7, so a 2 point score gap outweighs recency.
    items = [
        make_item(Provider.SOCIAL, "recent", minutes_ago=0, score=10),
        make_item(Provider.SOCIAL, "older", minutes_ago=600, score=12),
        make_item(Provider.SOCIAL, "tie_newer", minutes_ago=5, score=10),
    ]
    ranked = sort_items(items, SortStrategy.RELEVANCE)
    assert [i.provider_id for i in ranked] == ["older", "recent", "tie_newer"]


def test_interleave_round_robin_social_news_media():
    items = [make_item(Provider.SOCIAL, f"s{i}", i) for i in range(5)]
    items += [make_item(Provider.NEWS, f"n{i}", i) for i in range(3)]

    merged = interleave_by_provider(sort_items(items))
    assert [i.provider_id for i in merged] == ["s0", "n0", "s1", "n1", "s2", "n2", "s3", "s4"]


def test_interleave_keeps_relative_order_within_provider():
    items = [
        make_item(Provider.MEDIA, "m0"),
        make_item(Provider.NEWS, "n0"),
        make_item(Provider.MEDIA, "m1"),
    ]
    merged = interleave_by_provider(items)
    assert [i.provider_id for i in merged] == ["n0", "m0", "m1"]


def test_paginate_boundaries():
    items = [make_item(Provider.NEWS, str(i)) for i in range(20)]

    page, has_more = paginate(items, 2, 10)
    assert len(page) == 10 and has_more is False

    page, has_more = paginate(items, 1, 10)
    assert len(page) == 10 and has_more is True

    page, has_more = paginate(items, 3, 10)
    assert page == [] and has_more is False


def test_build_feed_page_empty_input():
    feed = build_feed_page([], page=1, page_size=20)
    assert feed.items == []
    assert feed.total == 0
    assert feed.has_more is False


def test_build_feed_page_dedups_before_counting():
    items = [make_item(Provider.NEWS, "a"), make_item(Provider.NEWS, "a"), make_item(Provider.SOCIAL, "b")]
    feed = build_feed_page(items, page=1, page_size=1, sort=SortStrategy.SCORE)
    assert feed.total == 2
    assert feed.has_more is True
    assert feed.to_dict()["items"][0]["id"] == "news:a"


def test_build_feed_page_rejects_unknown_sort():
    with pytest.raises(ValueError):
        build_feed_page([], page=1, page_size=10, sort="random")


def test_filters_and_groups():
    items = [
        make_item(Provider.NEWS, "a", topic=Topic.WORLD),
        make_item(Provider.SOCIAL, "b", topic=Topic.GAMING),
        make_item(Provider.SOCIAL, "c", topic=Topic.WORLD),
    ]
    assert [i.provider_id for i in filter_by_topics(items, [Topic.GAMING])] == ["b"]
    assert filter_by_topics(items, []) == items
    assert [i.provider_id for i in exclude_topics(items, [Topic.WORLD])] == ["b"]
    assert [i.provider_id for i in filter_by_providers(items, [Provider.NEWS])] == ["a"]

    by_topic = group_by_topic(items)
    assert [i.provider_id for i in by_topic[Topic.WORLD]] == ["a", "c"]
    by_provider = group_by_provider(items)
    assert by_provider[Provider.MEDIA] == []
    assert len(by_provider[Provider.SOCIAL]) == 2


def test_content_stats():
    items = [
        make_item(Provider.SOCIAL, "a", score=10, topic=Topic.GAMING),
        make_item(Provider.SOCIAL, "b", score=21, topic=Topic.GAMING),
        make_item(Provider.NEWS, "c", topic=Topic.WORLD),
    ]
    stats = content_stats(items)
    assert stats["total"] == 3
    assert stats["by_provider"] == {"news": 1, "media": 0, "social": 2}
    assert stats["by_topic"] == {"gaming": 2, "world": 1}
    assert stats["with_images"] == 0
    assert stats["avg_score"] == 16
