"""
Core data types for the feed engine.

This module defines the fundamental data structures used throughout the pipeline:
- CanonicalContent: One normalized content record, whatever provider it came from
- NewsExtras / MediaExtras / SocialExtras: Provider-specific fields, tagged by provider
- ProviderResult: Outcome of one adapter call (items or an error kind, never both)
- ProviderStatus: Per-provider summary attached to a feed page
- FeedPage: One page of the merged feed
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Union

from .taxonomy import Provider, Topic

# Order in which providers are dispatched; the first provider wins dedup ties.
PROVIDER_ORDER: tuple[Provider, ...] = (Provider.NEWS, Provider.MEDIA, Provider.SOCIAL)

# Round-robin order used when interleaving a date-sorted feed.
INTERLEAVE_ORDER: tuple[Provider, ...] = (Provider.SOCIAL, Provider.NEWS, Provider.MEDIA)


class ErrorKind(str, Enum):
    """Classification of a failed provider call."""

    CONFIGURATION_ERROR = "ConfigurationError"
    NOT_FOUND = "NotFound"
    FORBIDDEN = "Forbidden"
    RATE_LIMITED = "RateLimited"
    UPSTREAM_ERROR = "UpstreamError"
    MALFORMED_RESPONSE = "MalformedResponse"
    TIMEOUT = "Timeout"


class SortStrategy(str, Enum):
    DATE = "date"
    SCORE = "score"
    RELEVANCE = "relevance"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class NewsExtras:
    """NewsAPI-specific fields.

    Attributes:
        category: The headline category the article was fetched under
        source_site: Publication name (e.g., "BBC News")
    """

    provider: ClassVar[Provider] = Provider.NEWS
    category: str
    source_site: str | None = None


@dataclass(frozen=True)
class MediaExtras:
    """TMDB-specific fields.

    Attributes:
        media_type: "movie" or "tv"
        rating: TMDB vote average (0-10)
        release_date: Release or first-air date as given by TMDB ("" when unknown)
        genre_ids: TMDB genre ids
        genre_names: Human-readable genre names
        popularity: TMDB popularity metric
        vote_count: Number of votes behind the rating
        backdrop_url: Full backdrop image URL, if any
    """

    provider: ClassVar[Provider] = Provider.MEDIA
    media_type: str
    rating: float = 0.0
    release_date: str = ""
    genre_ids: tuple[int, ...] = ()
    genre_names: tuple[str, ...] = ()
    popularity: float = 0.0
    vote_count: int = 0
    backdrop_url: str | None = None


@dataclass(frozen=True)
class SocialExtras:
    """Reddit-specific fields."""

    provider: ClassVar[Provider] = Provider.SOCIAL
    subreddit: str
    subreddit_id: str = ""
    upvotes: int = 0
    downvotes: int = 0
    upvote_ratio: float = 0.0
    is_nsfw: bool = False
    is_spoiler: bool = False
    flair: str | None = None
    post_type: str = "link"
    permalink: str = ""


ProviderExtras = Union[NewsExtras, MediaExtras, SocialExtras]


@dataclass(frozen=True)
class CanonicalContent:
    """Normalized, provider-agnostic content record.

    ``id`` is ``"<provider>:<provider local id>"`` and is stable for the same
    upstream item across fetches. ``topics`` is never empty and always
    contains ``primary_topic``; both are checked on construction.
    """

    id: str
    provider: Provider
    provider_id: str
    title: str
    published_at: datetime
    fetched_at: datetime
    topics: tuple[Topic, ...]
    primary_topic: Topic
    extras: ProviderExtras
    source_url: str = ""
    description: str | None = None
    body: str | None = None
    thumbnail_url: str | None = None
    image_url: str | None = None
    image_urls: tuple[str, ...] = ()
    author: str | None = None
    engagement_score: float | None = None
    comment_count: int | None = None

    def __post_init__(self) -> None:
        if not self.topics:
            raise ValueError(f"{self.id}: topics must not be empty")
        if self.primary_topic not in self.topics:
            raise ValueError(f"{self.id}: primary topic {self.primary_topic.value} not in topics")
        if self.extras.provider is not self.provider:
            raise ValueError(
                f"{self.id}: {type(self.extras).__name__} does not belong to provider {self.provider.value}"
            )
        if not self.id.startswith(f"{self.provider.value}:"):
            raise ValueError(f"{self.id}: id must be prefixed with {self.provider.value}:")

    @staticmethod
    def make_id(provider: Provider, local_id: str) -> str:
        return f"{Provider(provider).value}:{local_id}"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "provider": self.provider.value,
            "provider_id": self.provider_id,
            "source_url": self.source_url,
            "title": self.title,
            "description": self.description,
            "body": self.body,
            "thumbnail_url": self.thumbnail_url,
            "image_url": self.image_url,
            "image_urls": list(self.image_urls),
            "author": self.author,
            "published_at": self.published_at.isoformat(),
            "fetched_at": self.fetched_at.isoformat(),
            "topics": [t.value for t in self.topics],
            "primary_topic": self.primary_topic.value,
            "engagement_score": self.engagement_score,
            "comment_count": self.comment_count,
        }
        extras = self.extras
        if isinstance(extras, NewsExtras):
            data["news"] = {"category": extras.category, "source_site": extras.source_site}
        elif isinstance(extras, MediaExtras):
            data["media"] = {
                "media_type": extras.media_type,
                "rating": extras.rating,
                "release_date": extras.release_date,
                "genre_ids": list(extras.genre_ids),
                "genre_names": list(extras.genre_names),
                "popularity": extras.popularity,
                "vote_count": extras.vote_count,
                "backdrop_url": extras.backdrop_url,
            }
        elif isinstance(extras, SocialExtras):
            data["social"] = {
                "subreddit": extras.subreddit,
                "subreddit_id": extras.subreddit_id,
                "upvotes": extras.upvotes,
                "downvotes": extras.downvotes,
                "upvote_ratio": extras.upvote_ratio,
                "is_nsfw": extras.is_nsfw,
                "is_spoiler": extras.is_spoiler,
                "flair": extras.flair,
                "post_type": extras.post_type,
                "permalink": extras.permalink,
            }
        else:
            raise TypeError(f"Unknown extras type: {type(extras).__name__}")
        return data


@dataclass
class FetchOptions:
    """Per-call options handed to a provider adapter.

    Attributes:
        limit: Items wanted per native request
        page: Upstream page number (providers that paginate server-side)
        include_adult: Keep NSFW/adult records instead of dropping them
        sort: Provider-native listing or ordering hint
        time_window: Provider-native time filter ("hour", "day", "week", ...)
        restrict_to: Native identifier to scope a query to (e.g. one subreddit)
    """

    limit: int = 20
    page: int = 1
    include_adult: bool = False
    sort: str | None = None
    time_window: str | None = None
    restrict_to: str | None = None


@dataclass(frozen=True)
class ProviderResult:
    """Outcome of one provider adapter call.

    Either ``ok`` is True and ``items`` holds the records, or ``ok`` is False
    and ``error`` names the failure. A successful result may still carry a
    diagnostic ``message`` when some of its native requests failed.

    Use ``success()`` / ``failure()`` rather than the constructor.
    """

    provider: Provider
    ok: bool
    items: tuple[CanonicalContent, ...] = ()
    error: ErrorKind | None = None
    message: str | None = None
    duration_ms: float = 0.0

    def __post_init__(self) -> None:
        if self.ok and self.error is not None:
            raise ValueError("successful result cannot carry an error kind")
        if not self.ok and (self.error is None or self.items):
            raise ValueError("failed result needs an error kind and no items")

    @classmethod
    def success(
        cls,
        provider: Provider,
        items: list[CanonicalContent] | tuple[CanonicalContent, ...],
        duration_ms: float = 0.0,
        message: str | None = None,
    ) -> ProviderResult:
        return cls(provider=provider, ok=True, items=tuple(items), message=message, duration_ms=duration_ms)

    @classmethod
    def failure(
        cls,
        provider: Provider,
        error: ErrorKind,
        message: str | None = None,
        duration_ms: float = 0.0,
    ) -> ProviderResult:
        return cls(provider=provider, ok=False, error=error, message=message, duration_ms=duration_ms)

    def with_duration(self, duration_ms: float) -> ProviderResult:
        return ProviderResult(
            provider=self.provider,
            ok=self.ok,
            items=self.items,
            error=self.error,
            message=self.message,
            duration_ms=duration_ms,
        )

    def status(self) -> ProviderStatus:
        return ProviderStatus(
            provider=self.provider,
            ok=self.ok,
            count=len(self.items),
            error=self.error,
            message=self.message,
            duration_ms=self.duration_ms,
        )


@dataclass(frozen=True)
class ProviderStatus:
    provider: Provider
    ok: bool
    count: int
    error: ErrorKind | None = None
    message: str | None = None
    duration_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider.value,
            "ok": self.ok,
            "count": self.count,
            "error": self.error.value if self.error else None,
            "message": self.message,
            "duration_ms": round(self.duration_ms, 1),
        }


@dataclass
class FeedPage:
    """One page of the merged feed plus the status of every dispatched provider."""

    items: list[CanonicalContent]
    total: int
    page: int
    page_size: int
    has_more: bool
    fetched_at: datetime = field(default_factory=utc_now)
    provider_statuses: list[ProviderStatus] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "total": self.total,
            "page": self.page,
            "page_size": self.page_size,
            "has_more": self.has_more,
            "fetched_at": self.fetched_at.isoformat(),
            "provider_statuses": [status.to_dict() for status in self.provider_statuses],
        }
