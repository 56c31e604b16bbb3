"""
Preference and engagement data types.

- UserPreferences: The single device's feed settings
- HistoryEntry: One engagement event for one content item
- TopicEngagement: Derived per-topic engagement counters and score
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from ..core.taxonomy import DEFAULT_TOPICS, Provider, Topic, parse_topics
from ..core.types import PROVIDER_ORDER, SortStrategy, utc_now
from ..utils.dates import parse_iso_datetime

HISTORY_LIMIT = 1000
FAVORITES_LIMIT = 500

VIEW_WEIGHT = 1
CLICK_WEIGHT = 3
FAVORITE_WEIGHT = 5


class EngagementType(str, Enum):
    VIEW = "view"
    CLICK = "click"
    FAVORITE = "favorite"
    SHARE = "share"


def _parse_providers(values: Any) -> list[Provider]:
    providers: list[Provider] = []
    for value in values or ():
        try:
            provider = Provider(value)
        except ValueError:
            continue
        if provider not in providers:
            providers.append(provider)
    return providers


@dataclass
class UserPreferences:
    """Feed settings for this device.

    Attributes:
        topics: Topics the feed is built from
        excluded_topics: Topics whose items are dropped from the feed
        enabled_providers: Providers dispatched for feed requests
        show_adult_content: Keep NSFW/adult records
        default_sort: Sort strategy used when a request does not name one
        page_size: Default page size
        track_history: Record engagement events
        auto_learn: Let learned topics overwrite ``topics``
        created_at: When the preferences were first created
        updated_at: Last explicit save
    """

    topics: list[Topic] = field(default_factory=lambda: list(DEFAULT_TOPICS))
    excluded_topics: list[Topic] = field(default_factory=list)
    enabled_providers: list[Provider] = field(default_factory=lambda: list(PROVIDER_ORDER))
    show_adult_content: bool = False
    default_sort: SortStrategy = SortStrategy.DATE
    page_size: int = 20
    track_history: bool = True
    auto_learn: bool = True
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "topics": [t.value for t in self.topics],
            "excluded_topics": [t.value for t in self.excluded_topics],
            "enabled_providers": [p.value for p in self.enabled_providers],
            "show_adult_content": self.show_adult_content,
            "default_sort": self.default_sort.value,
            "page_size": self.page_size,
            "track_history": self.track_history,
            "auto_learn": self.auto_learn,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserPreferences:
        """Rebuild preferences from stored data, keeping defaults for missing or invalid fields."""
        prefs = cls()
        if isinstance(data.get("topics"), list):
            prefs.topics = parse_topics(data["topics"])
        if isinstance(data.get("excluded_topics"), list):
            prefs.excluded_topics = parse_topics(data["excluded_topics"])
        if isinstance(data.get("enabled_providers"), list):
            prefs.enabled_providers = _parse_providers(data["enabled_providers"])
        try:
            prefs.default_sort = SortStrategy(data.get("default_sort", prefs.default_sort))
        except (TypeError, ValueError):
            pass
        page_size = data.get("page_size")
        if isinstance(page_size, int) and not isinstance(page_size, bool) and page_size > 0:
            prefs.page_size = page_size
        for flag in ("show_adult_content", "track_history", "auto_learn"):
            if isinstance(data.get(flag), bool):
                setattr(prefs, flag, data[flag])
        prefs.created_at = parse_iso_datetime(data.get("created_at"), prefs.created_at)
        prefs.updated_at = parse_iso_datetime(data.get("updated_at"), prefs.updated_at)
        return prefs


@dataclass(frozen=True)
class HistoryEntry:
    content_id: str
    provider: Provider
    topics: tuple[Topic, ...]
    engagement_type: EngagementType
    occurred_at: datetime = field(default_factory=utc_now)
    time_spent_ms: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "content_id": self.content_id,
            "provider": self.provider.value,
            "topics": [t.value for t in self.topics],
            "engagement_type": self.engagement_type.value,
            "occurred_at": self.occurred_at.isoformat(),
            "time_spent_ms": self.time_spent_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoryEntry:
        """Rebuild an entry. Raises ValueError/KeyError/TypeError on unusable data."""
        return cls(
            content_id=str(data["content_id"]),
            provider=Provider(data["provider"]),
            topics=tuple(parse_topics(data.get("topics"))),
            engagement_type=EngagementType(data["engagement_type"]),
            occurred_at=parse_iso_datetime(data.get("occurred_at"), utc_now()),
            time_spent_ms=data.get("time_spent_ms"),
        )


@dataclass
class TopicEngagement:
    topic: Topic
    views: int = 0
    clicks: int = 0
    favorites: int = 0
    last_engaged_at: datetime | None = None

    @property
    def score(self) -> int:
        return self.views * VIEW_WEIGHT + self.clicks * CLICK_WEIGHT + self.favorites * FAVORITE_WEIGHT
