"""Engagement tracking, topic scoring and topic recommendations."""

from __future__ import annotations

import logging

from ..core.taxonomy import DEFAULT_TOPICS, Provider, Topic
from ..core.types import CanonicalContent, utc_now
from ..utils.logging import get_logger, log_event
from .models import EngagementType, HistoryEntry, TopicEngagement
from .store import PreferenceStore

# Fewer engaged topics than this means there is not enough signal to learn from.
MIN_ENGAGED_TOPICS = 3
LEARNED_TOPIC_LIMIT = 10


class EngagementScorer:
    """Derives topic interest from the engagement history kept in a PreferenceStore."""

    def __init__(self, store: PreferenceStore, logger: logging.Logger | None = None):
        self.store = store
        self._logger = logger or get_logger("scorer")

    def record_engagement(
        self,
        content_id: str,
        provider: Provider,
        topics: list[Topic] | tuple[Topic, ...],
        engagement_type: EngagementType | str,
        time_spent_ms: int | None = None,
    ) -> bool:
        """Append one engagement event. Returns False when history tracking is off."""
        if not self.store.load().track_history:
            return False
        entry = HistoryEntry(
            content_id=content_id,
            provider=Provider(provider),
            topics=tuple(topics),
            engagement_type=EngagementType(engagement_type),
            occurred_at=utc_now(),
            time_spent_ms=time_spent_ms,
        )
        self.store.append_history(entry)
        return True

    def track_content(
        self,
        content: CanonicalContent,
        engagement_type: EngagementType | str = EngagementType.VIEW,
        time_spent_ms: int | None = None,
    ) -> bool:
        return self.record_engagement(
            content.id, content.provider, content.topics, engagement_type, time_spent_ms
        )

    def compute_topic_engagement(self) -> list[TopicEngagement]:
        """Count views, clicks and favorites per topic, highest score first.

        Every topic is present, zero-initialized. Ties keep taxonomy order.
        """
        stats = {topic: TopicEngagement(topic=topic) for topic in Topic}
        for entry in self.store.load_history():
            for topic in entry.topics:
                current = stats[topic]
                if entry.engagement_type is EngagementType.VIEW:
                    current.views += 1
                elif entry.engagement_type is EngagementType.CLICK:
                    current.clicks += 1
                elif entry.engagement_type is EngagementType.FAVORITE:
                    current.favorites += 1
                if current.last_engaged_at is None or entry.occurred_at > current.last_engaged_at:
                    current.last_engaged_at = entry.occurred_at
        return sorted(stats.values(), key=lambda s: s.score, reverse=True)

    def recommend_topics(self, limit: int = 5) -> list[Topic]:
        """Return up to ``limit`` topics the user engages with most.

        With fewer than three engaged topics the defaults are returned,
        padded from the taxonomy up to ``limit``.
        """
        engaged = [s.topic for s in self.compute_topic_engagement() if s.score > 0]
        if len(engaged) >= MIN_ENGAGED_TOPICS:
            return engaged[:limit]

        fallback = list(DEFAULT_TOPICS[:limit])
        for topic in Topic:
            if len(fallback) >= limit:
                break
            if topic not in fallback:
                fallback.append(topic)
        return fallback

    def learn_preferences(self) -> bool:
        """Replace preferred topics with learned ones. Returns whether anything changed."""
        prefs = self.store.load()
        if not prefs.auto_learn:
            return False
        engaged = [s for s in self.compute_topic_engagement() if s.score > 0]
        if len(engaged) < MIN_ENGAGED_TOPICS:
            return False

        topics = self.recommend_topics(LEARNED_TOPIC_LIMIT)
        self.store.save(topics=topics)
        log_event(
            self._logger,
            "Learned topic preferences from history",
            event="preferences_learned",
            topics=[t.value for t in topics],
        )
        return True

    # -- favorites -------------------------------------------------------

    def is_favorite(self, content_id: str) -> bool:
        return content_id in self.store.load_favorites()

    def add_favorite(self, content_id: str, content: CanonicalContent | None = None) -> None:
        favorites = self.store.load_favorites()
        if content_id not in favorites:
            self.store.save_favorites([content_id, *favorites])
        if content is not None:
            self.track_content(content, EngagementType.FAVORITE)

    def remove_favorite(self, content_id: str) -> None:
        favorites = self.store.load_favorites()
        if content_id in favorites:
            self.store.save_favorites([f for f in favorites if f != content_id])

    def toggle_favorite(self, content_id: str, content: CanonicalContent | None = None) -> bool:
        """Flip favorite state. Returns True when the item is now a favorite."""
        if self.is_favorite(content_id):
            self.remove_favorite(content_id)
            return False
        self.add_favorite(content_id, content)
        return True
