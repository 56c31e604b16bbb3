"""
Fetch orchestrator.

Dispatches one request per enabled provider concurrently, waits for every
provider to settle, and hands the merged records to the aggregation
pipeline. Partial failure is normal: the feed is built from whatever
succeeded and the per-provider outcome travels with the page.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
import logging
import math
import time

import httpx

from .config import AppConfig
from .core.dedup import dedup_by_id
from .core.pipeline import build_feed_page, exclude_topics, sort_items
from .core.taxonomy import Provider
from .core.types import (
    PROVIDER_ORDER,
    CanonicalContent,
    ErrorKind,
    FeedPage,
    FetchOptions,
    ProviderResult,
    SortStrategy,
    utc_now,
)
from .errors import ConfigurationError, FeedTimeoutError, FeedUnavailableError
from .preferences.models import UserPreferences
from .providers.base import ContentProvider
from .providers.factory import create_providers
from .utils.logging import get_logger, log_event


class FeedOrchestrator:
    """Builds personalized and trending feed pages from a set of providers."""

    def __init__(
        self,
        providers: dict[Provider, ContentProvider],
        cfg: AppConfig | None = None,
        logger: logging.Logger | None = None,
    ):
        self.providers = providers
        self.cfg = cfg or AppConfig()
        self._logger = logger or get_logger("orchestrator")

    @classmethod
    def from_config(
        cls,
        cfg: AppConfig,
        client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
    ) -> FeedOrchestrator:
        return cls(create_providers(cfg, client), cfg, logger)

    async def fetch_content_feed(
        self,
        preferences: UserPreferences,
        page: int = 1,
        page_size: int | None = None,
        sort: SortStrategy | str | None = None,
        provider_filter: list[Provider] | None = None,
    ) -> FeedPage:
        """Build one page of the personalized feed.

        Args:
            preferences: Topics, exclusions, enabled providers and defaults
            page: 1-based page number
            page_size: Items per page (defaults to ``preferences.page_size``)
            sort: Sort strategy (defaults to ``preferences.default_sort``)
            provider_filter: Restrict dispatch to these providers

        Raises:
            ConfigurationError: Invalid paging, sort, topics or no usable provider
            FeedUnavailableError: Every dispatched provider failed
            FeedTimeoutError: The outer request timeout expired
        """
        page_size = preferences.page_size if page_size is None else page_size
        strategy = _parse_sort(sort if sort is not None else preferences.default_sort)
        if page < 1 or page_size < 1:
            raise ConfigurationError(f"Invalid paging: page={page} page_size={page_size}")

        excluded = set(preferences.excluded_topics)
        topics = [topic for topic in preferences.topics if topic not in excluded]
        if not topics:
            raise ConfigurationError("No topics selected")

        enabled = self._enabled(preferences.enabled_providers, provider_filter)
        share = math.ceil(page * page_size / len(enabled))
        options = FetchOptions(limit=share, page=1, include_adult=preferences.show_adult_content)

        started = time.perf_counter()
        results = await self._dispatch(
            {provider: self.providers[provider].fetch_by_topics(topics, options) for provider in enabled}
        )
        items = exclude_topics(_merge(results), list(excluded))
        threshold = self.cfg.dedup.title_similarity_threshold if self.cfg.dedup.title_similarity else None
        feed = build_feed_page(
            items,
            page,
            page_size,
            strategy,
            statuses=[result.status() for result in results],
            title_similarity_threshold=threshold,
        )
        log_event(
            self._logger,
            "Feed request complete",
            event="feed_complete",
            page=page,
            page_size=page_size,
            sort=strategy.value,
            total=feed.total,
            returned=len(feed.items),
            failed=[r.provider.value for r in results if not r.ok],
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return feed

    async def fetch_trending_feed(
        self,
        page_size: int | None = None,
        provider_filter: list[Provider] | None = None,
        include_adult: bool = False,
    ) -> FeedPage:
        """Build a single page of trending items across providers, highest score first."""
        page_size = self.cfg.feed.trending_page_size if page_size is None else page_size
        if page_size < 1:
            raise ConfigurationError(f"Invalid page size: {page_size}")

        enabled = self._enabled(list(PROVIDER_ORDER), provider_filter)
        options = FetchOptions(limit=page_size, include_adult=include_adult)
        results = await self._dispatch(
            {provider: self.providers[provider].fetch_trending(options) for provider in enabled}
        )
        ranked = sort_items(dedup_by_id(_merge(results)), SortStrategy.SCORE)
        log_event(
            self._logger,
            "Trending request complete",
            event="trending_complete",
            total=len(ranked),
            failed=[r.provider.value for r in results if not r.ok],
        )
        return FeedPage(
            items=ranked[:page_size],
            total=len(ranked),
            page=1,
            page_size=page_size,
            has_more=False,
            fetched_at=utc_now(),
            provider_statuses=[result.status() for result in results],
        )

    def get_feed(self, preferences: UserPreferences, **kwargs) -> FeedPage:
        """Blocking wrapper around fetch_content_feed."""
        return asyncio.run(self.fetch_content_feed(preferences, **kwargs))

    def get_trending(self, **kwargs) -> FeedPage:
        """Blocking wrapper around fetch_trending_feed."""
        return asyncio.run(self.fetch_trending_feed(**kwargs))

    def _enabled(self, wanted: list[Provider], provider_filter: list[Provider] | None) -> list[Provider]:
        enabled = [
            provider
            for provider in PROVIDER_ORDER
            if provider in wanted
            and provider in self.providers
            and (provider_filter is None or provider in provider_filter)
        ]
        if not enabled:
            raise ConfigurationError("No providers enabled for this request")
        return enabled

    async def _dispatch(self, calls: dict[Provider, Awaitable[ProviderResult]]) -> list[ProviderResult]:
        tasks = [asyncio.create_task(_settle(provider, call)) for provider, call in calls.items()]
        timeout = self.cfg.feed.request_timeout_seconds
        try:
            # gather() preserves input order, so statuses follow dispatch order.
            results = await asyncio.wait_for(asyncio.gather(*tasks), timeout=timeout)
        except asyncio.TimeoutError as exc:
            for task in tasks:
                task.cancel()
            log_event(
                self._logger,
                f"Feed request timed out after {timeout}s",
                level=logging.WARNING,
                event="feed_timeout",
                timeout_seconds=timeout,
            )
            raise FeedTimeoutError(f"Feed request timed out after {timeout}s") from exc

        if all(not result.ok for result in results):
            diagnostic = "; ".join(f"{r.provider.value}: {r.message or r.error.value}" for r in results)
            log_event(
                self._logger,
                f"All providers failed: {diagnostic}",
                level=logging.ERROR,
                event="feed_unavailable",
            )
            raise FeedUnavailableError(
                f"All providers failed: {diagnostic}",
                [result.status() for result in results],
            )
        return list(results)


async def _settle(provider: Provider, call: Awaitable[ProviderResult]) -> ProviderResult:
    """Await one provider call, turning any unexpected exception into a failed result."""
    try:
        return await call
    except Exception as exc:
        return ProviderResult.failure(provider, ErrorKind.UPSTREAM_ERROR, f"{type(exc).__name__}: {exc}")


def _merge(results: list[ProviderResult]) -> list[CanonicalContent]:
    items: list[CanonicalContent] = []
    for result in results:
        items.extend(result.items)
    return items


def _parse_sort(sort: SortStrategy | str) -> SortStrategy:
    try:
        return SortStrategy(sort)
    except ValueError as exc:
        raise ConfigurationError(f"Unknown sort strategy: {sort}") from exc
