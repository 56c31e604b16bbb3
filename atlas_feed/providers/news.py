"""
NewsAPI provider.

Fetches top headlines per category and free-text searches from
https://newsapi.org and normalizes articles into CanonicalContent.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any

import httpx

from ..config import AppConfig, get_api_key
from ..core.taxonomy import Provider, Topic, map_provider_category, subjects_for_topic
from ..core.types import CanonicalContent, ErrorKind, FetchOptions, NewsExtras, utc_now
from ..utils.dates import parse_iso_datetime
from .base import ContentProvider, ProviderCallError, as_str, classify_status, expect_list, stable_hash

DEFAULT_CATEGORY = "general"
REMOVED_MARKER = "[Removed]"

_RATE_LIMIT_CODES = {"rateLimited", "apiKeyExhausted"}
_CREDENTIAL_CODES = {"apiKeyMissing", "apiKeyInvalid", "apiKeyDisabled"}


def is_valid_article(raw: Any) -> bool:
    if not isinstance(raw, dict):
        return False
    title = raw.get("title")
    return isinstance(title, str) and bool(title.strip()) and title.strip() != REMOVED_MARKER


def transform_article(raw: dict[str, Any], category: str, fetched_at: datetime) -> CanonicalContent:
    """Normalize one NewsAPI article.

    The local id is a hash of the article URL, so the same article fetched
    under two categories still collapses to one canonical id.
    """
    topic = map_provider_category(Provider.NEWS, category)
    url = as_str(raw.get("url"))
    key = url or f"{as_str(raw.get('title'))}|{as_str(raw.get('publishedAt'))}"
    source = raw.get("source") if isinstance(raw.get("source"), dict) else {}
    image = as_str(raw.get("urlToImage")) or None

    return CanonicalContent(
        id=CanonicalContent.make_id(Provider.NEWS, stable_hash(key)),
        provider=Provider.NEWS,
        provider_id=url or key,
        source_url=url,
        title=(as_str(raw.get("title")) or "Untitled").strip(),
        description=as_str(raw.get("description")) or None,
        body=as_str(raw.get("content")) or None,
        thumbnail_url=image,
        image_url=image,
        image_urls=(image,) if image else (),
        author=as_str(raw.get("author")) or None,
        published_at=parse_iso_datetime(raw.get("publishedAt"), fetched_at),
        fetched_at=fetched_at,
        topics=(topic,),
        primary_topic=topic,
        engagement_score=None,
        comment_count=None,
        extras=NewsExtras(category=category, source_site=as_str(source.get("name")) or None),
    )


class NewsProvider(ContentProvider):
    """NewsAPI adapter: one request per headline category."""

    name = Provider.NEWS

    def __init__(
        self,
        cfg: AppConfig,
        client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
    ):
        super().__init__(cfg, client, logger)
        self._cfg = cfg.news
        self.rate_limit_delay = cfg.news.rate_limit_delay

    def check_configuration(self) -> str | None:
        if get_api_key(self._cfg) is None:
            return f"{self._cfg.api_key_env} not configured. Get one at https://newsapi.org/register"
        return None

    def native_subjects(self, topics: list[Topic]) -> list[str]:
        categories: list[str] = []
        for topic in topics:
            for category in subjects_for_topic(Provider.NEWS, topic):
                if category not in categories:
                    categories.append(category)
        return categories or [DEFAULT_CATEGORY]

    def classify_failure(self, status_code: int, payload: Any) -> tuple[ErrorKind, str]:
        if isinstance(payload, dict) and payload.get("status") == "error":
            return self._classify_body(payload)
        return classify_status(status_code), f"NewsAPI HTTP {status_code}"

    def _classify_body(self, payload: dict[str, Any]) -> tuple[ErrorKind, str]:
        code = payload.get("code") or ""
        message = payload.get("message") or "NewsAPI request failed"
        if code in _CREDENTIAL_CODES:
            return ErrorKind.CONFIGURATION_ERROR, message
        if code in _RATE_LIMIT_CODES:
            return ErrorKind.RATE_LIMITED, message
        return ErrorKind.UPSTREAM_ERROR, message

    async def _fetch_subject(self, subject: str, options: FetchOptions) -> list[CanonicalContent]:
        return await self._headlines(subject, options)

    async def _trending(self, options: FetchOptions) -> list[CanonicalContent]:
        return await self._headlines(DEFAULT_CATEGORY, options)

    async def _search(self, query: str, options: FetchOptions) -> list[CanonicalContent]:
        params = {
            "apiKey": get_api_key(self._cfg),
            "q": query,
            "sortBy": options.sort or "publishedAt",
            "pageSize": self._page_size(options),
            "page": max(1, options.page),
        }
        payload = await self._get_json(f"{self._cfg.base_url}/everything", params)
        return self._parse_articles(payload, DEFAULT_CATEGORY)

    async def _headlines(self, category: str, options: FetchOptions) -> list[CanonicalContent]:
        params = {
            "apiKey": get_api_key(self._cfg),
            "category": category,
            "country": self._cfg.country,
            "pageSize": self._page_size(options),
            "page": max(1, options.page),
        }
        payload = await self._get_json(f"{self._cfg.base_url}/top-headlines", params)
        return self._parse_articles(payload, category)

    def _parse_articles(self, payload: Any, category: str) -> list[CanonicalContent]:
        if isinstance(payload, dict) and payload.get("status") not in (None, "ok"):
            kind, message = self._classify_body(payload)
            raise ProviderCallError(kind, message)
        fetched_at = utc_now()
        articles = expect_list(payload, "articles")
        return self._transform_records(
            articles, is_valid_article, lambda raw: transform_article(raw, category, fetched_at)
        )

    def _page_size(self, options: FetchOptions) -> int:
        return max(1, min(options.limit, self._cfg.max_page_size))
