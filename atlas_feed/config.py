"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- NewsConfig: NewsAPI upstream settings
- MediaConfig: TMDB upstream settings
- SocialConfig: Reddit upstream settings
- FetchConfig: Shared HTTP client settings
- FeedConfig: Feed request defaults
- DedupConfig: Deduplication settings
- StoreConfig: Preference store backend
- LoggingConfig: Logging behavior
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from typing import Any

import yaml


@dataclass
class NewsConfig:
    """Configuration for the NewsAPI provider.

    Attributes:
        enabled: Whether the provider is registered at all
        base_url: NewsAPI base URL
        api_key_env: Environment variable name containing the API key
        api_key: Optional inline API key (overrides env var)
        country: Country code used for top headlines
        rate_limit_delay: Seconds to wait between sequential category requests
        max_page_size: Upper bound NewsAPI accepts for pageSize
    """

    enabled: bool = True
    base_url: str = "https://newsapi.org/v2"
    api_key_env: str = "NEWS_API_KEY"
    api_key: str | None = None
    country: str = "us"
    rate_limit_delay: float = 1.0
    max_page_size: int = 100


@dataclass
class MediaConfig:
    """Configuration for the TMDB media catalog provider.

    Attributes:
        enabled: Whether the provider is registered at all
        base_url: TMDB API base URL
        image_base_url: Base URL for poster/backdrop images
        api_key_env: Environment variable name containing the API key
        api_key: Optional inline API key (overrides env var)
        time_window: Trending window ("day" or "week")
        rate_limit_delay: Seconds to wait between sequential list requests
    """

    enabled: bool = True
    base_url: str = "https://api.themoviedb.org/3"
    image_base_url: str = "https://image.tmdb.org/t/p"
    api_key_env: str = "TMDB_API_KEY"
    api_key: str | None = None
    time_window: str = "week"
    rate_limit_delay: float = 0.25


@dataclass
class SocialConfig:
    """Configuration for the Reddit social provider.

    Attributes:
        enabled: Whether the provider is registered at all
        base_url: Reddit base URL
        listing_sort: Listing to read per subreddit ("hot", "new", "top", "rising")
        time_filter: Time filter for "top" listings
        subreddits_per_topic: How many subreddits to query per topic
        max_subreddits: Upper bound on subreddits per topic fan-out
        max_limit: Upper bound Reddit accepts for the listing limit
        rate_limit_delay: Seconds to wait between sequential subreddit requests
    """

    enabled: bool = True
    base_url: str = "https://www.reddit.com"
    listing_sort: str = "hot"
    time_filter: str = "day"
    subreddits_per_topic: int = 2
    max_subreddits: int = 6
    max_limit: int = 100
    rate_limit_delay: float = 1.0


@dataclass
class FetchConfig:
    """Configuration for outbound HTTP requests.

    Attributes:
        timeout_seconds: HTTP request timeout
        trust_env: Whether to respect system proxy settings
        user_agent: HTTP User-Agent header string
    """

    timeout_seconds: float = 10.0
    trust_env: bool = True
    user_agent: str = "atlas-feed/0.1 (+https://github.com/atlas-feed)"


@dataclass
class FeedConfig:
    """Configuration for feed requests.

    Attributes:
        trending_page_size: Default page size for the trending feed
        request_timeout_seconds: Optional outer timeout for the whole fan-out
    """

    trending_page_size: int = 30
    request_timeout_seconds: float | None = None


@dataclass
class DedupConfig:
    """Configuration for feed deduplication.

    Attributes:
        title_similarity: Collapse items whose titles are near-identical
        title_similarity_threshold: Fuzzy match threshold (0-100) for title similarity
    """

    title_similarity: bool = False
    title_similarity_threshold: int = 92


@dataclass
class StoreConfig:
    """Configuration for the preference/history store.

    Attributes:
        backend: "memory" for process-local state, "file" for a JSON directory
        path: Directory used by the file backend
    """

    backend: str = "file"
    path: str = ".atlas_feed"


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the log file
    """

    level: str = "WARNING"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "atlas_feed.jsonl"


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    news: NewsConfig = field(default_factory=NewsConfig)
    media: MediaConfig = field(default_factory=MediaConfig)
    social: SocialConfig = field(default_factory=SocialConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    feed: FeedConfig = field(default_factory=FeedConfig)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update(value)
        else:
            data[key] = value
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(
        news=NewsConfig(**data["news"]),
        media=MediaConfig(**data["media"]),
        social=SocialConfig(**data["social"]),
        fetch=FetchConfig(**data["fetch"]),
        feed=FeedConfig(**data["feed"]),
        dedup=DedupConfig(**data["dedup"]),
        store=StoreConfig(**data["store"]),
        logging=LoggingConfig(**data["logging"]),
    )


def get_api_key(cfg: NewsConfig | MediaConfig) -> str | None:
    """Get API key from inline config or environment variable.

    Blank values count as missing.
    """
    value = cfg.api_key or os.getenv(cfg.api_key_env)
    if not value or not value.strip():
        return None
    return value.strip()
