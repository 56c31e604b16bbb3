"""Provider factory and registry."""

from __future__ import annotations

import logging

import httpx

from ..config import AppConfig
from ..core.taxonomy import Provider
from ..core.types import PROVIDER_ORDER
from .base import ContentProvider
from .media import MediaProvider
from .news import NewsProvider
from .social import SocialProvider

ProviderBuilder = type[ContentProvider]

_PROVIDER_REGISTRY: dict[str, ProviderBuilder] = {
    "news": NewsProvider,
    "newsapi": NewsProvider,
    "media": MediaProvider,
    "tmdb": MediaProvider,
    "social": SocialProvider,
    "reddit": SocialProvider,
}


def available_providers() -> list[str]:
    """Return the set of registered provider names."""
    return sorted(_PROVIDER_REGISTRY.keys())


def resolve_provider(name: str | Provider) -> Provider:
    """Resolve a provider name or alias (e.g. "reddit") to its Provider value."""
    key = name.value if isinstance(name, Provider) else str(name).lower().strip()
    builder = _PROVIDER_REGISTRY.get(key)
    if builder is None:
        supported = ", ".join(available_providers())
        raise ValueError(f"Unsupported provider: {name}. Supported: {supported}")
    return builder.name


def create_provider(
    name: str | Provider,
    cfg: AppConfig,
    client: httpx.AsyncClient | None = None,
    logger: logging.Logger | None = None,
) -> ContentProvider:
    """Build a provider instance from runtime config."""
    provider = resolve_provider(name)
    return _PROVIDER_REGISTRY[provider.value](cfg, client, logger)


def create_providers(
    cfg: AppConfig,
    client: httpx.AsyncClient | None = None,
    logger: logging.Logger | None = None,
) -> dict[Provider, ContentProvider]:
    """Build every provider enabled in config, in dispatch order."""
    enabled = {
        Provider.NEWS: cfg.news.enabled,
        Provider.MEDIA: cfg.media.enabled,
        Provider.SOCIAL: cfg.social.enabled,
    }
    return {
        provider: create_provider(provider, cfg, client, logger)
        for provider in PROVIDER_ORDER
        if enabled[provider]
    }
