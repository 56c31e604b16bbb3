"""
Upstream content provider adapters.

This package contains the abstract base class and one concrete adapter per
upstream (NewsAPI, TMDB, Reddit).

To add a new provider:
1. Add its value to the Provider enum and its mappings to core/taxonomy.py
2. Inherit from ContentProvider and implement the native request hooks
3. Add a tagged extras dataclass to core/types.py
4. Register the class in factory.py
"""

from .base import ContentProvider, ProviderCallError, classify_status
from .factory import available_providers, create_provider, create_providers, resolve_provider
from .media import MediaProvider
from .news import NewsProvider
from .social import SocialProvider

__all__ = [
    "ContentProvider",
    "ProviderCallError",
    "classify_status",
    "available_providers",
    "create_provider",
    "create_providers",
    "resolve_provider",
    "MediaProvider",
    "NewsProvider",
    "SocialProvider",
]
