"""
Atlas Feed - multi-source content aggregator.

This package fetches news headlines (NewsAPI), movie and TV listings (TMDB)
and community posts (Reddit), normalizes them into one canonical record
shape, and merges them into a single paginated, ranked feed. Engagement
history drives topic recommendations.

Main entry point is the CLI via `atlas-feed feed` command.

Example:
    $ atlas-feed feed --topic technology --topic movies --sort score
"""

__all__ = [
    "__version__",
    "AppConfig",
    "CanonicalContent",
    "EngagementScorer",
    "FeedOrchestrator",
    "FeedPage",
    "PreferenceStore",
    "Provider",
    "Topic",
    "UserPreferences",
    "load_config",
]
__version__ = "0.1.0"

from .config import AppConfig, load_config
from .core.taxonomy import Provider, Topic
from .core.types import CanonicalContent, FeedPage
from .orchestrator import FeedOrchestrator
from .preferences import EngagementScorer, PreferenceStore, UserPreferences
