"""User preferences, engagement history, favorites and topic learning."""

from .models import EngagementType, HistoryEntry, TopicEngagement, UserPreferences
from .scorer import EngagementScorer
from .store import FileBackend, KeyValueBackend, MemoryBackend, PreferenceStore, build_backend

__all__ = [
    "EngagementScorer",
    "EngagementType",
    "FileBackend",
    "HistoryEntry",
    "KeyValueBackend",
    "MemoryBackend",
    "PreferenceStore",
    "TopicEngagement",
    "UserPreferences",
    "build_backend",
]
