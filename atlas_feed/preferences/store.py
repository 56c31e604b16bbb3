"""
Preference, history and favorites store.

State is kept as JSON strings under three keys in an injected key-value
backend. Two backends ship with the package:
- MemoryBackend: process-local dict, the default for tests and ephemeral use
- FileBackend: one JSON file per key in a directory

The store is best effort: unreadable or corrupt data degrades to defaults
and is logged, never raised to the caller. It is a single-writer component;
each method is its own read-modify-write.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
import json
import logging
import os
from pathlib import Path
import tempfile
from typing import Any, Protocol

from ..config import StoreConfig
from ..core.taxonomy import Provider, parse_topics
from ..core.types import SortStrategy, utc_now
from ..errors import ConfigurationError
from ..utils.dates import parse_iso_datetime
from ..utils.logging import get_logger, log_event
from .models import FAVORITES_LIMIT, HISTORY_LIMIT, HistoryEntry, UserPreferences

PREFERENCES_KEY = "atlas_preferences"
HISTORY_KEY = "atlas_history"
FAVORITES_KEY = "atlas_favorites"


class KeyValueBackend(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryBackend:
    def __init__(self, data: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(data or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class FileBackend:
    """Stores each key as ``<directory>/<key>.json``, replaced atomically on write."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, self._path(key))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


def build_backend(cfg: StoreConfig) -> KeyValueBackend:
    if cfg.backend == "memory":
        return MemoryBackend()
    if cfg.backend == "file":
        return FileBackend(Path(cfg.path).expanduser())
    raise ConfigurationError(f"Unsupported store backend: {cfg.backend}. Supported: file, memory")


class PreferenceStore:
    """Typed access to preferences, engagement history and favorites."""

    def __init__(self, backend: KeyValueBackend | None = None, logger: logging.Logger | None = None):
        self._backend = backend if backend is not None else MemoryBackend()
        self._logger = logger or get_logger("store")

    # -- preferences -----------------------------------------------------

    def load(self) -> UserPreferences:
        """Return stored preferences merged over defaults; defaults if missing or unreadable."""
        raw = self._read_json(PREFERENCES_KEY)
        if not isinstance(raw, dict):
            return UserPreferences()
        return UserPreferences.from_dict(raw)

    def save(self, **changes: Any) -> UserPreferences:
        """Merge ``changes`` into the stored preferences and stamp ``updated_at``.

        Raises:
            ConfigurationError: An unknown preference field or an invalid value was given
        """
        current = self.load()
        fields = current.to_dict()
        unknown = sorted(set(changes) - set(fields))
        if unknown:
            raise ConfigurationError(f"Unknown preference field(s): {', '.join(unknown)}")
        for key, value in changes.items():
            fields[key] = _checked(key, value)
        fields["updated_at"] = utc_now().isoformat()
        updated = UserPreferences.from_dict(fields)
        self._write_json(PREFERENCES_KEY, updated.to_dict())
        return updated


    def reset(self) -> UserPreferences:
        fresh = UserPreferences()
        self._write_json(PREFERENCES_KEY, fresh.to_dict())
        return fresh

    # -- history ---------------------------------------------------------

    def load_history(self, limit: int | None = None) -> list[HistoryEntry]:
        """Return history newest first, skipping entries that fail to parse."""
        raw = self._read_json(HISTORY_KEY)
        if not isinstance(raw, list):
            return []
        entries: list[HistoryEntry] = []
        for item in raw:
            try:
                entries.append(HistoryEntry.from_dict(item))
            except (KeyError, TypeError, ValueError):
                continue
        if limit is not None:
            return entries[: max(0, limit)]
        return entries

    def append_history(self, entry: HistoryEntry) -> None:
        """Insert ``entry`` at the front, replacing any older entry for the same content."""
        history = [h for h in self.load_history() if h.content_id != entry.content_id]
        history.insert(0, entry)
        self._write_json(HISTORY_KEY, [h.to_dict() for h in history[:HISTORY_LIMIT]])

    def clear_history(self) -> None:
        self._backend.delete(HISTORY_KEY)

    # -- favorites -------------------------------------------------------

    def load_favorites(self) -> list[str]:
        raw = self._read_json(FAVORITES_KEY)
        if not isinstance(raw, list):
            return []
        return [str(item) for item in raw]

    def save_favorites(self, ids: list[str]) -> None:
        unique: list[str] = []
        for content_id in ids:
            if content_id not in unique:
                unique.append(content_id)
        self._write_json(FAVORITES_KEY, unique[:FAVORITES_LIMIT])

    # -- backend access --------------------------------------------------

    def _read_json(self, key: str) -> Any:
        try:
            text = self._backend.get(key)
            if text is None:
                return None
            return json.loads(text)
        except (OSError, ValueError) as exc:
            log_event(
                self._logger,
                f"Failed to load {key}: {exc}",
                level=logging.WARNING,
                event="store_read_failed",
                key=key,
            )
            return None

    def _write_json(self, key: str, value: Any) -> None:
        try:
            self._backend.set(key, json.dumps(value, ensure_ascii=True))
        except OSError as exc:
            log_event(
                self._logger,
                f"Failed to save {key}: {exc}",
                level=logging.WARNING,
                event="store_write_failed",
                key=key,
            )


def _plain(value: Any) -> Any:
    """Convert enums and datetimes (and lists of them) into their stored values."""
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, datetime):
        return value.isoformat()
    return getattr(value, "value", value)


_TOPIC_FIELDS = ("topics", "excluded_topics")
_FLAG_FIELDS = ("show_adult_content", "track_history", "auto_learn")


def _checked(key: str, value: Any) -> Any:
    """Validate one preference change and return its stored form.

    Raises:
        ConfigurationError: The value has the wrong type or names unknown members
    """
    if key in _TOPIC_FIELDS or key == "enabled_providers":
        if not isinstance(value, (list, tuple)):
            raise ConfigurationError(f"{key} must be a list, got {type(value).__name__}")
        if key == "enabled_providers":
            invalid = [str(_plain(v)) for v in value if not _is_member(Provider, v)]
        else:
            invalid = [str(_plain(v)) for v in value if not parse_topics([_plain(v)])]
        if invalid:
            raise ConfigurationError(f"Unknown {key} value(s): {', '.join(invalid)}")
        if key == "topics" and not value:
            raise ConfigurationError("topics must not be empty")
    elif key == "default_sort":
        if not _is_member(SortStrategy, value):
            raise ConfigurationError(f"Unknown sort strategy: {_plain(value)}")
    elif key == "page_size":
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ConfigurationError(f"page_size must be a positive integer, got {value!r}")
    elif key in _FLAG_FIELDS:
        if not isinstance(value, bool):
            raise ConfigurationError(f"{key} must be true or false, got {value!r}")
    elif key in ("created_at", "updated_at"):
        if isinstance(value, datetime):
            return value.isoformat()
        if parse_iso_datetime(value, None) is None:
            raise ConfigurationError(f"{key} must be an ISO 8601 timestamp, got {value!r}")
    return _plain(value)


def _is_member(enum_cls: type[Enum], value: Any) -> bool:
    try:
        enum_cls(_plain(value))
    except (TypeError, ValueError):
        return False
    return True
