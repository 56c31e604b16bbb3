"""Timestamp parsing helpers. Everything returned is timezone-aware UTC."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


def parse_iso_datetime(value: Any, default: datetime) -> datetime:
    """Parse an ISO 8601 timestamp or ``YYYY-MM-DD`` date.

    Falls back to ``default`` for missing or unparseable values.
    """
    if not isinstance(value, str) or not value.strip():
        return default
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return default
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_epoch_seconds(value: Any, default: datetime) -> datetime:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    try:
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return default
