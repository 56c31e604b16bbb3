"""
Feed deduplication.

This module removes duplicate content records based on:
1. Canonical id (the same upstream item fetched twice)
2. Optionally, fuzzy title similarity (the same story syndicated under different ids)
"""

from __future__ import annotations

from rapidfuzz import fuzz

from .types import CanonicalContent


def dedup_by_id(items: list[CanonicalContent]) -> list[CanonicalContent]:
    """Keep the first occurrence of every canonical id.

    The filter is stable: survivors keep their relative order, so the
    provider dispatched first wins when two result sets share an item.

    Args:
        items: Records in encounter order

    Returns:
        Deduplicated list of records, preserving original order
    """
    seen: set[str] = set()
    kept: list[CanonicalContent] = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        kept.append(item)
    return kept


def collapse_similar_titles(items: list[CanonicalContent], threshold: int = 92) -> list[CanonicalContent]:
    """Drop records whose title is near-identical to an earlier kept record.

    Args:
        items: Records in encounter order
        threshold: Similarity threshold (0-100) for fuzzy title matching.

    Returns:
        Filtered list, preserving original order
    """
    kept: list[CanonicalContent] = []
    titles: list[str] = []
    for item in items:
        title = item.title.strip().lower()
        if _is_similar_title(title, titles, threshold):
            continue
        titles.append(title)
        kept.append(item)
    return kept


def _is_similar_title(title: str, titles: list[str], threshold: int) -> bool:
    for existing in titles:
        if fuzz.ratio(title, existing) >= threshold:
            return True
    return False
