"""
Article deduplication across sessions and within one fetch.

Two mechanisms:
1. SeenIdStore: persisted, FIFO-bounded list of article identifiers
   already shown to the user
2. Fuzzy title comparison: drops syndicated copies of the same story
   that arrive under different links in a single feed
"""

from __future__ import annotations

from typing import Any, Iterable

from rapidfuzz import fuzz

from ..storage import KeyValueStore

SEEN_KEY = "seen_article_ids"
MAX_SEEN_IDS = 1000

_ID_FIELDS = ("link", "url", "guid", "title")


def seen_id(record: dict[str, Any]) -> str:
    """Return the identifier of a feed record.

    The first non-empty of link, url, guid and title wins. Returns an
    empty string when the record carries none of them.
    """
    for name in _ID_FIELDS:
        value = record.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


class SeenIdStore:
    """Persisted set of seen article identifiers.

    The list is loaded from the key-value store on every call so that
    persistence stays authoritative. Each mutation is a single
    read-modify-write with no suspension point in between.

    Attributes:
        store: Backing key-value store
        capacity: Maximum number of identifiers kept; oldest are evicted first
    """

    def __init__(self, store: KeyValueStore, capacity: int = MAX_SEEN_IDS):
        self.store = store
        self.capacity = capacity

    def seen_ids(self) -> list[str]:
        raw = self.store.get(SEEN_KEY, [])
        if not isinstance(raw, list):
            return []
        return [str(item) for item in raw]

    def is_seen(self, article_id: str) -> bool:
        return article_id in self.seen_ids()

    def mark_seen(self, article_id: str) -> None:
        """Record an identifier; repeated calls are no-ops."""
        ids = self.seen_ids()
        if article_id in ids:
            return
        ids.append(article_id)
        if len(ids) > self.capacity:
            ids = ids[len(ids) - self.capacity :]
        self.store.set(SEEN_KEY, ids)

    def clear(self) -> None:
        self.store.delete(SEEN_KEY)


def is_similar_title(title: str, titles: Iterable[str], threshold: int) -> bool:
    """Check if a title is similar to any title in the given list.

    Uses rapidfuzz's ratio, a normalized Levenshtein similarity (0-100).
    Empty titles never match.
    """
    if not title:
        return False
    for existing in titles:
        if existing and fuzz.ratio(title, existing) >= threshold:
            return True
    return False
