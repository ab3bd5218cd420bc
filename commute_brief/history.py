"""History of generated briefings and persisted user settings.

Both live in the key-value store as plain JSON:
- ``commute_brief_history``: list of HistoryItem dicts, newest first
- ``app_settings``: the AppSettings blob
"""

from __future__ import annotations

from dataclasses import asdict
import logging
import time
from typing import Callable

from .config import AppSettings
from .core.types import HistoryItem
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

HISTORY_KEY = "commute_brief_history"
SETTINGS_KEY = "app_settings"
MAX_HISTORY_ITEMS = 50
TITLE_MAX_CHARS = 60
UNTITLED = "Untitled Summary"


def make_title(text: str) -> str:
    """First non-empty line of ``text``, truncated to 60 characters."""
    for line in text.splitlines():
        line = line.strip()
        if line:
            if len(line) > TITLE_MAX_CHARS:
                return line[:TITLE_MAX_CHARS] + "..."
            return line
    return UNTITLED


class HistoryStore:
    """Bounded, newest-first list of previous briefings."""

    def __init__(
        self,
        store: KeyValueStore,
        max_items: int = MAX_HISTORY_ITEMS,
        now: Callable[[], float] = time.time,
    ):
        self.store = store
        self.max_items = max_items
        self._now = now

    def items(self) -> list[HistoryItem]:
        raw = self.store.get(HISTORY_KEY) or []
        items = []
        for record in raw:
            try:
                items.append(HistoryItem(**record))
            except TypeError:
                logger.warning("Skipping malformed history record")
        return items

    def add(self, original_text: str, summary: str) -> HistoryItem | None:
        """Prepend a new item.

        Returns None, and stores nothing, when ``original_text`` matches the
        most recent item.
        """
        items = self.items()
        if items and items[0].original_text == original_text:
            return None
        millis = int(self._now() * 1000)
        item = HistoryItem(
            id=str(millis),
            title=make_title(original_text),
            original_text=original_text,
            summary=summary,
            timestamp=millis,
        )
        items = [item] + items
        self._save(items[: self.max_items])
        logger.info("History item saved", extra={"item_id": item.id, "title": item.title})
        return item

    def delete(self, item_id: str) -> bool:
        items = self.items()
        kept = [item for item in items if item.id != item_id]
        if len(kept) == len(items):
            return False
        self._save(kept)
        return True

    def clear(self) -> None:
        self.store.delete(HISTORY_KEY)

    def _save(self, items: list[HistoryItem]) -> None:
        self.store.set(HISTORY_KEY, [asdict(item) for item in items])


class SettingsStore:
    """Loads and saves AppSettings, merging stored values over the defaults."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def load(self) -> AppSettings:
        raw = self.store.get(SETTINGS_KEY)
        if not isinstance(raw, dict):
            return AppSettings()
        return AppSettings.from_dict(raw)

    def save(self, settings: AppSettings) -> None:
        self.store.set(SETTINGS_KEY, settings.to_dict())
        logger.info(
            "Settings saved",
            extra={"llm_provider": settings.llm.provider, "tts_provider": settings.tts.provider},
        )
