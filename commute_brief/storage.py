"""
Key-value persistence for settings, history and seen article IDs.

Stores hold JSON-serializable values under string keys. Two backends:
- MemoryStore: process-local dict, used by tests and ephemeral sessions
- JsonFileStore: a single JSON file rewritten atomically on every write
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import copy
import json
import logging
import os
from pathlib import Path
import tempfile
from typing import Any

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Minimal key-value contract shared by all persisted state."""

    @abstractmethod
    def get(self, name: str, default: Any = None) -> Any:
        raise NotImplementedError

    @abstractmethod
    def set(self, name: str, value: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, name: str) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = copy.deepcopy(initial or {})

    def get(self, name: str, default: Any = None) -> Any:
        if name not in self._data:
            return default
        return copy.deepcopy(self._data[name])

    def set(self, name: str, value: Any) -> None:
        self._data[name] = copy.deepcopy(value)

    def delete(self, name: str) -> None:
        self._data.pop(name, None)


class JsonFileStore(KeyValueStore):
    """Store backed by one JSON object on disk.

    The file is re-read on every access so that it stays the source of
    truth, and written through a temp file plus ``os.replace``.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def get(self, name: str, default: Any = None) -> Any:
        return self._read().get(name, default)

    def set(self, name: str, value: Any) -> None:
        data = self._read()
        data[name] = value
        self._write(data)

    def delete(self, name: str) -> None:
        data = self._read()
        if name in data:
            del data[name]
            self._write(data)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Failed to read store %s, starting empty", self.path, extra={"error": str(exc)})
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def open_store(path: str | None) -> KeyValueStore:
    """Build the store named by StorageConfig.path."""
    if not path:
        return MemoryStore()
    return JsonFileStore(Path(path).expanduser())
