from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
import json
import logging
from pathlib import Path
import re
from typing import Any

from rich.logging import RichHandler

from .config import LoggingConfig


_SENSITIVE_KEYS = {"apikey", "api_key", "authorization", "key", "x-goog-api-key"}
_KEY_PARAM_RE = re.compile(r"([?&]key=)[^&\s'\"]+", re.IGNORECASE)
_BEARER_RE = re.compile(r"(Bearer\s+)[A-Za-z0-9._\-]+", re.IGNORECASE)

REDACTED = "***"
EXPORT_RULE = "-" * 40


@dataclass(frozen=True)
class LogEntry:
    """One entry in the in-memory log ring.

    Attributes:
        timestamp: ISO 8601 UTC timestamp
        level: "INFO", "WARN" or "ERROR"
        message: Log message
        details: Redacted structured details, if any
    """

    timestamp: str
    level: str
    message: str
    details: Any = None


class LogBuffer:
    """Bounded ring of log entries, newest first.

    The buffer is an explicit object so callers can inject and inspect it;
    RingBufferHandler feeds it from the standard logging tree.
    """

    def __init__(self, max_entries: int = 500):
        self.max_entries = max_entries
        self._entries: deque[LogEntry] = deque(maxlen=max_entries)

    def add(self, level: str, message: str, details: Any = None) -> LogEntry:
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=level,
            message=redact_text(message),
            details=redact_value(details) if details is not None else None,
        )
        # appendleft on a bounded deque drops the oldest entry from the right
        self._entries.appendleft(entry)
        return entry

    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def export_text(self) -> str:
        """Render all entries as a plain-text dump, one block per entry."""
        blocks = []
        for entry in self._entries:
            block = f"[{entry.timestamp}] [{entry.level}] {entry.message}"
            if entry.details is not None:
                if isinstance(entry.details, str):
                    detail = entry.details
                else:
                    detail = json.dumps(entry.details, indent=2, ensure_ascii=False, default=str)
                block += f"\nDetails: {detail}"
            blocks.append(block)
        return f"\n{EXPORT_RULE}\n".join(blocks)

    def write_export(self, directory: Path) -> Path:
        """Write the export dump to a timestamped file in ``directory``."""
        directory.mkdir(parents=True, exist_ok=True)
        stamp = re.sub(r"[:.]", "-", datetime.now(timezone.utc).isoformat())
        path = directory / f"debug_logs_{stamp}.txt"
        path.write_text(self.export_text(), encoding="utf-8")
        return path


class RingBufferHandler(logging.Handler):
    """Logging handler that appends records to a LogBuffer."""

    def __init__(self, buffer: LogBuffer, level: int = logging.INFO):
        super().__init__(level)
        self.buffer = buffer

    def emit(self, record: logging.LogRecord) -> None:
        try:
            details = _extract_extras(record)
            if record.exc_info and record.exc_info[1] is not None:
                exc = record.exc_info[1]
                details["error"] = {"name": type(exc).__name__, "message": str(exc)}
            self.buffer.add(_buffer_level(record.levelno), record.getMessage(), details or None)
        except Exception:  # noqa: BLE001
            self.handleError(record)


def setup_logging(
    cfg: LoggingConfig,
    buffer: LogBuffer | None = None,
    log_dir: Path | None = None,
) -> logging.Logger:
    logger = logging.getLogger("commute_brief")
    logger.setLevel(_level_from_string(cfg.level))
    logger.handlers = []
    logger.propagate = False

    if cfg.console:
        console_handler = RichHandler(rich_tracebacks=True, show_time=False, show_level=True)
        console_handler.setLevel(_level_from_string(cfg.level))
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(console_handler)

    if cfg.file and log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / cfg.filename, encoding="utf-8")
        file_handler.setLevel(_level_from_string(cfg.level))
        file_handler.setFormatter(_build_file_formatter(cfg.format))
        logger.addHandler(file_handler)

    if buffer is not None:
        logger.addHandler(RingBufferHandler(buffer, _level_from_string(cfg.level)))

    return logger


def redact_text(text: str) -> str:
    """Mask credentials embedded in free text (query keys, bearer tokens)."""
    text = _KEY_PARAM_RE.sub(rf"\g<1>{REDACTED}", text)
    return _BEARER_RE.sub(rf"\g<1>{REDACTED}", text)


def redact_value(value: Any) -> Any:
    """Return a JSON-safe copy of ``value`` with credential fields masked."""
    if isinstance(value, dict):
        redacted = {}
        for key, item in value.items():
            if str(key).lower() in _SENSITIVE_KEYS and item:
                redacted[str(key)] = REDACTED
            else:
                redacted[str(key)] = redact_value(item)
        return redacted
    if isinstance(value, (list, tuple)):
        return [redact_value(item) for item in value]
    if isinstance(value, BaseException):
        return {"name": type(value).__name__, "message": redact_text(str(value))}
    if isinstance(value, str):
        return redact_text(value)
    if value is None or isinstance(value, (int, float, bool)):
        return value
    if hasattr(value, "__dataclass_fields__"):
        return redact_value({f: getattr(value, f) for f in value.__dataclass_fields__})
    return redact_text(str(value))


class JsonlFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": redact_text(record.getMessage()),
        }
        payload.update(redact_value(_extract_extras(record)))
        return json.dumps(payload, ensure_ascii=True, default=str)


_RESERVED = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "taskName",
    "asctime",
}


def _extract_extras(record: logging.LogRecord) -> dict[str, Any]:
    extras = {}
    for key, value in record.__dict__.items():
        if key in _RESERVED or key.startswith("_"):
            continue
        extras[key] = value
    return extras


def _buffer_level(levelno: int) -> str:
    if levelno >= logging.ERROR:
        return "ERROR"
    if levelno >= logging.WARNING:
        return "WARN"
    return "INFO"


def _build_file_formatter(fmt: str) -> logging.Formatter:
    if fmt == "jsonl":
        return JsonlFormatter()
    return logging.Formatter("%(asctime)s %(levelname)s %(message)s")


def _level_from_string(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)
