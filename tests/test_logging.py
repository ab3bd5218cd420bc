"""Tests for the log ring buffer, redaction and logger setup."""

import json
import logging

from commute_brief.config import LoggingConfig
from commute_brief.logging_utils import LogBuffer, redact_text, redact_value, setup_logging


def test_ring_is_bounded_and_newest_first():
    buffer = LogBuffer(max_entries=500)
    for i in range(501):
        buffer.add("INFO", f"message {i}")

    entries = buffer.entries()
    assert len(entries) == 500
    assert entries[0].message == "message 500"
    assert entries[-1].message == "message 1"


def test_details_are_redacted():
    buffer = LogBuffer()
    entry = buffer.add(
        "ERROR",
        "GET https://api.test/models?key=secret-1 failed",
        {"api_key": "secret-2", "nested": {"apiKey": "secret-3"}, "headers": ["Bearer secret-4"]},
    )

    dumped = json.dumps(entry.details) + entry.message
    for secret in ("secret-1", "secret-2", "secret-3", "secret-4"):
        assert secret not in dumped
    assert entry.details["api_key"] == "***"


def test_redact_value_handles_exceptions():
    assert redact_value(ValueError("bad ?key=abc")) == {"name": "ValueError", "message": "bad ?key=***"}
    assert redact_text("Authorization: Bearer abc.def") == "Authorization: Bearer ***"


def test_export_text_format(tmp_path):
    buffer = LogBuffer()
    buffer.add("INFO", "first")
    buffer.add("WARN", "second", {"count": 2})

    text = buffer.export_text()
    blocks = text.split("\n" + "-" * 40 + "\n")
    assert len(blocks) == 2
    assert "[WARN] second" in blocks[0]
    assert 'Details: {\n  "count": 2\n}' in blocks[0]
    assert blocks[1].endswith("[INFO] first")

    path = buffer.write_export(tmp_path)
    assert path.name.startswith("debug_logs_")
    assert path.read_text(encoding="utf-8") == text


def test_setup_logging_feeds_buffer_and_file(tmp_path):
    buffer = LogBuffer()
    cfg = LoggingConfig(console=False, file=True, format="jsonl", filename="app.jsonl")
    setup_logging(cfg, buffer=buffer, log_dir=tmp_path)

    logging.getLogger("commute_brief.tests").warning("Slow feed", extra={"source": "Site", "api_key": "sk-1"})
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        logging.getLogger("commute_brief.tests").exception("Failed")

    latest, previous = buffer.entries()[:2]
    assert latest.level == "ERROR"
    assert latest.details["error"] == {"name": "RuntimeError", "message": "boom"}
    assert previous.level == "WARN"
    assert previous.details == {"source": "Site", "api_key": "***"}

    for handler in logging.getLogger("commute_brief").handlers:
        handler.flush()
    lines = (tmp_path / "app.jsonl").read_text(encoding="utf-8").splitlines()
    record = json.loads(lines[0])
    assert record["message"] == "Slow feed"
    assert record["api_key"] == "***"
