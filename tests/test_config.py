"""Tests for YAML configuration loading."""

from commute_brief.config import DEFAULT_CONFIG, AppConfig, load_config


def test_load_config_without_path_returns_defaults():
    cfg = load_config(None)
    assert cfg == AppConfig()
    assert cfg.feed.batch_size == 6
    assert cfg.ai.max_speech_chars == 4096
    assert cfg.logging.buffer_size == 500


def test_load_config_merges_known_keys(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "feed:\n"
        "  batch_size: 3\n"
        "  unknown_option: true\n"
        "ai:\n"
        "  retries: 2\n"
        "storage:\n"
        "  path: state.json\n"
        "extra_section:\n"
        "  x: 1\n",
        encoding="utf-8",
    )

    cfg = load_config(str(path))

    assert cfg.feed.batch_size == 3
    assert cfg.feed.min_content_chars == 50
    assert cfg.ai.retries == 2
    assert cfg.ai.initial_retry_delay_seconds == 1.0
    assert cfg.storage.path == "state.json"
    assert DEFAULT_CONFIG.feed.batch_size == 6
