"""Tests for wiring the runtime objects from configuration."""

from commute_brief.app import build_app
from commute_brief.config import AppConfig, AppSettings, LoggingConfig, PlaybackConfig, StorageConfig
from commute_brief.storage import JsonFileStore, MemoryStore


def test_build_app_defaults_to_memory_store():
    app = build_app(AppConfig(logging=LoggingConfig(console=False)))

    assert isinstance(app.store, MemoryStore)
    assert app.session.settings == AppSettings()
    assert app.batcher.seen.capacity == 1000
    assert app.log_buffer.entries()[0].message == "App ready"


def test_build_app_uses_configured_file_and_playback(tmp_path):
    cfg = AppConfig(
        logging=LoggingConfig(console=False, buffer_size=10),
        playback=PlaybackConfig(progress_interval_seconds=0.2, end_epsilon_seconds=0.5),
        storage=StorageConfig(path=str(tmp_path / "state.json")),
    )
    saved = AppSettings(language="en-US")
    JsonFileStore(tmp_path / "state.json").set("app_settings", saved.to_dict())

    app = build_app(cfg)

    assert isinstance(app.store, JsonFileStore)
    assert app.session.settings == saved
    assert app.session.player.progress_interval == 0.2
    assert app.session.player.end_epsilon == 0.5
    assert app.log_buffer.max_entries == 10
