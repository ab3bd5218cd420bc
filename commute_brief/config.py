"""
Configuration management using YAML files and dataclasses.

Two kinds of configuration live here:

Runtime configuration (AppConfig), loaded from YAML with defaults:
- FeedConfig: Feed endpoint and batching settings
- AIConfig: Retry policy and provider transport settings
- PlaybackConfig: Progress sampling and end-of-audio tolerance
- LoggingConfig: Logging behavior
- StorageConfig: Key-value store location

User-facing settings (AppSettings), persisted through the key-value store:
- LLMSettings: Summarization provider, key, base URL and model
- TTSSettings: Speech provider, key, base URL, model and voice
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any

import yaml


DEFAULT_FEED_ENDPOINT = "https://48f63395.r36.cpolar.top/fetch_feed"


@dataclass
class FeedConfig:
    """Configuration for the feed endpoint and article batching.

    Attributes:
        endpoint: URL of the external feed service (takes ``rss_url`` query param)
        batch_size: Maximum number of unseen articles emitted per batch
        min_content_chars: Bodies shorter than this fall back to the title
        max_source_attempts: Attempts made by random-source selection
        source_retry_pause_seconds: Pause between random-source attempts
        title_similarity_threshold: Fuzzy title match (0-100) treated as a duplicate
        timeout_seconds: HTTP timeout for feed requests
        seen_capacity: Number of seen article IDs kept before FIFO eviction
    """

    endpoint: str = DEFAULT_FEED_ENDPOINT
    batch_size: int = 6
    min_content_chars: int = 50
    max_source_attempts: int = 5
    source_retry_pause_seconds: float = 1.0
    title_similarity_threshold: int = 92
    timeout_seconds: float = 20.0
    seen_capacity: int = 1000


@dataclass
class AIConfig:
    """Configuration for the AI orchestration layer.

    Attributes:
        retries: Additional attempts for summarize/synthesize on transient errors
        initial_retry_delay_seconds: First backoff delay, doubled on each retry
        max_speech_chars: Speech input is truncated to this many characters
        timeout_seconds: HTTP timeout for provider requests
        trust_env: Whether to respect system proxy settings for API requests
    """

    retries: int = 1
    initial_retry_delay_seconds: float = 1.0
    max_speech_chars: int = 4096
    timeout_seconds: float = 60.0
    trust_env: bool = True


@dataclass
class PlaybackConfig:
    """Configuration for the playback engine.

    Attributes:
        progress_interval_seconds: How often the progress loop samples the clock
        end_epsilon_seconds: Tolerance for treating a natural end as complete
    """

    progress_interval_seconds: float = 0.05
    end_epsilon_seconds: float = 0.1


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the log file
        buffer_size: Number of entries kept in the in-memory log ring
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "commute_brief.jsonl"
    buffer_size: int = 500


@dataclass
class StorageConfig:
    """Configuration for persisted state.

    Attributes:
        path: JSON file backing the key-value store, or None for in-memory only
    """

    path: str | None = None


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    feed: FeedConfig = field(default_factory=FeedConfig)
    ai: AIConfig = field(default_factory=AIConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)


DEFAULT_CONFIG = AppConfig()


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(DEFAULT_CONFIG, raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update(_known_keys(_SECTIONS[key], value))
    return AppConfig(**{name: _SECTIONS[name](**section) for name, section in data.items()})


_SECTIONS: dict[str, type] = {
    "feed": FeedConfig,
    "ai": AIConfig,
    "playback": PlaybackConfig,
    "logging": LoggingConfig,
    "storage": StorageConfig,
}


def _known_keys(section: type, values: dict[str, Any]) -> dict[str, Any]:
    names = {f.name for f in fields(section)}
    return {k: v for k, v in values.items() if k in names}


# --- User-facing settings -------------------------------------------------

LANGUAGES = ("zh-CN", "en-US")


@dataclass
class LLMSettings:
    """Provider settings for summarization.

    Attributes:
        provider: Provider name ("gemini" or "openai")
        api_key: API key for the provider
        base_url: Base URL for OpenAI-compatible providers (empty = public default)
        model: Model identifier
    """

    provider: str = "gemini"
    api_key: str = ""
    base_url: str = ""
    model: str = "gemini-3-flash-preview"


@dataclass
class TTSSettings:
    """Provider settings for speech synthesis.

    Attributes:
        provider: Provider name ("gemini" or "openai")
        api_key: API key; when empty the LLM key may be borrowed
        base_url: Base URL for OpenAI-compatible providers (empty = public default)
        model: Speech model identifier
        voice: Voice identifier
    """

    provider: str = "gemini"
    api_key: str = ""
    base_url: str = ""
    model: str = "gemini-2.5-flash-preview-tts"
    voice: str = "Kore"


@dataclass
class AppSettings:
    """Settings blob edited by the user and persisted as JSON."""

    language: str = "zh-CN"
    llm: LLMSettings = field(default_factory=LLMSettings)
    tts: TTSSettings = field(default_factory=TTSSettings)

    @property
    def is_chinese(self) -> bool:
        return self.language == "zh-CN"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> "AppSettings":
        """Build settings from a stored blob, filling gaps with defaults."""
        raw = raw or {}
        language = raw.get("language")
        if language not in LANGUAGES:
            language = "zh-CN"
        return cls(
            language=language,
            llm=LLMSettings(**_known_keys(LLMSettings, raw.get("llm") or {})),
            tts=TTSSettings(**_known_keys(TTSSettings, raw.get("tts") or {})),
        )


def get_api_key(settings: AppSettings) -> str:
    """Get the LLM API key."""
    return settings.llm.api_key


def get_tts_api_key(settings: AppSettings, same_provider_only: bool = False) -> str:
    """Get the TTS API key, borrowing the LLM key when the TTS key is empty.

    With ``same_provider_only`` the LLM key is only borrowed when both
    settings point at the same provider.
    """
    if settings.tts.api_key:
        return settings.tts.api_key
    if same_provider_only and settings.llm.provider != settings.tts.provider:
        return ""
    return settings.llm.api_key
