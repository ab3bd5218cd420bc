"""Wiring of the runtime objects from an AppConfig."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path

from .ai.service import AIService
from .audio.player import PlaybackEngine
from .config import AppConfig
from .core.batcher import ArticleBatcher
from .core.dedup import SeenIdStore
from .history import HistoryStore, SettingsStore
from .logging_utils import LogBuffer, setup_logging
from .session import BriefingSession
from .storage import KeyValueStore, open_store

logger = logging.getLogger(__name__)


@dataclass
class App:
    """Everything a UI shell needs, built from one configuration."""

    cfg: AppConfig
    store: KeyValueStore
    log_buffer: LogBuffer
    settings: SettingsStore
    history: HistoryStore
    ai: AIService
    batcher: ArticleBatcher
    session: BriefingSession


def build_app(cfg: AppConfig | None = None, log_dir: Path | None = None) -> App:
    cfg = cfg or AppConfig()
    log_buffer = LogBuffer(cfg.logging.buffer_size)
    setup_logging(cfg.logging, buffer=log_buffer, log_dir=log_dir)

    store = open_store(cfg.storage.path)
    settings = SettingsStore(store)
    history = HistoryStore(store)
    ai = AIService(cfg.ai)
    batcher = ArticleBatcher(cfg.feed, SeenIdStore(store, capacity=cfg.feed.seen_capacity))
    session = BriefingSession(
        settings.load(),
        ai,
        history=history,
        player=PlaybackEngine.from_config(cfg.playback),
    )
    logger.info("App ready", extra={"storage_path": cfg.storage.path or "memory"})
    return App(
        cfg=cfg,
        store=store,
        log_buffer=log_buffer,
        settings=settings,
        history=history,
        ai=ai,
        batcher=batcher,
        session=session,
    )
