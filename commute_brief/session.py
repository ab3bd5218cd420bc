"""
Briefing session: the summarize -> synthesize -> play chain a UI drives.

Each request takes a new generation number. When a newer request has
started by the time a result arrives, the result is dropped and the call
returns None, so a slow response never overwrites a newer one.
"""

from __future__ import annotations

import logging

from .ai.errors import InputError
from .ai.service import AIService
from .audio.buffer import AudioBuffer
from .audio.player import PlaybackEngine
from .config import AppSettings
from .core.types import HistoryItem
from .history import HistoryStore

logger = logging.getLogger(__name__)


def strip_bold(text: str) -> str:
    """Remove ``**`` emphasis markers so they are not read aloud."""
    return text.replace("**", "")


class BriefingSession:
    """Holds the current summary and audio for one user.

    Args:
        settings: Provider and language settings used for every call
        ai: AIService performing the provider calls
        history: Where finished summaries are recorded, if anywhere
        player: Playback engine that receives synthesized audio
    """

    def __init__(
        self,
        settings: AppSettings,
        ai: AIService,
        history: HistoryStore | None = None,
        player: PlaybackEngine | None = None,
    ):
        self.settings = settings
        self.ai = ai
        self.history = history
        self.player = player or PlaybackEngine()
        self.summary: str | None = None
        self.audio: AudioBuffer | None = None
        self._source_text: str | None = None
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def cancel(self) -> None:
        """Invalidate any request still in flight."""
        self._generation += 1

    def update_settings(self, settings: AppSettings) -> None:
        self.settings = settings

    async def generate_summary(self, text: str) -> str | None:
        if self.summary is not None and text == self._source_text:
            logger.info("Input unchanged, reusing summary")
            return self.summary

        self._generation += 1
        generation = self._generation
        summary = await self.ai.summarize(text, self.settings)
        if generation != self._generation:
            logger.info("Discarding stale summary", extra={"generation": generation})
            return None

        self.summary = summary
        self._source_text = text
        self.audio = None
        self.player.reset()
        if self.history is not None:
            self.history.add(text, summary)
        return summary

    async def generate_audio(self) -> AudioBuffer | None:
        if not self.summary:
            message = "请先生成总结" if self.settings.is_chinese else "Generate a summary first"
            logger.warning("Audio requested without a summary")
            raise InputError(message)

        self._generation += 1
        generation = self._generation
        buffer = await self.ai.synthesize_speech(strip_bold(self.summary), self.settings)
        if generation != self._generation:
            logger.info("Discarding stale audio", extra={"generation": generation})
            return None

        self.audio = buffer
        self.player.load(buffer)
        return buffer

    async def brief(self, text: str) -> AudioBuffer | None:
        """Summarize ``text`` and synthesize the summary."""
        summary = await self.generate_summary(text)
        if summary is None:
            return None
        return await self.generate_audio()

    def restore(self, item: HistoryItem) -> None:
        """Make a history item the current summary; its audio is regenerated on demand."""
        self._generation += 1
        self.summary = item.summary
        self._source_text = item.original_text
        self.audio = None
        self.player.reset()
