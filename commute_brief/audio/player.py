"""
Playback engine with sample-accurate pause and resume.

The engine never reads the position back from the audio output. It keeps a
start reference on an injectable clock, so ``elapsed = clock.now() - start_ref``
stays exact across pause/resume. Audio output goes through an AudioSink, and
each play() starts a new source at the stored offset.

Every play/pause/reset bumps a session counter. End signals and progress
tasks carry the session they were started in, and stale ones are ignored.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
import logging
import time
from typing import Callable, Protocol

from ..config import PlaybackConfig
from .buffer import AudioBuffer

logger = logging.getLogger(__name__)


class PlaybackStatus(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"


@dataclass(frozen=True)
class PlaybackState:
    """Point-in-time view of the engine."""

    state: PlaybackStatus
    paused_at: float
    progress: float = 0.0

    @property
    def is_playing(self) -> bool:
        return self.state is PlaybackStatus.PLAYING


class Clock(Protocol):
    def now(self) -> float:
        ...


class MonotonicClock:
    def now(self) -> float:
        return time.monotonic()


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self._now = start

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += seconds


class PlaybackHandle(Protocol):
    def stop(self) -> None:
        ...


class AudioSink(ABC):
    """Destination for decoded audio.

    ``start`` begins output at ``offset`` seconds and must call ``on_ended``
    once when output finishes on its own. ``stop`` on the returned handle
    halts output without calling ``on_ended``.
    """

    @abstractmethod
    def start(self, buffer: AudioBuffer, offset: float, on_ended: Callable[[], None]) -> PlaybackHandle:
        ...


class _TimerHandle:
    def __init__(self, timer: asyncio.TimerHandle):
        self._timer = timer

    def stop(self) -> None:
        self._timer.cancel()


class TimedSink(AudioSink):
    """Sink that produces no sound and signals the end on the event loop timer."""

    def start(self, buffer: AudioBuffer, offset: float, on_ended: Callable[[], None]) -> PlaybackHandle:
        loop = asyncio.get_running_loop()
        remaining = max(0.0, buffer.duration - offset)
        return _TimerHandle(loop.call_later(remaining, on_ended))


class PlaybackEngine:
    """State machine over one loaded AudioBuffer.

    States: idle -> playing <-> paused, playing -> ended. ``load`` and
    ``reset`` return to idle.

    Args:
        clock: Time source, defaults to MonotonicClock
        sink: Audio output, defaults to TimedSink
        progress_interval: Seconds between progress samples while playing
        end_epsilon: A natural end this close to the duration counts as complete
        on_progress: Called with the progress percentage (0-100)
    """

    def __init__(
        self,
        clock: Clock | None = None,
        sink: AudioSink | None = None,
        progress_interval: float = 0.05,
        end_epsilon: float = 0.1,
        on_progress: Callable[[float], None] | None = None,
    ):
        self.clock = clock or MonotonicClock()
        self.sink = sink or TimedSink()
        self.progress_interval = progress_interval
        self.end_epsilon = end_epsilon
        self.on_progress = on_progress

        self._buffer: AudioBuffer | None = None
        self._state = PlaybackStatus.IDLE
        self._paused_at = 0.0
        self._start_ref = 0.0
        self._progress = 0.0
        self._source: PlaybackHandle | None = None
        self._task: asyncio.Task | None = None
        self._session = 0

    @classmethod
    def from_config(cls, cfg: PlaybackConfig, **kwargs) -> "PlaybackEngine":
        return cls(
            progress_interval=cfg.progress_interval_seconds,
            end_epsilon=cfg.end_epsilon_seconds,
            **kwargs,
        )

    def __enter__(self) -> "PlaybackEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def buffer(self) -> AudioBuffer | None:
        return self._buffer

    @property
    def state(self) -> PlaybackStatus:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state is PlaybackStatus.PLAYING

    @property
    def paused_at(self) -> float:
        return self._paused_at

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def position(self) -> float:
        """Current offset in seconds."""
        if self._state is PlaybackStatus.PLAYING:
            return self._clamp(self._elapsed())
        return self._paused_at

    def snapshot(self) -> PlaybackState:
        return PlaybackState(state=self._state, paused_at=self._paused_at, progress=self._progress)

    def load(self, buffer: AudioBuffer) -> None:
        """Install a new buffer; any previous playback is reset, never resumed."""
        self.reset()
        self._buffer = buffer
        logger.info(
            "Audio loaded",
            extra={"duration": round(buffer.duration, 3), "sample_rate": buffer.sample_rate},
        )

    def play(self) -> bool:
        """Start or resume playback from the stored offset.

        Must be called with a running event loop. Returns False when nothing
        is loaded.
        """
        if self._buffer is None:
            logger.warning("Play requested without audio")
            return False
        if self._state is PlaybackStatus.PLAYING:
            return True
        loop = asyncio.get_running_loop()

        duration = self._buffer.duration
        if self._paused_at >= duration:
            self._paused_at = 0.0
        offset = self._paused_at

        self._stop_source()
        self._cancel_progress()
        self._session += 1
        session = self._session

        self._start_ref = self.clock.now() - offset
        self._source = self.sink.start(self._buffer, offset, lambda: self._handle_ended(session))
        self._state = PlaybackStatus.PLAYING
        self._task = loop.create_task(self._progress_loop(session))
        logger.debug("Playback started", extra={"offset": round(offset, 3)})
        return True

    def pause(self) -> None:
        if self._state is not PlaybackStatus.PLAYING:
            return
        self._paused_at = self._clamp(self._elapsed())
        self._session += 1
        self._stop_source()
        self._cancel_progress()
        self._state = PlaybackStatus.PAUSED
        self._set_progress(self._percent(self._paused_at))
        logger.debug("Playback paused", extra={"paused_at": round(self._paused_at, 3)})

    def toggle(self) -> bool:
        """Pause when playing, otherwise play. Returns whether audio is now playing."""
        if self._state is PlaybackStatus.PLAYING:
            self.pause()
            return False
        return self.play()

    def reset(self) -> None:
        self._session += 1
        self._stop_source()
        self._cancel_progress()
        self._paused_at = 0.0
        self._state = PlaybackStatus.IDLE
        self._set_progress(0.0)

    def close(self) -> None:
        """Stop output; a playing engine keeps its offset and ends up paused."""
        if self._state is PlaybackStatus.PLAYING:
            self.pause()
            return
        self._session += 1
        self._stop_source()
        self._cancel_progress()

    def _handle_ended(self, session: int) -> None:
        if session != self._session:
            logger.debug("Ignoring end signal from a stale session")
            return
        elapsed = self._elapsed()
        self._source = None
        self._cancel_progress()
        self._state = PlaybackStatus.ENDED
        duration = self._buffer.duration if self._buffer is not None else 0.0
        if elapsed >= duration - self.end_epsilon:
            self._paused_at = 0.0
            self._set_progress(0.0)
        logger.info("Playback ended")

    async def _progress_loop(self, session: int) -> None:
        while self._session == session and self._state is PlaybackStatus.PLAYING:
            value = self._percent(self._elapsed())
            self._set_progress(value)
            if value >= 100.0:
                break
            await asyncio.sleep(self.progress_interval)

    def _elapsed(self) -> float:
        return self.clock.now() - self._start_ref

    def _clamp(self, seconds: float) -> float:
        duration = self._buffer.duration if self._buffer is not None else 0.0
        return min(max(seconds, 0.0), duration)

    def _percent(self, seconds: float) -> float:
        duration = self._buffer.duration if self._buffer is not None else 0.0
        if duration <= 0:
            return 100.0
        return min(max(seconds / duration * 100.0, 0.0), 100.0)

    def _set_progress(self, value: float) -> None:
        self._progress = value
        if self.on_progress is not None:
            self.on_progress(value)

    def _stop_source(self) -> None:
        if self._source is not None:
            self._source.stop()
            self._source = None

    def _cancel_progress(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
