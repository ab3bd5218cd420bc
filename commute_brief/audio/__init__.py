"""Decoded audio buffers and the playback engine."""

from .buffer import AudioBuffer, decode_base64_pcm, decode_container, decode_pcm16
from .player import (
    AudioSink,
    ManualClock,
    MonotonicClock,
    PlaybackEngine,
    PlaybackState,
    PlaybackStatus,
    TimedSink,
)

__all__ = [
    "AudioBuffer",
    "decode_base64_pcm",
    "decode_container",
    "decode_pcm16",
    "AudioSink",
    "ManualClock",
    "MonotonicClock",
    "PlaybackEngine",
    "PlaybackState",
    "PlaybackStatus",
    "TimedSink",
]
