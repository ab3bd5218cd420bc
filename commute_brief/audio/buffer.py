"""
Decoded audio buffers.

Providers return either raw PCM (Gemini: base64 s16le, 24 kHz mono) or an
audio container (OpenAI-compatible: mp3/wav/...). Both end up as an
immutable AudioBuffer of float32 samples shaped (frames, channels).
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
import io

import numpy as np
import soundfile as sf

PCM_SAMPLE_RATE = 24_000


@dataclass(frozen=True, eq=False)
class AudioBuffer:
    """Decoded PCM audio.

    Attributes:
        samples: float32 array shaped (frames, channels), values in [-1, 1]
        sample_rate: Frames per second
    """

    samples: np.ndarray
    sample_rate: int

    def __post_init__(self) -> None:
        samples = np.asarray(self.samples, dtype=np.float32)
        if samples.ndim == 1:
            samples = samples.reshape(-1, 1)
        samples = samples.copy()
        samples.setflags(write=False)
        object.__setattr__(self, "samples", samples)

    @property
    def frames(self) -> int:
        return int(self.samples.shape[0])

    @property
    def channels(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration(self) -> float:
        """Length in seconds."""
        if self.sample_rate <= 0:
            return 0.0
        return self.frames / self.sample_rate

    def frame_at(self, seconds: float) -> int:
        """Frame index for a time offset, clamped to the buffer."""
        index = int(round(seconds * self.sample_rate))
        return max(0, min(index, self.frames))


def decode_pcm16(data: bytes, sample_rate: int = PCM_SAMPLE_RATE, channels: int = 1) -> AudioBuffer:
    """Decode little-endian signed 16-bit PCM into an AudioBuffer."""
    usable = len(data) - (len(data) % (2 * channels))
    pcm = np.frombuffer(data[:usable], dtype="<i2")
    samples = pcm.astype(np.float32).reshape(-1, channels) / 32768.0
    return AudioBuffer(samples=samples, sample_rate=sample_rate)


def decode_base64_pcm(encoded: str, sample_rate: int = PCM_SAMPLE_RATE, channels: int = 1) -> AudioBuffer:
    return decode_pcm16(base64.b64decode(encoded), sample_rate=sample_rate, channels=channels)


def decode_container(data: bytes) -> AudioBuffer:
    """Decode a self-describing audio file (wav, flac, ogg, mp3)."""
    samples, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
    return AudioBuffer(samples=samples, sample_rate=int(sample_rate))
