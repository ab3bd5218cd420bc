"""Abstract interface shared by every AI backend family."""

from __future__ import annotations

from abc import ABC, abstractmethod

import httpx

from ...audio.buffer import AudioBuffer
from ...config import AIConfig, LLMSettings, TTSSettings


class AIProvider(ABC):
    """Provider interface for summarization, speech and discovery.

    Each method performs a single attempt and raises on failure; retries,
    fallback lists and message wrapping are applied by AIService.

    Attributes:
        name: Registry name of the provider
        label: Human-readable name used in error messages
        fallback_models: Curated LLM models used when discovery fails
        fallback_speech_models: Curated speech models used when discovery fails
        fallback_voices: Curated voices used when discovery fails
    """

    name: str = ""
    label: str = ""
    fallback_models: list[str] = []
    fallback_speech_models: list[str] = []
    fallback_voices: list[str] = []

    def __init__(self, cfg: AIConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.cfg = cfg
        self._transport = transport

    def _client(self, **kwargs) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.cfg.timeout_seconds,
            trust_env=self.cfg.trust_env,
            transport=self._transport,
            **kwargs,
        )

    @abstractmethod
    async def list_models(self, llm: LLMSettings) -> list[str]:
        """Return the LLM models offered by the provider."""
        raise NotImplementedError

    @abstractmethod
    async def list_speech_models(self, tts: TTSSettings, api_key: str) -> list[str]:
        """Return the speech models offered by the provider."""
        raise NotImplementedError

    @abstractmethod
    async def list_voices(self, tts: TTSSettings, api_key: str) -> list[str]:
        """Return the voices offered by the provider; empty when unknown."""
        raise NotImplementedError

    @abstractmethod
    async def test_connection(self, llm: LLMSettings) -> str:
        raise NotImplementedError

    @abstractmethod
    async def test_speech(self, tts: TTSSettings, api_key: str, language: str) -> str:
        raise NotImplementedError

    @abstractmethod
    async def summarize(self, text: str, llm: LLMSettings, language: str) -> str:
        """Return the broadcast summary of ``text`` in ``language``."""
        raise NotImplementedError

    @abstractmethod
    async def synthesize(self, text: str, tts: TTSSettings, api_key: str, language: str) -> AudioBuffer:
        """Return decoded speech for ``text``."""
        raise NotImplementedError
