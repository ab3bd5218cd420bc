"""
Provider-agnostic facade over the AI backends.

AIService is what callers use. It picks the provider for each call from the
settings, then applies the cross-cutting policies:
- input validation before any network call (InputError)
- bounded retry with exponential backoff for summarize/synthesize
- curated fallback lists for model and voice discovery
- provider-qualified error messages, with safety rejections translated
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

import httpx

from ..audio.buffer import AudioBuffer
from ..config import AIConfig, AppSettings, get_api_key, get_tts_api_key
from ..logging_utils import redact_text
from .errors import (
    ContentBlockedError,
    InputError,
    ProviderError,
    content_blocked_message,
)
from .providers.base import AIProvider
from .providers.factory import create_provider
from .retry import with_retry

logger = logging.getLogger(__name__)

# Failures that discovery and test calls know how to report
_PROVIDER_FAILURES = (ProviderError, httpx.HTTPError, ValueError)


class AIService:
    """Single entry point for summarization, speech and discovery.

    Attributes:
        cfg: Retry, speech-limit and transport settings
    """

    def __init__(
        self,
        cfg: AIConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.cfg = cfg or AIConfig()
        self._transport = transport
        self._sleep = sleep

    def provider(self, name: str) -> AIProvider:
        try:
            return create_provider(name, self.cfg, self._transport)
        except ValueError as exc:
            logger.error("Unknown provider", extra={"provider": name})
            raise InputError(str(exc)) from exc

    # --- discovery ------------------------------------------------------

    async def list_models(self, settings: AppSettings) -> list[str]:
        llm = settings.llm
        provider = self.provider(llm.provider)
        logger.info("Fetching LLM models", extra={"provider": llm.provider, "base_url": llm.base_url})
        if not get_api_key(settings):
            logger.warning("LLM API Key missing during fetchModels, using fallbacks")
            return list(provider.fallback_models)
        try:
            models = await provider.list_models(llm)
        except _PROVIDER_FAILURES as exc:
            logger.error("Fetch LLM Models Error, using fallbacks", extra={"error": str(exc)})
            return list(provider.fallback_models)
        if not models:
            return list(provider.fallback_models)
        logger.info(f"Fetched {len(models)} LLM models")
        return models

    async def list_speech_models(self, settings: AppSettings) -> list[str]:
        tts = settings.tts
        provider = self.provider(tts.provider)
        logger.info("Fetching TTS models", extra={"provider": tts.provider, "base_url": tts.base_url})
        api_key = get_tts_api_key(settings, same_provider_only=True)
        if not api_key and not tts.base_url:
            return list(provider.fallback_speech_models)
        try:
            models = await provider.list_speech_models(tts, api_key)
        except _PROVIDER_FAILURES as exc:
            logger.warning("Fetch TTS Models Error, using fallbacks", extra={"error": str(exc)})
            return list(provider.fallback_speech_models)
        if not models:
            return list(provider.fallback_speech_models)
        logger.info(f"Fetched {len(models)} TTS models")
        return models

    async def list_voices(self, settings: AppSettings) -> list[str]:
        tts = settings.tts
        provider = self.provider(tts.provider)
        logger.info("Fetching TTS Voices", extra={"provider": tts.provider})
        api_key = get_tts_api_key(settings, same_provider_only=True)
        try:
            voices = await provider.list_voices(tts, api_key)
        except _PROVIDER_FAILURES as exc:
            logger.warning("Fetch TTS Voices Error", extra={"error": str(exc)})
            voices = []
        if not voices:
            logger.warning("Could not fetch voices remotely, using defaults")
            return list(provider.fallback_voices)
        return voices

    # --- connectivity tests ----------------------------------------------

    async def test_connection(self, settings: AppSettings) -> str:
        """Send a tiny prompt to the LLM; provider errors propagate."""
        llm = settings.llm
        logger.info("Testing LLM Connection", extra={"provider": llm.provider, "model": llm.model, "base_url": llm.base_url})
        if not get_api_key(settings):
            raise _input_error("API Key Missing")
        provider = self.provider(llm.provider)
        try:
            return await provider.test_connection(llm)
        except ContentBlockedError as exc:
            logger.error("LLM Connection Test Blocked", extra={"provider": provider.name, "code": exc.code})
            raise
        except _PROVIDER_FAILURES as exc:
            logger.error("LLM Connection Test Failed", extra={"provider": provider.name, "error": str(exc)})
            raise _qualified(provider, "connection test failed", exc) from exc

    async def test_speech(self, settings: AppSettings) -> str:
        """Synthesize a short phrase; provider errors propagate."""
        tts = settings.tts
        logger.info(
            "Testing TTS Connection",
            extra={"provider": tts.provider, "model": tts.model, "voice": tts.voice, "base_url": tts.base_url},
        )
        api_key = get_tts_api_key(settings)
        if not api_key:
            raise _input_error("API Key Missing")
        provider = self.provider(tts.provider)
        try:
            return await provider.test_speech(tts, api_key, settings.language)
        except ContentBlockedError as exc:
            logger.error("TTS Test Blocked", extra={"provider": provider.name, "code": exc.code})
            raise
        except _PROVIDER_FAILURES as exc:
            logger.error("TTS Test Failed", extra={"provider": provider.name, "error": str(exc)})
            raise _qualified(provider, "speech test failed", exc) from exc

    # --- generation ----------------------------------------------------

    async def summarize(self, text: str, settings: AppSettings) -> str:
        """Turn ``text`` into a broadcast-ready summary with bold highlights.

        Raises:
            InputError: Empty text or missing API key (no network call made)
            ContentBlockedError: The provider's safety filter rejected the text
            ProviderError: The provider failed after retries
        """
        llm = settings.llm
        zh = settings.is_chinese
        if not text or not text.strip():
            raise _input_error("请输入需要总结的内容" if zh else "Please enter some text to summarize")
        if not get_api_key(settings):
            raise _input_error("请在设置中配置文本生成 API Key" if zh else "Please configure LLM API Key in settings")
        provider = self.provider(llm.provider)
        logger.info(
            "Starting Summary Generation",
            extra={"provider": provider.name, "model": llm.model, "input_length": len(text)},
        )
        return await self._generate(
            provider,
            "summarization",
            lambda: provider.summarize(text, llm, settings.language),
            settings.language,
        )

    async def synthesize_speech(self, text: str, settings: AppSettings) -> AudioBuffer:
        """Turn ``text`` into decoded audio.

        Input beyond ``cfg.max_speech_chars`` is truncated before sending.
        """
        tts = settings.tts
        zh = settings.is_chinese
        logger.info(
            "Starting Speech Generation",
            extra={"provider": tts.provider, "model": tts.model, "voice": tts.voice},
        )
        if not text or not text.strip():
            raise _input_error("没有可朗读的内容" if zh else "There is no text to read aloud")
        api_key = get_tts_api_key(settings)
        if not api_key:
            raise _input_error("请配置 TTS API Key" if zh else "Please configure TTS API Key")
        provider = self.provider(tts.provider)

        limit = self.cfg.max_speech_chars
        if len(text) > limit:
            logger.warning(f"Input text too long ({len(text)} chars), truncating to {limit}")
            text = text[:limit]

        return await self._generate(
            provider,
            "speech",
            lambda: provider.synthesize(text, tts, api_key, settings.language),
            settings.language,
        )

    async def _generate(self, provider: AIProvider, action: str, operation, language: str):
        try:
            return await with_retry(
                operation,
                retries=self.cfg.retries,
                delay=self.cfg.initial_retry_delay_seconds,
                sleep=self._sleep,
            )
        except ContentBlockedError as exc:
            logger.error(f"{provider.label} {action} blocked", extra={"provider": provider.name, "code": exc.code})
            raise
        except _PROVIDER_FAILURES as exc:
            logger.error(f"{provider.label} {action} error", extra={"provider": provider.name, "error": str(exc)})
            if "SAFETY" in str(exc):
                raise ContentBlockedError(
                    content_blocked_message(language),
                    provider=provider.name,
                    status_code=getattr(exc, "status_code", None),
                ) from exc
            raise _qualified(provider, f"{action} error", exc) from exc


def _input_error(message: str) -> InputError:
    logger.warning("Rejected request", extra={"reason": message})
    return InputError(message)


def _qualified(provider: AIProvider, what: str, exc: Exception) -> ProviderError:
    return ProviderError(
        f"{provider.label} {what}: {redact_text(str(exc))}",
        provider=provider.name,
        status_code=getattr(exc, "status_code", None),
        code=getattr(exc, "code", None),
    )
