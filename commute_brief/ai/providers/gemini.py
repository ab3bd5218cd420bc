"""Google Gemini provider: summarization and speech through generateContent."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ...audio.buffer import PCM_SAMPLE_RATE, AudioBuffer, decode_base64_pcm
from ...config import LLMSettings, TTSSettings
from ..errors import ContentBlockedError, ProviderError, content_blocked_message, error_from_response
from ..prompts import build_inline_summary_prompt
from .base import AIProvider

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-3-flash-preview"
DEFAULT_SPEECH_MODEL = "gemini-2.5-flash-preview-tts"
DEFAULT_VOICE = "Kore"

_BLOCKING_FINISH_REASONS = {"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII"}


class GeminiClient:
    """Thin client for the Gemini ``generateContent`` endpoint.

    Authentication is by API key only; the base URL is fixed.
    """

    BASE_URL = "https://generativelanguage.googleapis.com"

    def __init__(
        self,
        api_key: str,
        timeout: float = 60.0,
        trust_env: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("Missing Google API key")
        self.api_key = api_key
        self.timeout = timeout
        self.trust_env = trust_env
        self._transport = transport

    async def generate_content(
        self,
        model: str,
        contents: list[dict[str, Any]],
        generation_config: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.BASE_URL}/v1beta/models/{model}:generateContent"
        payload: dict[str, Any] = {"contents": contents}
        if generation_config:
            payload["generationConfig"] = generation_config
        async with httpx.AsyncClient(
            timeout=self.timeout, trust_env=self.trust_env, transport=self._transport
        ) as client:
            resp = await client.post(url, params={"key": self.api_key}, json=payload)
        if not resp.is_success:
            raise error_from_response(resp, "gemini")
        return resp.json()


class GeminiProvider(AIProvider):
    """Gemini-backed provider; discovery uses curated static lists."""

    name = "gemini"
    label = "Gemini"
    fallback_models = [
        "gemini-3-flash-preview",
        "gemini-3-pro-preview",
        "gemini-2.5-flash-latest",
        "gemini-2.5-flash-image",
    ]
    fallback_speech_models = [DEFAULT_SPEECH_MODEL]
    fallback_voices = ["Kore", "Puck", "Charon", "Fenrir", "Zephyr"]

    def client(self, api_key: str) -> GeminiClient:
        return GeminiClient(
            api_key,
            timeout=self.cfg.timeout_seconds,
            trust_env=self.cfg.trust_env,
            transport=self._transport,
        )

    async def list_models(self, llm: LLMSettings) -> list[str]:
        return list(self.fallback_models)

    async def list_speech_models(self, tts: TTSSettings, api_key: str) -> list[str]:
        return list(self.fallback_speech_models)

    async def list_voices(self, tts: TTSSettings, api_key: str) -> list[str]:
        return list(self.fallback_voices)

    async def test_connection(self, llm: LLMSettings) -> str:
        data = await self.client(llm.api_key).generate_content(
            llm.model or DEFAULT_MODEL,
            [{"role": "user", "parts": [{"text": "Hello"}]}],
        )
        return _extract_text(data) or "OK"

    async def test_speech(self, tts: TTSSettings, api_key: str, language: str) -> str:
        await self.synthesize("Test", tts, api_key, language)
        return "OK"

    async def summarize(self, text: str, llm: LLMSettings, language: str) -> str:
        prompt = build_inline_summary_prompt(language, text)
        data = await self.client(llm.api_key).generate_content(
            llm.model or DEFAULT_MODEL,
            [{"role": "user", "parts": [{"text": prompt}]}],
            {"temperature": 0.7},
        )
        _raise_if_blocked(data, language)
        content = _extract_text(data)
        logger.info("Gemini Summary Success", extra={"result_length": len(content)})
        return content

    async def synthesize(self, text: str, tts: TTSSettings, api_key: str, language: str) -> AudioBuffer:
        data = await self.client(api_key).generate_content(
            tts.model or DEFAULT_SPEECH_MODEL,
            [{"parts": [{"text": text}]}],
            {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": tts.voice or DEFAULT_VOICE}},
                },
            },
        )
        _raise_if_blocked(data, language)
        encoded = _extract_inline_audio(data)
        if not encoded:
            raise ProviderError("No audio data received", provider=self.name)
        return decode_base64_pcm(encoded, sample_rate=PCM_SAMPLE_RATE, channels=1)


def _extract_text(data: dict[str, Any]) -> str:
    """Join the text parts of the first candidate, skipping thought parts.

    When every part is a thought, all of them are joined instead.
    """
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    texts = [p.get("text", "") for p in parts if isinstance(p, dict) and not p.get("thought")]
    if not any(texts):
        texts = [p.get("text", "") for p in parts if isinstance(p, dict)]
    return "".join(texts)


def _extract_inline_audio(data: dict[str, Any]) -> str | None:
    try:
        part = data["candidates"][0]["content"]["parts"][0]
    except (KeyError, IndexError, TypeError):
        return None
    inline = part.get("inlineData") or part.get("inline_data") or {}
    return inline.get("data")


def _raise_if_blocked(data: dict[str, Any], language: str) -> None:
    feedback = data.get("promptFeedback") or {}
    reason = feedback.get("blockReason")
    if not reason:
        candidates = data.get("candidates") or []
        if candidates and isinstance(candidates[0], dict):
            finish = candidates[0].get("finishReason")
            if finish in _BLOCKING_FINISH_REASONS:
                reason = finish
    if reason:
        raise ContentBlockedError(content_blocked_message(language), provider="gemini", code=reason)
