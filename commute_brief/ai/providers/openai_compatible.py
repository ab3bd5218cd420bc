"""OpenAI-compatible provider (OpenAI, SiliconFlow, DeepSeek and similar)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ...audio.buffer import AudioBuffer, decode_container
from ...config import LLMSettings, TTSSettings
from ..errors import (
    ContentBlockedError,
    ProviderError,
    content_blocked_message,
    error_from_response,
    invalid_voice_message,
    is_invalid_voice,
)
from ..prompts import build_summary_prompt
from .base import AIProvider

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-3.5-turbo"
DEFAULT_SPEECH_MODEL = "tts-1"
DEFAULT_VOICE = "alloy"

# Undocumented voice-listing paths seen across compatible vendors, tried in order
VOICE_PATHS = ["/audio/voices", "/voices", "/v1/audio/voices", "/v1/voices"]

_SPEECH_MODEL_MARKERS = ("tts", "speech", "audio", "fish")


def base_url_of(base_url: str) -> str:
    return (base_url or DEFAULT_BASE_URL).rstrip("/")


class OpenAICompatibleProvider(AIProvider):
    """Provider speaking the OpenAI REST dialect against a configurable base URL."""

    name = "openai"
    label = "OpenAI-compatible"
    fallback_models = ["gpt-3.5-turbo", "gpt-4o", "deepseek-chat", "deepseek-ai/DeepSeek-V3"]
    fallback_speech_models = ["tts-1", "tts-1-hd", "fish-speech-1.5", "fish-speech-1.4", "fish-speech-1.2"]
    fallback_voices = [
        # OpenAI
        "alloy", "echo", "fable", "onyx", "nova", "shimmer",
        # Fish Audio (full IDs)
        "fishaudio/fish-speech-1.5:alex",
        "fishaudio/fish-speech-1.5:anna",
        "fishaudio/fish-speech-1.5:bella",
        "fishaudio/fish-speech-1.5:benjamin",
        "fishaudio/fish-speech-1.5:charles",
        "fishaudio/fish-speech-1.5:claire",
        "fishaudio/fish-speech-1.5:david",
        "fishaudio/fish-speech-1.5:dinah",
        # CosyVoice (full IDs)
        "FunAudioLLM/CosyVoice2-0.5B:anna",
        "FunAudioLLM/CosyVoice2-0.5B:isabella",
        "FunAudioLLM/CosyVoice2-0.5B:ralph",
        "FunAudioLLM/CosyVoice2-0.5B:benjamin",
        # short names
        "alex", "anna", "bella", "benjamin", "charles", "claire", "david", "dinah",
    ]

    async def list_models(self, llm: LLMSettings) -> list[str]:
        models = await self._fetch_model_ids(llm.base_url, llm.api_key)
        return sorted(models)

    async def list_speech_models(self, tts: TTSSettings, api_key: str) -> list[str]:
        models = await self._fetch_model_ids(tts.base_url, api_key)
        return sorted(m for m in models if any(marker in m.lower() for marker in _SPEECH_MODEL_MARKERS))

    async def list_voices(self, tts: TTSSettings, api_key: str) -> list[str]:
        """Probe the candidate voice endpoints; the first non-empty list wins.

        Needs both a custom base URL and a key; otherwise nothing is probed.
        """
        if not (tts.base_url and api_key):
            return []
        base = base_url_of(tts.base_url)
        async with self._client(headers=_auth(api_key)) as client:
            for path in VOICE_PATHS:
                url = f"{base}{path}"
                try:
                    resp = await client.get(url)
                    if not resp.is_success:
                        continue
                    voices = _parse_voices(resp.json())
                except (httpx.HTTPError, ValueError):
                    continue
                if voices:
                    logger.info(f"Fetched {len(voices)} voices from {url}")
                    return voices
        return []

    async def test_connection(self, llm: LLMSettings) -> str:
        url = f"{base_url_of(llm.base_url)}/chat/completions"
        async with self._client(headers=_auth(llm.api_key)) as client:
            resp = await client.post(
                url,
                json={
                    "model": llm.model or DEFAULT_MODEL,
                    "messages": [{"role": "user", "content": "Hello"}],
                    "max_tokens": 5,
                },
            )
        if not resp.is_success:
            raise error_from_response(resp, self.name)
        return "OK"

    async def test_speech(self, tts: TTSSettings, api_key: str, language: str) -> str:
        await self._request_speech("Hello", tts, api_key, language)
        return "OK"

    async def summarize(self, text: str, llm: LLMSettings, language: str) -> str:
        url = f"{base_url_of(llm.base_url)}/chat/completions"
        payload = {
            "model": llm.model or DEFAULT_MODEL,
            "messages": [
                {"role": "system", "content": build_summary_prompt(language)},
                {"role": "user", "content": text},
            ],
            "temperature": 0.7,
            "stream": False,
        }
        async with self._client(headers=_auth(llm.api_key)) as client:
            resp = await client.post(url, json=payload)
        if not resp.is_success:
            exc = error_from_response(resp, self.name)
            if exc.code == "content_filter":
                raise ContentBlockedError(
                    content_blocked_message(language),
                    provider=self.name,
                    status_code=exc.status_code,
                    code=exc.code,
                )
            raise exc

        data = resp.json()
        choice = (data.get("choices") or [{}])[0]
        if choice.get("finish_reason") == "content_filter":
            raise ContentBlockedError(content_blocked_message(language), provider=self.name, code="content_filter")
        content = (choice.get("message") or {}).get("content") or ""
        logger.info("LLM Generation Success", extra={"result_length": len(content)})
        return content

    async def synthesize(self, text: str, tts: TTSSettings, api_key: str, language: str) -> AudioBuffer:
        audio = await self._request_speech(text, tts, api_key, language)
        try:
            return decode_container(audio)
        except RuntimeError as exc:
            raise ProviderError(f"Could not decode audio: {exc}", provider=self.name) from exc

    async def _request_speech(self, text: str, tts: TTSSettings, api_key: str, language: str) -> bytes:
        url = f"{base_url_of(tts.base_url)}/audio/speech"
        body = {
            "model": tts.model or DEFAULT_SPEECH_MODEL,
            "input": text,
            "voice": tts.voice or DEFAULT_VOICE,
        }
        logger.info("Sending TTS Request", extra={"url": url, "model": body["model"], "voice": body["voice"]})
        async with self._client(headers=_auth(api_key)) as client:
            resp = await client.post(url, json=body)
        if not resp.is_success:
            exc = error_from_response(resp, self.name)
            if is_invalid_voice(exc):
                raise ProviderError(
                    invalid_voice_message(body["voice"], body["model"], language),
                    provider=self.name,
                    status_code=exc.status_code,
                    code=exc.code,
                ) from exc
            raise exc
        if not resp.content:
            raise ProviderError("Empty audio received", provider=self.name)
        return resp.content

    async def _fetch_model_ids(self, base_url: str, api_key: str) -> list[str]:
        url = f"{base_url_of(base_url)}/models"
        async with self._client(headers=_auth(api_key)) as client:
            resp = await client.get(url)
        if not resp.is_success:
            raise error_from_response(resp, self.name)
        data = resp.json()
        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise ProviderError("Invalid response format", provider=self.name)
        return [str(item["id"]) for item in items if isinstance(item, dict) and item.get("id")]


def _auth(api_key: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {api_key}"}


def _parse_voices(data: Any) -> list[str]:
    """Accept a bare list, ``{voices: [...]}`` or ``{data: [...]}``."""
    if isinstance(data, list):
        items = data
    elif isinstance(data, dict) and isinstance(data.get("voices"), list):
        items = data["voices"]
    elif isinstance(data, dict) and isinstance(data.get("data"), list):
        items = data["data"]
    else:
        return []
    voices = []
    for item in items:
        if isinstance(item, str):
            voices.append(item)
        elif isinstance(item, dict):
            value = item.get("id") or item.get("name")
            if value:
                voices.append(str(value))
    return voices
