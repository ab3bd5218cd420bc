"""
Error taxonomy for the AI orchestration layer.

- InputError: bad caller input (empty text, missing credentials); never retried
- ProviderError: a provider call failed; transient when network or 5xx
- ContentBlockedError: the provider's safety filter rejected the content

``is_retryable`` is the single place that decides between transient and
permanent failures.
"""

from __future__ import annotations

import json
from typing import Any

import httpx


class BriefError(Exception):
    """Base class for all errors raised by commute_brief."""


class InputError(BriefError):
    """Invalid input detected before any network call."""


class ProviderError(BriefError):
    """A provider call failed.

    Attributes:
        provider: Provider name ("gemini", "openai")
        status_code: HTTP status, or None for network or payload errors
        code: Provider-specific error code from the error body, if any
    """

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None,
        code: Any = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.code = code


class ContentBlockedError(ProviderError):
    """The provider refused the content on safety grounds."""


# UnsupportedProtocol and LocalProtocolError mean a malformed request and fail at once
_TRANSIENT_TRANSPORT_ERRORS = (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)


def is_retryable(exc: BaseException) -> bool:
    """Return True for network-class failures and 5xx provider responses."""
    if isinstance(exc, ContentBlockedError):
        return False
    if isinstance(exc, _TRANSIENT_TRANSPORT_ERRORS):
        return True
    if isinstance(exc, ProviderError) and exc.status_code is not None:
        return 500 <= exc.status_code < 600
    return False


INVALID_VOICE_CODE = 20047


def error_from_response(resp: httpx.Response, provider: str) -> ProviderError:
    """Build a ProviderError from a non-2xx response.

    The message comes from the structured error body when present,
    otherwise from the first 200 characters of the raw text.
    """
    raw = resp.text or ""
    message = raw[:200] or resp.reason_phrase or f"HTTP {resp.status_code}"
    code = None
    try:
        body = json.loads(raw) if raw else {}
    except ValueError:
        body = {}
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            message = error.get("message") or message
            code = error.get("code")
        elif isinstance(body.get("message"), str):
            message = body["message"]
        if body.get("code") is not None:
            code = body.get("code")
    return ProviderError(
        f"HTTP {resp.status_code}: {message}",
        provider=provider,
        status_code=resp.status_code,
        code=code,
    )


def is_invalid_voice(exc: ProviderError) -> bool:
    return exc.code == INVALID_VOICE_CODE or "invalid voice" in str(exc).lower()


def invalid_voice_message(voice: str, model: str, language: str) -> str:
    if language == "zh-CN":
        return f"无效的音色：模型 '{model}' 不支持 '{voice}'。可尝试：alex、anna、bella、claire、david 等。"
    return f"Invalid Voice: '{voice}' is not supported by model '{model}'. Try: alex, anna, bella, claire, david..."


def content_blocked_message(language: str) -> str:
    if language == "zh-CN":
        return "内容被安全过滤器拦截。"
    return "Content blocked by safety filters."
