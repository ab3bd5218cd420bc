"""Provider factory and registry for hot-swappable AI backends."""

from __future__ import annotations

import httpx

from ...config import AIConfig
from .base import AIProvider
from .gemini import GeminiProvider
from .openai_compatible import OpenAICompatibleProvider


ProviderBuilder = type[AIProvider]

_PROVIDER_REGISTRY: dict[str, ProviderBuilder] = {
    "gemini": GeminiProvider,
    "openai": OpenAICompatibleProvider,
    "openai_compatible": OpenAICompatibleProvider,
    "openai-compatible": OpenAICompatibleProvider,
}


def available_providers() -> list[str]:
    """Return the set of registered provider names."""
    return sorted(_PROVIDER_REGISTRY.keys())


def create_provider(
    name: str,
    cfg: AIConfig,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AIProvider:
    """Build a provider instance from its registry name."""
    builder = _PROVIDER_REGISTRY.get((name or "").lower().strip())
    if builder is None:
        supported = ", ".join(available_providers())
        raise ValueError(f"Unsupported provider: {name}. Supported: {supported}")
    return builder(cfg, transport)
