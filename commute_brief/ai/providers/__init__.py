"""Provider implementations for summarization and speech."""

from .base import AIProvider
from .factory import available_providers, create_provider
from .gemini import GeminiClient, GeminiProvider
from .openai_compatible import OpenAICompatibleProvider

__all__ = [
    "AIProvider",
    "GeminiClient",
    "GeminiProvider",
    "OpenAICompatibleProvider",
    "create_provider",
    "available_providers",
]
