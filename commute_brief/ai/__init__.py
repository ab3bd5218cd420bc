"""
AI orchestration: summarization, speech synthesis and model discovery.
"""

from .errors import BriefError, ContentBlockedError, InputError, ProviderError, is_retryable
from .retry import with_retry
from .service import AIService

__all__ = [
    "AIService",
    "BriefError",
    "ContentBlockedError",
    "InputError",
    "ProviderError",
    "is_retryable",
    "with_retry",
]
