"""
Commute Brief - news-to-audio briefing library.

Feed articles are normalized into clean text, summarized by a pluggable LLM
provider, synthesized to speech, and played back with exact pause/resume.

Example:
    >>> session = BriefingSession(AppSettings(), AIService())
    >>> await session.brief(text)
    >>> session.player.play()
"""

__all__ = [
    "__version__",
    "AIService",
    "AppConfig",
    "AppSettings",
    "build_app",
    "BriefingSession",
    "HistoryStore",
    "SettingsStore",
    "load_config",
]
__version__ = "0.1.0"

from .ai.service import AIService
from .app import build_app
from .config import AppConfig, AppSettings, load_config
from .history import HistoryStore, SettingsStore
from .session import BriefingSession
