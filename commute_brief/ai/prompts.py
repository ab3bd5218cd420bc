"""Prompt loading and rendering helpers for summarization."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path


_PROMPT_DIR = Path(__file__).resolve().parent.parent / "prompts"

DEFAULT_LANGUAGE = "zh-CN"


@lru_cache(maxsize=None)
def _load_template(name: str) -> str:
    path = _PROMPT_DIR / f"{name}.md"
    return path.read_text(encoding="utf-8").strip()


def build_summary_prompt(language: str) -> str:
    """Return the broadcast-summary instructions for the target language."""
    path = _PROMPT_DIR / f"summary_{language}.md"
    if not path.exists():
        language = DEFAULT_LANGUAGE
    return _load_template(f"summary_{language}")


def build_inline_summary_prompt(language: str, text: str) -> str:
    """Instructions and input in a single content string."""
    return f"{build_summary_prompt(language)}\n\n输入文本/Input Text:\n{text}"
