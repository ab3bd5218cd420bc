"""Tests for the briefing session glue."""

import asyncio

import numpy as np
import pytest

from commute_brief.ai.errors import InputError
from commute_brief.audio.buffer import AudioBuffer
from commute_brief.config import AppSettings
from commute_brief.core.types import HistoryItem
from commute_brief.history import HistoryStore
from commute_brief.session import BriefingSession, strip_bold
from commute_brief.storage import MemoryStore


class _FakeAI:
    """Stands in for AIService; ``gates`` hold back chosen summaries."""

    def __init__(self):
        self.summarized = []
        self.spoken = []
        self.gates = {}
        self.speech_gate = None

    async def summarize(self, text, settings):
        self.summarized.append(text)
        gate = self.gates.get(text)
        if gate is not None:
            await gate.wait()
        return f"**{text}** summary"

    async def synthesize_speech(self, text, settings):
        self.spoken.append(text)
        if self.speech_gate is not None:
            await self.speech_gate.wait()
        return AudioBuffer(samples=np.zeros(200, dtype=np.float32), sample_rate=100)


def _session(ai):
    return BriefingSession(AppSettings(), ai, history=HistoryStore(MemoryStore()))


def test_stale_summary_is_discarded():
    async def scenario():
        ai = _FakeAI()
        ai.gates["slow"] = asyncio.Event()
        session = _session(ai)

        slow = asyncio.create_task(session.generate_summary("slow"))
        await asyncio.sleep(0)
        fast = await session.generate_summary("fast")
        ai.gates["slow"].set()

        assert await slow is None
        assert fast == "**fast** summary"
        assert session.summary == fast
        assert [item.original_text for item in session.history.items()] == ["fast"]

    asyncio.run(scenario())


def test_unchanged_input_reuses_summary():
    async def scenario():
        ai = _FakeAI()
        session = _session(ai)
        first = await session.generate_summary("news")
        second = await session.generate_summary("news")

        assert first == second
        assert ai.summarized == ["news"]

    asyncio.run(scenario())


def test_audio_is_generated_from_plain_summary_and_loaded():
    async def scenario():
        ai = _FakeAI()
        session = _session(ai)

        buffer = await session.brief("news")

        assert ai.spoken == ["news summary"]
        assert session.audio is buffer
        assert session.player.buffer is buffer
        assert session.player.play() is True
        session.player.close()

    asyncio.run(scenario())


def test_audio_requires_summary():
    session = _session(_FakeAI())

    with pytest.raises(InputError):
        asyncio.run(session.generate_audio())


def test_new_summary_invalidates_pending_audio():
    async def scenario():
        ai = _FakeAI()
        session = _session(ai)
        await session.generate_summary("first")
        ai.speech_gate = asyncio.Event()

        pending = asyncio.create_task(session.generate_audio())
        await asyncio.sleep(0)
        session.cancel()
        ai.speech_gate.set()

        assert await pending is None
        assert session.player.buffer is None

    asyncio.run(scenario())


def test_restore_history_item():
    ai = _FakeAI()
    session = _session(ai)
    item = HistoryItem(id="1", title="t", original_text="orig", summary="**s**", timestamp=1)

    session.restore(item)

    assert session.summary == "**s**"
    asyncio.run(session.generate_summary("orig"))
    assert ai.summarized == []


def test_strip_bold():
    assert strip_bold("**Big** move in **markets**") == "Big move in markets"
