"""Tests for the playback engine state machine."""

import asyncio

import numpy as np
import pytest

from commute_brief.audio.buffer import AudioBuffer
from commute_brief.audio.player import AudioSink, ManualClock, PlaybackEngine, PlaybackStatus


class _Handle:
    def __init__(self):
        self.stopped = False

    def stop(self):
        self.stopped = True


class _FakeSink(AudioSink):
    """Records every started source; tests fire ``on_ended`` by hand."""

    def __init__(self):
        self.starts = []

    def start(self, buffer, offset, on_ended):
        handle = _Handle()
        self.starts.append((offset, on_ended, handle))
        return handle


def _buffer(seconds=10.0, rate=100):
    return AudioBuffer(samples=np.zeros(int(seconds * rate), dtype=np.float32), sample_rate=rate)


def _engine(**kwargs):
    clock = ManualClock()
    sink = _FakeSink()
    return PlaybackEngine(clock=clock, sink=sink, **kwargs), clock, sink


def test_pause_resume_and_natural_end():
    async def scenario():
        engine, clock, sink = _engine()
        engine.load(_buffer(10.0))

        assert engine.play() is True
        clock.advance(2.0)
        engine.pause()

        assert engine.state is PlaybackStatus.PAUSED
        assert engine.paused_at == pytest.approx(2.0)
        assert sink.starts[0][2].stopped

        engine.play()
        assert sink.starts[1][0] == pytest.approx(2.0)
        clock.advance(8.0)
        sink.starts[1][1]()

        assert engine.state is PlaybackStatus.ENDED
        assert engine.paused_at == 0.0
        assert engine.progress == 0.0

    asyncio.run(scenario())


def test_stale_end_signal_is_ignored():
    async def scenario():
        engine, clock, sink = _engine()
        engine.load(_buffer(10.0))
        engine.play()
        clock.advance(1.0)
        engine.pause()

        sink.starts[0][1]()

        assert engine.state is PlaybackStatus.PAUSED
        assert engine.paused_at == pytest.approx(1.0)

    asyncio.run(scenario())


def test_early_end_keeps_stored_offset():
    async def scenario():
        engine, clock, sink = _engine()
        engine.load(_buffer(10.0))
        engine.play()
        clock.advance(2.0)
        engine.pause()
        engine.play()
        clock.advance(1.0)
        sink.starts[1][1]()

        assert engine.state is PlaybackStatus.ENDED
        assert engine.paused_at == pytest.approx(2.0)

    asyncio.run(scenario())


def test_play_without_buffer_returns_false():
    engine, _, sink = _engine()

    assert engine.play() is False
    assert sink.starts == []
    assert engine.state is PlaybackStatus.IDLE


def test_play_while_playing_is_noop():
    async def scenario():
        engine, _, sink = _engine()
        engine.load(_buffer())
        engine.play()
        engine.play()
        assert len(sink.starts) == 1

    asyncio.run(scenario())


def test_offset_past_end_restarts_from_zero():
    async def scenario():
        engine, clock, sink = _engine()
        engine.load(_buffer(10.0))
        engine.play()
        clock.advance(12.0)
        engine.pause()
        assert engine.paused_at == pytest.approx(10.0)

        engine.play()
        assert sink.starts[1][0] == 0.0

    asyncio.run(scenario())


def test_loading_new_buffer_resets_position():
    async def scenario():
        engine, clock, sink = _engine()
        engine.load(_buffer(10.0))
        engine.play()
        clock.advance(4.0)
        engine.pause()

        engine.load(_buffer(5.0))

        assert engine.state is PlaybackStatus.IDLE
        assert engine.paused_at == 0.0
        engine.play()
        assert sink.starts[-1][0] == 0.0

    asyncio.run(scenario())


def test_progress_is_sampled_while_playing():
    async def scenario():
        seen = []
        engine, clock, _ = _engine(progress_interval=0.001, on_progress=seen.append)
        engine.load(_buffer(10.0))
        engine.play()
        clock.advance(5.0)
        await asyncio.sleep(0)

        assert engine.progress == pytest.approx(50.0)
        assert engine.position == pytest.approx(5.0)
        engine.pause()
        await asyncio.sleep(0.01)
        assert seen[-1] == pytest.approx(50.0)

    asyncio.run(scenario())


def test_toggle_and_snapshot():
    async def scenario():
        engine, clock, _ = _engine()
        engine.load(_buffer(10.0))

        assert engine.toggle() is True
        assert engine.snapshot().is_playing
        clock.advance(3.0)
        assert engine.toggle() is False

        state = engine.snapshot()
        assert state.state is PlaybackStatus.PAUSED
        assert state.paused_at == pytest.approx(3.0)
        assert state.progress == pytest.approx(30.0)

    asyncio.run(scenario())


def test_close_stops_source_and_cancels_progress():
    async def scenario():
        engine, _, sink = _engine()
        engine.load(_buffer())
        with engine:
            engine.play()
            task = engine._task
        await asyncio.sleep(0)

        assert sink.starts[0][2].stopped
        assert task.cancelled() or task.done()

    asyncio.run(scenario())


def test_timed_sink_signals_natural_end():
    async def scenario():
        engine = PlaybackEngine(progress_interval=0.005)
        engine.load(_buffer(0.02))
        engine.play()
        await asyncio.sleep(0.1)

        assert engine.state is PlaybackStatus.ENDED
        assert engine.paused_at == 0.0

    asyncio.run(scenario())


def test_close_while_playing_leaves_engine_paused():
    async def scenario():
        engine, clock, sink = _engine()
        engine.load(_buffer(10.0))
        engine.play()
        clock.advance(3.0)

        engine.close()

        assert engine.state is PlaybackStatus.PAUSED
        assert not engine.is_playing
        assert engine.paused_at == pytest.approx(3.0)

        assert engine.play() is True
        assert len(sink.starts) == 2
        assert sink.starts[1][0] == pytest.approx(3.0)
        engine.close()

    asyncio.run(scenario())
