"""Tests for storyreel.timeline.playback module."""

from __future__ import annotations

import asyncio

import pytest

from storyreel.timeline.engine import EditEngine
from storyreel.timeline.models import TimelineItem
from storyreel.timeline.playback import Clock, PlaybackSynchronizer, SilentAudioHandle


@pytest.fixture
def narrated() -> EditEngine:
    return EditEngine(
        [
            TimelineItem(id="a", duration_seconds=4, text="First", audio_ref="a.mp3"),
            TimelineItem(id="b", duration_seconds=4, text="Second", audio_ref="b.mp3"),
            TimelineItem(id="c", duration_seconds=4, text="Silent"),
        ]
    )


class TestClock:
    def test_advance(self) -> None:
        assert Clock().advance(1.0) == pytest.approx(1.1)
        assert Clock(0.5).advance(1.0) == 1.5


class TestTick:
    def test_advances_while_playing(self, engine: EditEngine, audio_handle) -> None:
        sync = PlaybackSynchronizer(engine, audio_handle)
        sync.play()
        sync.tick()
        assert engine.playback.current_time == pytest.approx(0.1)

    def test_does_nothing_when_stopped(self, engine: EditEngine, audio_handle) -> None:
        sync = PlaybackSynchronizer(engine, audio_handle)
        sync.tick()
        assert engine.playback.current_time == 0.0

    def test_wraps_to_start_at_end(self, engine: EditEngine, audio_handle) -> None:
        engine.seek(engine.content_duration - 0.05)
        sync = PlaybackSynchronizer(engine, audio_handle)
        sync.play()
        sync.tick()
        assert not sync.is_playing
        assert engine.playback.current_time == 0.0

    def test_reentrant_tick_is_ignored(self, engine: EditEngine, audio_handle) -> None:
        sync = PlaybackSynchronizer(engine, audio_handle)
        sync.play()
        sync._ticking = True
        sync.tick()
        assert engine.playback.current_time == 0.0

    def test_toggle(self, engine: EditEngine, audio_handle) -> None:
        sync = PlaybackSynchronizer(engine, audio_handle)
        sync.toggle()
        assert sync.is_playing
        sync.toggle()
        assert not sync.is_playing


class TestAudioSync:
    def test_binds_active_item_audio(self, narrated: EditEngine, audio_handle) -> None:
        narrated.seek(1.0)
        sync = PlaybackSynchronizer(narrated, audio_handle)
        sync.play()
        assert audio_handle.source == "a.mp3"
        assert audio_handle.seeks == [1.0]
        assert not audio_handle.paused

    def test_small_drift_is_tolerated(self, narrated: EditEngine, audio_handle) -> None:
        narrated.seek(1.0)
        sync = PlaybackSynchronizer(narrated, audio_handle)
        sync.play()
        audio_handle.position = 0.9
        sync.tick()
        assert audio_handle.seeks == [1.0]

    def test_large_drift_forces_seek(self, narrated: EditEngine, audio_handle) -> None:
        narrated.seek(1.0)
        sync = PlaybackSynchronizer(narrated, audio_handle)
        sync.play()
        audio_handle.position = 0.75
        sync.tick()
        assert len(audio_handle.seeks) == 2
        assert audio_handle.seeks[-1] == pytest.approx(1.1)

    def test_rebinds_on_item_change(self, narrated: EditEngine, audio_handle) -> None:
        narrated.seek(3.95)
        sync = PlaybackSynchronizer(narrated, audio_handle)
        sync.play()
        sync.tick()
        assert sync.active_item.id == "b"
        assert audio_handle.source == "b.mp3"
        assert audio_handle.seeks[-1] == pytest.approx(0.05)

    def test_pauses_on_item_without_audio(self, narrated: EditEngine, audio_handle) -> None:
        narrated.seek(7.95)
        sync = PlaybackSynchronizer(narrated, audio_handle)
        sync.play()
        assert not audio_handle.paused
        sync.tick()
        assert sync.active_item.id == "c"
        assert audio_handle.paused

    def test_pause_stops_audio(self, narrated: EditEngine, audio_handle) -> None:
        sync = PlaybackSynchronizer(narrated, audio_handle)
        sync.play()
        sync.pause()
        assert audio_handle.paused


class TestRun:
    def test_runs_until_end(self, audio_handle) -> None:
        engine = EditEngine([TimelineItem(id="a", duration_seconds=0.2)])
        sync = PlaybackSynchronizer(engine, audio_handle, clock=Clock(0.05))
        ticks = []
        sync.play()
        asyncio.run(sync.run(on_tick=lambda: ticks.append(engine.playback.current_time)))
        assert len(ticks) >= 4
        assert not sync.is_playing
        assert engine.playback.current_time == 0.0

    def test_external_stop_pauses_audio(self, narrated: EditEngine, audio_handle) -> None:
        sync = PlaybackSynchronizer(narrated, audio_handle, clock=Clock(0.01))
        sync.play()
        assert not audio_handle.paused
        asyncio.run(sync.run(on_tick=lambda: narrated.set_playing(False)))
        assert audio_handle.paused


class TestSilentAudioHandle:
    def test_position_follows_seek_and_pause(self) -> None:
        handle = SilentAudioHandle()
        handle.load("x.mp3")
        handle.seek(2.0)
        assert handle.position == 2.0
        handle.play()
        handle.pause()
        assert handle.paused
        assert handle.position >= 2.0
