"""
storyreel.timeline.playback - Playback clock and audio synchronization.

While playing, a fixed-period tick advances the play-head by one period.
Reaching the end of the content stops playback and rewinds to zero. After
every tick the external audio handle is kept bound to the active item's
narration and re-seeked only when it drifts more than the threshold.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import Protocol

from storyreel.logging import get_logger
from storyreel.timeline.engine import EditEngine
from storyreel.timeline.models import TimelineItem

logger = get_logger("playback")

TICK_SECONDS = 0.1
DRIFT_THRESHOLD = 0.3


class AudioHandle(Protocol):
    """An external audio renderer owned by the synchronizer."""

    @property
    def source(self) -> str | None: ...

    @property
    def position(self) -> float: ...

    @property
    def paused(self) -> bool: ...

    def load(self, ref: str) -> None: ...

    def seek(self, seconds: float) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...


class SilentAudioHandle:
    """Headless audio handle whose position follows the wall clock while playing."""

    def __init__(self) -> None:
        self.source: str | None = None
        self.paused = True
        self._offset = 0.0
        self._started_at: float | None = None

    @property
    def position(self) -> float:
        if self._started_at is None:
            return self._offset
        return self._offset + (time.monotonic() - self._started_at)

    def load(self, ref: str) -> None:
        self.source = ref
        self._offset = 0.0
        if self._started_at is not None:
            self._started_at = time.monotonic()

    def seek(self, seconds: float) -> None:
        self._offset = max(0.0, seconds)
        if self._started_at is not None:
            self._started_at = time.monotonic()

    def play(self) -> None:
        if self.paused:
            self.paused = False
            self._started_at = time.monotonic()

    def pause(self) -> None:
        if not self.paused:
            self._offset = self.position
            self._started_at = None
            self.paused = True


class Clock:
    """Advances play-head time by a fixed period per tick."""

    def __init__(self, period: float = TICK_SECONDS) -> None:
        self.period = period

    def advance(self, current: float) -> float:
        return current + self.period


class PlaybackSynchronizer:
    """Drives the clock during playback and keeps audio aligned.

    Args:
        engine: Edit engine owning the play-head
        audio: Audio handle, touched by nothing else
        clock: Tick source
        drift_threshold: Seconds of audio drift tolerated before a hard seek
    """

    def __init__(
        self,
        engine: EditEngine,
        audio: AudioHandle,
        clock: Clock | None = None,
        drift_threshold: float = DRIFT_THRESHOLD,
    ) -> None:
        self.engine = engine
        self.audio = audio
        self.clock = clock or Clock()
        self.drift_threshold = drift_threshold
        self._ticking = False

    @property
    def is_playing(self) -> bool:
        return self.engine.playback.is_playing

    @property
    def active_item(self) -> TimelineItem | None:
        hit = self.engine.item_under_playhead()
        return hit[0] if hit else None

    def play(self) -> None:
        self.engine.set_playing(True)
        self.sync_audio()

    def pause(self) -> None:
        self.engine.set_playing(False)
        self.sync_audio()

    def toggle(self) -> None:
        if self.is_playing:
            self.pause()
        else:
            self.play()

    def tick(self) -> None:
        """Advance one period. Ignored if a previous tick is still running."""
        if self._ticking:
            return
        self._ticking = True
        try:
            if self.is_playing:
                new_time = self.clock.advance(self.engine.playback.current_time)
                if new_time >= self.engine.content_duration:
                    logger.debug("Reached end of content at %.2fs", new_time)
                    self.engine.set_playing(False)
                    self.engine.seek(0.0)
                else:
                    self.engine.seek(new_time)
            self.sync_audio()
        finally:
            self._ticking = False

    def sync_audio(self) -> None:
        """Bind, seek, play or pause the audio handle for the current play-head."""
        hit = self.engine.item_under_playhead() if self.is_playing else None
        if hit is None or hit[0].audio_ref is None:
            if not self.audio.paused:
                self.audio.pause()
            return

        item, start = hit
        expected = self.engine.playback.current_time - start

        if self.audio.source != item.audio_ref:
            logger.debug("Binding audio for %s at %.2fs", item.id, expected)
            self.audio.load(item.audio_ref)
            self.audio.seek(expected)
            self.audio.play()
            return

        if self.audio.paused:
            self.audio.play()
        if abs(self.audio.position - expected) > self.drift_threshold:
            logger.debug("Audio drifted to %.2fs, resyncing to %.2fs", self.audio.position, expected)
            self.audio.seek(expected)

    async def run(self, on_tick: Callable[[], None] | None = None) -> None:
        """Tick every clock period until playback stops."""
        while self.is_playing:
            await asyncio.sleep(self.clock.period)
            self.tick()
            if on_tick is not None:
                on_tick()
        self.sync_audio()
