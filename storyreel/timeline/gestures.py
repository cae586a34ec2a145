"""
storyreel.timeline.gestures - Pointer and keyboard gesture interpretation.

Turns raw track-local pointer events into edit intents:

- pointer-down on an item starts a drag and seeks the play-head there
- pointer-down in the empty creation band starts a range selection
- dragging swaps the item with whatever it collides with, move by move
- releasing a selection longer than 0.5s inserts an empty block

Only the GeometryMapper converts pixels to seconds; everything here after
that point works in timeline seconds.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from storyreel.logging import get_logger
from storyreel.timeline.engine import MIN_BLOCK_SECONDS, SLIVER_SECONDS, EditEngine
from storyreel.timeline.geometry import GeometryMapper, zoom_in, zoom_out
from storyreel.timeline.models import DragState, Selection

logger = get_logger("gestures")

PLAY_PAUSE_KEYS = {" ", "Space"}
DELETE_KEYS = {"Delete", "Backspace"}


class GestureMode(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    SELECTING = "selecting"


@dataclass(frozen=True)
class PointerEvent:
    """Pointer position in track-local pixels."""

    x: float
    y: float


@dataclass(frozen=True)
class KeyEvent:
    key: str
    ctrl: bool = False
    meta: bool = False
    text_input_focused: bool = False

    @property
    def command(self) -> bool:
        return self.ctrl or self.meta


class GestureInterpreter:
    """Idle / Dragging / Selecting state machine over an EditEngine.

    Args:
        engine: Edit engine receiving the edit intents
        mapper: Pixel to time mapping for the track
        on_play_pause: Play/pause handler, typically
            ``PlaybackSynchronizer.toggle`` so the audio handle follows
    """

    def __init__(
        self,
        engine: EditEngine,
        mapper: GeometryMapper,
        on_play_pause: Callable[[], None] | None = None,
    ) -> None:
        self.engine = engine
        self.mapper = mapper
        self.on_play_pause = on_play_pause
        self.mode = GestureMode.IDLE
        self.mapper.zoom = engine.state.zoom

    def _time_at(self, event: PointerEvent) -> float:
        return self.mapper.time_at(event.x, self.engine.canvas_duration)

    def pointer_down(self, event: PointerEvent) -> GestureMode:
        time = self._time_at(event)
        hit = self.engine.item_at(time)

        if hit is not None:
            item, start = hit
            self.engine.set_drag(DragState(item_id=item.id, pointer_offset=time - start))
            self.engine.seek(time)
            self.mode = GestureMode.DRAGGING
        elif self.mapper.in_creation_band(event.y):
            self.engine.set_selection(Selection(start=time, end=time))
            self.mode = GestureMode.SELECTING
        else:
            self.mode = GestureMode.IDLE
        return self.mode

    def pointer_move(self, event: PointerEvent) -> None:
        if self.mode is GestureMode.DRAGGING:
            self._drag_to(event)
        elif self.mode is GestureMode.SELECTING:
            selection = self.engine.state.selection
            if selection is None or not self.mapper.contains(event.x, event.y):
                return
            self.engine.set_selection(Selection(start=selection.start, end=self._time_at(event)))

    def _drag_to(self, event: PointerEvent) -> None:
        drag = self.engine.state.drag
        if drag is None:
            return
        prospective_start = max(0.0, self._time_at(event) - drag.pointer_offset)
        collided = self.engine.find_collision(drag.item_id, prospective_start)
        if collided is not None:
            self.engine.reorder(drag.item_id, collided)

    def pointer_leave(self) -> None:
        """The pointer left the surface; a selection keeps its last in-bounds end."""
        logger.debug("Pointer left surface in mode %s", self.mode.value)

    def pointer_up(self, event: PointerEvent) -> None:
        if self.mode is GestureMode.DRAGGING:
            self.engine.set_drag(None)
        elif self.mode is GestureMode.SELECTING:
            selection = self.engine.state.selection
            if selection is not None:
                if selection.length > MIN_BLOCK_SECONDS:
                    self.engine.insert_block(selection.lower, selection.upper)
                else:
                    self.engine.seek(selection.lower)
            self.engine.set_selection(None)
        else:
            self.engine.seek(self._time_at(event))
            self.engine.set_selection(None)
        self.mode = GestureMode.IDLE

    def double_click(self, event: PointerEvent) -> bool:
        """Insert a default block at a free spot. Returns True if one was added."""
        time = self._time_at(event)
        if self.engine.item_at(time) is not None:
            return False
        return self.engine.insert_block(time, time + self.engine.default_block_seconds)

    def key_down(self, event: KeyEvent) -> bool:
        """Handle a global shortcut. Returns True when the key was consumed."""
        if event.text_input_focused:
            return False

        if event.key in PLAY_PAUSE_KEYS and not event.command:
            if self.on_play_pause is not None:
                self.on_play_pause()
            else:
                self.engine.set_playing(not self.engine.playback.is_playing)
            return True

        if event.key in DELETE_KEYS:
            selection = self.engine.state.selection
            if selection is not None and selection.length > SLIVER_SECONDS:
                self.engine.remove_range(selection.lower, selection.upper)
            else:
                hit = self.engine.item_under_playhead()
                if hit is not None:
                    self.engine.remove_item(hit[0].id)
            return True

        if event.command and event.key in ("=", "-"):
            zoom = self.engine.state.zoom
            self.mapper.zoom = self.engine.set_zoom(
                zoom_in(zoom) if event.key == "=" else zoom_out(zoom)
            )
            return True

        return False
