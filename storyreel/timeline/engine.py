"""
storyreel.timeline.engine - Timeline model and edit engine.

The EditEngine exclusively owns the EditorState. Gestures, playback and
asset fill-in never mutate items directly: they call the engine's edit
operations or submit id-scoped patches through ``apply_patch``. Edits
never raise; degenerate input is a no-op (or, for short selections, a seek).
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable, Sequence

from storyreel.logging import get_logger
from storyreel.timeline.geometry import canvas_duration, clamp_zoom
from storyreel.timeline.models import (
    ASSET_FIELDS,
    DragState,
    EditorState,
    PlaybackState,
    Selection,
    TimelineItem,
    content_duration,
    spans,
)

logger = get_logger("engine")

MIN_BLOCK_SECONDS = 0.5
SLIVER_SECONDS = 0.1
DEFAULT_BLOCK_SECONDS = 5.0


def new_item_id() -> str:
    return uuid.uuid4().hex[:8]


def _unique_id(candidate: str, taken: set[str]) -> str:
    if candidate not in taken:
        return candidate
    counter = 2
    while f"{candidate}_{counter}" in taken:
        counter += 1
    return f"{candidate}_{counter}"


def _fragment(item: TimelineItem, duration: float, item_id: str) -> TimelineItem:
    """A split piece of ``item``. Generated assets do not survive a split."""
    return item.model_copy(
        update={
            "id": item_id,
            "duration_seconds": duration,
            "image_ref": None,
            "audio_ref": None,
            "is_generating_audio": False,
            "is_generating_visual": False,
        }
    )


class EditEngine:
    """Single writer for the timeline and the rest of the editor state.

    Args:
        items: Initial timeline items
        default_block_seconds: Length of blocks created by double-click or
            the explicit insert affordance
        id_factory: Source of ids for new blocks
    """

    def __init__(
        self,
        items: Iterable[TimelineItem] | None = None,
        default_block_seconds: float = DEFAULT_BLOCK_SECONDS,
        id_factory: Callable[[], str] = new_item_id,
    ) -> None:
        self.state = EditorState(items=self._with_unique_ids(list(items or []), set()))
        self.default_block_seconds = default_block_seconds
        self._new_id = id_factory

    # Reads

    @property
    def items(self) -> tuple[TimelineItem, ...]:
        return tuple(self.state.items)

    @property
    def playback(self) -> PlaybackState:
        return self.state.playback

    @property
    def content_duration(self) -> float:
        return content_duration(self.state.items)

    @property
    def canvas_duration(self) -> float:
        return canvas_duration(self.state.items)

    def get(self, item_id: str) -> TimelineItem | None:
        for item in self.state.items:
            if item.id == item_id:
                return item
        return None

    def index_of(self, item_id: str) -> int:
        for i, item in enumerate(self.state.items):
            if item.id == item_id:
                return i
        return -1

    def start_of(self, item_id: str) -> float | None:
        for item, start, _ in spans(self.state.items):
            if item.id == item_id:
                return start
        return None

    def item_at(self, time: float) -> tuple[TimelineItem, float] | None:
        """First item whose ``[start, end)`` contains ``time``."""
        for item, start, end in spans(self.state.items):
            if start <= time < end:
                return item, start
        return None

    def item_under_playhead(self) -> tuple[TimelineItem, float] | None:
        return self.item_at(self.state.playback.current_time)

    def items_in_range(self, start: float, end: float) -> list[TimelineItem]:
        """Items whose interval overlaps ``[start, end)``."""
        lo, hi = min(start, end), max(start, end)
        return [item for item, s, e in spans(self.state.items) if s < hi and e > lo]

    def neighbors(self, item_id: str) -> tuple[str | None, str | None]:
        """Script text of the items before and after ``item_id``."""
        index = self.index_of(item_id)
        if index == -1:
            return None, None
        items = self.state.items
        before = items[index - 1].text if index > 0 else None
        after = items[index + 1].text if index < len(items) - 1 else None
        return before, after

    def find_collision(self, item_id: str, prospective_start: float) -> str | None:
        """First other item whose current interval overlaps the dragged
        item's prospective interval."""
        dragged = self.get(item_id)
        if dragged is None:
            return None
        prospective_end = prospective_start + dragged.duration_seconds
        for item, start, end in spans(self.state.items):
            if item.id == item_id:
                continue
            if prospective_start < end and prospective_end > start:
                return item.id
        return None

    # Editor state

    def seek(self, time: float) -> float:
        """Move the play-head, clamped to the visible canvas."""
        clamped = min(max(0.0, time), self.canvas_duration)
        self.state.playback.current_time = clamped
        return clamped

    def set_playing(self, playing: bool) -> None:
        self.state.playback.is_playing = playing

    def set_zoom(self, zoom: float) -> float:
        self.state.zoom = clamp_zoom(zoom)
        return self.state.zoom

    def set_selection(self, selection: Selection | None) -> None:
        self.state.selection = selection

    def set_drag(self, drag: DragState | None) -> None:
        self.state.drag = drag

    # Structural edits

    def insert_block(self, start: float, end: float) -> bool:
        """Insert an empty block over ``[start, end)``, splitting items it cuts.

        Requests shorter than 0.5s are a plain seek to ``start``. Returns
        True when the timeline changed.
        """
        start, end = min(start, end), max(start, end)
        if end - start < MIN_BLOCK_SECONDS:
            self.seek(start)
            return False

        taken = {item.id for item in self.state.items}
        block = TimelineItem.context_block(_unique_id(self._new_id(), taken), end - start)
        taken.add(block.id)

        new_items: list[TimelineItem] = []
        inserted = False
        for item, item_start, item_end in spans(self.state.items):
            if item_start < start:
                keep = min(item_end, start) - item_start
                if keep > SLIVER_SECONDS:
                    if start < item_end:
                        piece_id = _unique_id(f"{item.id}_split_1", taken)
                        taken.add(piece_id)
                        new_items.append(_fragment(item, keep, piece_id))
                    else:
                        new_items.append(item)

            if not inserted and item_end >= start:
                new_items.append(block)
                inserted = True

            if item_end > end:
                keep = item_end - max(item_start, end)
                if keep > SLIVER_SECONDS:
                    if item_start < end:
                        piece_id = _unique_id(f"{item.id}_split_2", taken)
                        taken.add(piece_id)
                        new_items.append(_fragment(item, keep, piece_id))
                    else:
                        new_items.append(item)

        if not inserted:
            new_items.append(block)

        self.state.items = new_items
        self.state.selection = None
        self.seek(start)
        logger.debug("Inserted block %s over [%.2f, %.2f)", block.id, start, end)
        return True

    def insert_block_at(self, index: int, duration: float | None = None) -> TimelineItem:
        """Insert a default empty block immediately before the item at ``index``."""
        index = min(max(0, index), len(self.state.items))
        taken = {item.id for item in self.state.items}
        block = TimelineItem.context_block(
            _unique_id(self._new_id(), taken), duration or self.default_block_seconds
        )
        start = content_duration(self.state.items[:index])
        self.state.items.insert(index, block)
        self.seek(start)
        logger.debug("Inserted block %s at index %d", block.id, index)
        return block

    def remove_range(self, start: float, end: float) -> int:
        """Remove every item whose midpoint falls in ``[start, end)``.

        Items that only partially overlap the range are not split.
        """
        lo, hi = min(start, end), max(start, end)
        kept = [item for item, s, e in spans(self.state.items) if not lo <= (s + e) / 2 < hi]
        removed = len(self.state.items) - len(kept)
        self.state.items = kept
        self.state.selection = None
        if removed:
            self.seek(self.state.playback.current_time)
            logger.debug("Removed %d item(s) in [%.2f, %.2f)", removed, lo, hi)
        return removed

    def remove_item(self, item_id: str) -> bool:
        index = self.index_of(item_id)
        if index == -1:
            return False
        del self.state.items[index]
        self.seek(self.state.playback.current_time)
        logger.debug("Removed item %s", item_id)
        return True

    def reorder(self, dragged_id: str, collided_id: str) -> bool:
        """Swap two items' positions in sequence order."""
        a = self.index_of(dragged_id)
        b = self.index_of(collided_id)
        if a == -1 or b == -1 or a == b:
            return False
        items = self.state.items
        items[a], items[b] = items[b], items[a]
        logger.debug("Swapped %s with %s", dragged_id, collided_id)
        return True

    def replace_item(self, item_id: str, replacements: Sequence[TimelineItem]) -> bool:
        """Replace one item (typically a context block) with new items in place."""
        index = self.index_of(item_id)
        if index == -1:
            return False
        taken = {item.id for item in self.state.items if item.id != item_id}
        self.state.items[index : index + 1] = self._with_unique_ids(list(replacements), taken)
        self.seek(self.state.playback.current_time)
        return True

    def append_items(self, new_items: Sequence[TimelineItem]) -> None:
        taken = {item.id for item in self.state.items}
        self.state.items.extend(self._with_unique_ids(list(new_items), taken))

    # Patches

    def apply_patch(self, item_id: str, **changes) -> bool:
        """Merge a partial update into one item.

        Returns False when the item no longer exists (the patch is dropped).
        Asset fields are ignored for empty items and durations only accept
        positive values.
        """
        index = self.index_of(item_id)
        if index == -1:
            logger.debug("Dropped patch for missing item %s: %s", item_id, sorted(changes))
            return False
        item = self.state.items[index]
        update = {k: v for k, v in changes.items() if k in TimelineItem.model_fields and k != "id"}
        if item.is_empty:
            update = {k: v for k, v in update.items() if k not in ASSET_FIELDS}
        if "duration_seconds" in update and not update["duration_seconds"] > 0:
            del update["duration_seconds"]
        if update:
            self.state.items[index] = item.model_copy(update=update)
        return True

    @staticmethod
    def _with_unique_ids(items: list[TimelineItem], taken: set[str]) -> list[TimelineItem]:
        result = []
        for item in items:
            item_id = _unique_id(item.id, taken)
            taken.add(item_id)
            result.append(item if item_id == item.id else item.model_copy(update={"id": item_id}))
        return result
