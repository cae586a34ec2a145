"""
storyreel.timeline.models - Timeline data model.

A timeline is an ordered, contiguous, single-track sequence of items. The
start of item i is the sum of the durations of items 0..i-1; nothing is
stored about absolute positions.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ItemKind(str, Enum):
    SCENE = "scene"
    EMPTY = "empty"


class Transition(str, Enum):
    """Transition into an item."""

    CUT = "cut"
    FADE = "fade"
    DISSOLVE = "dissolve"
    WIPE = "wipe"


class Effect(str, Enum):
    """Ken-burns style presentation effect, applied only while playing."""

    ZOOM_IN = "zoom-in"
    ZOOM_OUT = "zoom-out"
    PAN_LEFT = "pan-left"
    PAN_RIGHT = "pan-right"
    STATIC = "static"


ASSET_FIELDS = ("image_ref", "audio_ref", "is_generating_audio", "is_generating_visual")
TRANSIENT_FIELDS = ("is_generating_audio", "is_generating_visual")

CONTEXT_BLOCK_TEXT = "Context Block"


class TimelineItem(BaseModel):
    """One scene or placeholder segment on the timeline."""

    model_config = ConfigDict(use_enum_values=False, validate_assignment=False)

    id: str
    kind: ItemKind = ItemKind.SCENE
    duration_seconds: float = Field(gt=0)
    text: str = ""
    notes: str | None = None
    image_ref: str | None = None
    audio_ref: str | None = None
    transition: Transition = Transition.CUT
    effect: Effect | None = None

    is_generating_audio: bool = False
    is_generating_visual: bool = False

    @model_validator(mode="after")
    def check_empty_has_no_assets(self) -> TimelineItem:
        if self.kind is ItemKind.EMPTY:
            for name in ASSET_FIELDS:
                if getattr(self, name):
                    raise ValueError(f"empty item {self.id!r} cannot carry {name}")
        return self

    @property
    def is_empty(self) -> bool:
        return self.kind is ItemKind.EMPTY

    @property
    def has_audio(self) -> bool:
        return self.audio_ref is not None

    @property
    def has_visual(self) -> bool:
        return self.image_ref is not None

    @classmethod
    def context_block(cls, item_id: str, duration: float) -> TimelineItem:
        """Build a placeholder block awaiting user-authored context."""
        return cls(
            id=item_id,
            kind=ItemKind.EMPTY,
            duration_seconds=duration,
            text=CONTEXT_BLOCK_TEXT,
        )


class Selection(BaseModel):
    """Transient time range drawn on the track. ``end`` may precede ``start``."""

    start: float
    end: float

    @property
    def lower(self) -> float:
        return min(self.start, self.end)

    @property
    def upper(self) -> float:
        return max(self.start, self.end)

    @property
    def length(self) -> float:
        return abs(self.end - self.start)


class DragState(BaseModel):
    item_id: str
    pointer_offset: float


class PlaybackState(BaseModel):
    current_time: float = 0.0
    is_playing: bool = False


class EditorState(BaseModel):
    """All mutable editor state, written only by the edit engine."""

    items: list[TimelineItem] = Field(default_factory=list)
    playback: PlaybackState = Field(default_factory=PlaybackState)
    zoom: float = 1.0
    selection: Selection | None = None
    drag: DragState | None = None


def content_duration(items: Sequence[TimelineItem]) -> float:
    """Sum of item durations."""
    return sum(item.duration_seconds for item in items)


def item_starts(items: Sequence[TimelineItem]) -> list[float]:
    """Absolute start time of every item."""
    starts = []
    elapsed = 0.0
    for item in items:
        starts.append(elapsed)
        elapsed += item.duration_seconds
    return starts


def spans(items: Sequence[TimelineItem]) -> Iterator[tuple[TimelineItem, float, float]]:
    """Yield ``(item, start, end)`` in sequence order."""
    elapsed = 0.0
    for item in items:
        end = elapsed + item.duration_seconds
        yield item, elapsed, end
        elapsed = end
