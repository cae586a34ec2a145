"""
storyreel.timeline.geometry - Time to screen-position mapping.

Everything that knows about pixels lives here. Time arithmetic is
zoom-independent; zoom only rescales how wide the rendered track is.
"""

from __future__ import annotations

from collections.abc import Sequence

from storyreel.timeline.models import TimelineItem, content_duration

MIN_CANVAS_SECONDS = 10.0
RUN_OUT_SECONDS = 10.0

MIN_ZOOM = 0.2
MAX_ZOOM = 5.0
ZOOM_STEP = 1.2

# Vertical share of the track reserved for drawing new blocks.
CREATION_BAND = (0.2, 0.8)


def canvas_duration(items: Sequence[TimelineItem]) -> float:
    """Visible canvas length: content (at least 10s) plus 10s of run-out."""
    return max(content_duration(items), MIN_CANVAS_SECONDS) + RUN_OUT_SECONDS


def time_to_fraction(t: float, total_duration: float) -> float:
    if total_duration <= 0:
        return 0.0
    return min(1.0, max(0.0, t / total_duration))


def fraction_to_time(fraction: float, total_duration: float) -> float:
    if total_duration <= 0:
        return 0.0
    return min(1.0, max(0.0, fraction)) * total_duration


def clamp_zoom(zoom: float) -> float:
    return min(MAX_ZOOM, max(MIN_ZOOM, zoom))


def zoom_in(zoom: float) -> float:
    return clamp_zoom(zoom * ZOOM_STEP)


def zoom_out(zoom: float) -> float:
    return clamp_zoom(zoom / ZOOM_STEP)


class GeometryMapper:
    """Maps track-local pointer coordinates to timeline seconds.

    Args:
        base_width: Track width in pixels at zoom 1.0
        height: Track height in pixels
        zoom: Zoom multiplier, clamped to [0.2, 5.0]
    """

    def __init__(self, base_width: float, height: float, zoom: float = 1.0) -> None:
        self.base_width = base_width
        self.height = height
        self.zoom = clamp_zoom(zoom)

    @property
    def track_width(self) -> float:
        return self.base_width * self.zoom

    def pixels_per_second(self, total_duration: float) -> float:
        if total_duration <= 0:
            return 0.0
        return self.track_width / total_duration

    def time_at(self, x: float, total_duration: float) -> float:
        """Time under a pointer at track-local ``x``, clamped to the canvas."""
        if self.track_width <= 0:
            return 0.0
        return fraction_to_time(x / self.track_width, total_duration)

    def x_at(self, t: float, total_duration: float) -> float:
        return time_to_fraction(t, total_duration) * self.track_width

    def contains(self, x: float, y: float) -> bool:
        return 0 <= x <= self.track_width and 0 <= y <= self.height

    def in_creation_band(self, y: float) -> bool:
        low, high = CREATION_BAND
        return self.height * low <= y <= self.height * high

    def ruler_ticks(self, total_duration: float, step: float = 5.0) -> list[tuple[float, float]]:
        """Ruler marks as ``(seconds, x)`` pairs every ``step`` seconds."""
        if step <= 0 or total_duration <= 0:
            return []
        ticks = []
        t = 0.0
        while t < total_duration:
            ticks.append((t, self.x_at(t, total_duration)))
            t += step
        return ticks
