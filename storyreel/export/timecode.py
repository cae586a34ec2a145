"""
storyreel.export.timecode - Non-drop-frame timecode at the export frame rate.
"""

from __future__ import annotations

from storyreel.export.fcpxml import FPS


def seconds_to_timecode(seconds: float, fps: int = FPS) -> str:
    """Convert seconds to HH:MM:SS:FF, rounding to the nearest frame."""
    total_frames = round(max(0.0, seconds) * fps)
    ff = total_frames % fps
    total_seconds = total_frames // fps
    ss = total_seconds % 60
    mm = (total_seconds // 60) % 60
    hh = total_seconds // 3600
    return f"{hh:02d}:{mm:02d}:{ss:02d}:{ff:02d}"


def timecode_to_seconds(timecode: str, fps: int = FPS) -> float:
    """Convert HH:MM:SS:FF back to seconds.

    Raises:
        ValueError: If the timecode is not four colon-separated fields
    """
    parts = timecode.split(":")
    if len(parts) != 4:
        raise ValueError(f"Invalid timecode: {timecode}")
    hh, mm, ss, ff = (int(p) for p in parts)
    return ((hh * 3600 + mm * 60 + ss) * fps + ff) / fps
