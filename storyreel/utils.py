"""
storyreel.utils - Shared utility functions.
"""

from __future__ import annotations


def format_time(seconds: float) -> str:
    """Format seconds as the editor's MM:SS:cc play-head readout.

    Args:
        seconds: Time in seconds

    Returns:
        Formatted string, e.g. ``01:05:50`` for 65.5 seconds
    """
    seconds = max(0.0, seconds)
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    hundredths = int(round((seconds % 1) * 100, 6))
    return f"{mins:02d}:{secs:02d}:{hundredths:02d}"


def format_duration(seconds: float) -> str:
    """Format a duration as a short human label like ``4.5s`` or ``2m 05s``."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}m {secs:02d}s"


def truncate(text: str, length: int) -> str:
    """Truncate text to ``length`` characters, adding an ellipsis when cut."""
    if len(text) <= length:
        return text
    return text[:length] + "..."
