"""
storyreel.timeline - Single-track timeline editing engine.

Models, time/pixel geometry, the edit engine, gesture interpretation,
playback synchronization and concurrent asset fill-in.
"""

from __future__ import annotations
