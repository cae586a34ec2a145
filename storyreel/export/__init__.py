"""
storyreel.export - Timeline export.

FCPXML for Final Cut Pro and DaVinci Resolve, at fixed 24fps 1080p.
"""

from __future__ import annotations
