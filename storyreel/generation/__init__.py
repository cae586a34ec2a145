"""
storyreel.generation - Narration and visual generation services.

The timeline core only sees the SpeechService / ImageService protocols;
the litellm-backed clients here are the production implementations.
"""

from __future__ import annotations
