"""
storyreel.generation.assets - Generated asset handles and service protocols.
"""

from __future__ import annotations

import json
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from storyreel.exceptions import DependencyError, SpeechError


@dataclass(frozen=True)
class AudioAsset:
    """Synthesized narration. ``ref`` is a file path or URL."""

    ref: str
    duration_seconds: float


@dataclass(frozen=True)
class ImageAsset:
    ref: str


class SpeechService(Protocol):
    async def synthesize(self, text: str) -> AudioAsset: ...


class ImageService(Protocol):
    async def generate_image(self, prompt: str) -> ImageAsset: ...


def probe_audio_duration(path: Path) -> float:
    """Read an audio file's natural duration with ffprobe.

    Raises:
        DependencyError: If ffprobe is not installed
        SpeechError: If the file cannot be probed
    """
    ffprobe = shutil.which("ffprobe")
    if not ffprobe:
        raise DependencyError(
            "ffprobe",
            "FFprobe not found in PATH",
            "Install with: brew install ffmpeg (macOS) or apt install ffmpeg (Linux)",
        )

    cmd = [ffprobe, "-v", "quiet", "-print_format", "json", "-show_format", str(path)]
    result = subprocess.run(cmd, capture_output=True, text=True)
    if result.returncode != 0:
        raise SpeechError(f"ffprobe failed for {path}: {result.stderr}")

    try:
        data = json.loads(result.stdout)
        return float(data["format"]["duration"])
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        raise SpeechError(f"No duration reported for {path}") from e
