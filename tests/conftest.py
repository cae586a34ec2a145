"""
Test configuration and shared fixtures.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest
import yaml

from storyreel.generation.assets import AudioAsset, ImageAsset
from storyreel.timeline.engine import EditEngine
from storyreel.timeline.models import TimelineItem, Transition


class FakeSpeechService:
    """Speech service returning fixed-length narration, or failing for chosen texts."""

    def __init__(self, duration: float = 2.0, fail_on: set[str] | None = None) -> None:
        self.duration = duration
        self.fail_on = fail_on or set()
        self.calls: list[str] = []

    async def synthesize(self, text: str) -> AudioAsset:
        self.calls.append(text)
        await asyncio.sleep(0)
        if text in self.fail_on:
            raise RuntimeError(f"speech failed for {text!r}")
        return AudioAsset(ref=f"audio/{len(self.calls)}.mp3", duration_seconds=self.duration)


class FakeImageService:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.prompts: list[str] = []

    async def generate_image(self, prompt: str) -> ImageAsset:
        self.prompts.append(prompt)
        await asyncio.sleep(0)
        if self.fail:
            raise RuntimeError("image failed")
        return ImageAsset(ref=f"https://img.example/{len(self.prompts)}.png")


class FakeAudioHandle:
    """Audio handle whose position only changes when told to."""

    def __init__(self) -> None:
        self.source: str | None = None
        self.position = 0.0
        self.paused = True
        self.seeks: list[float] = []

    def load(self, ref: str) -> None:
        self.source = ref
        self.position = 0.0

    def seek(self, seconds: float) -> None:
        self.position = seconds
        self.seeks.append(seconds)

    def play(self) -> None:
        self.paused = False

    def pause(self) -> None:
        self.paused = True


def make_ids(*ids: str):
    """Deterministic id factory for new blocks."""
    remaining = list(ids)
    return lambda: remaining.pop(0)


@pytest.fixture
def speech() -> FakeSpeechService:
    return FakeSpeechService()


@pytest.fixture
def images() -> FakeImageService:
    return FakeImageService()


@pytest.fixture
def audio_handle() -> FakeAudioHandle:
    return FakeAudioHandle()


@pytest.fixture
def scenes() -> list[TimelineItem]:
    """Three 4 second scenes: intro, middle, outro."""
    return [
        TimelineItem(
            id="intro",
            duration_seconds=4.0,
            text="Welcome to the river.",
            notes="Wide shot of a river at dawn",
            transition=Transition.FADE,
        ),
        TimelineItem(id="middle", duration_seconds=4.0, text="The water rises every spring."),
        TimelineItem(
            id="outro",
            duration_seconds=4.0,
            text="And then it falls again.",
            transition=Transition.DISSOLVE,
        ),
    ]


@pytest.fixture
def engine(scenes: list[TimelineItem]) -> EditEngine:
    return EditEngine(scenes, id_factory=make_ids("block1", "block2", "block3"))


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """Create a temporary project directory with basic structure."""
    project_dir = tmp_path / "test_project"
    project_dir.mkdir()
    for sub in ("sessions", "assets", "exports", "profiles"):
        (project_dir / sub).mkdir()

    config = {"project_name": "test_project", "project_profile": "explainer"}
    with open(project_dir / "storyreel.yaml", "w") as f:
        yaml.dump(config, f)

    return project_dir


@pytest.fixture
def storyboard_file(tmp_path: Path) -> Path:
    """A storyboard export as produced by the web editor."""
    path = tmp_path / "storyboard.json"
    data = {
        "storyboard": [
            {"id": "s1", "text": "Opening line.", "notes": "City skyline"},
            {"id": "s2", "text": "Second line.", "duration": 7},
        ]
    }
    path.write_text(json.dumps(data))
    return path
