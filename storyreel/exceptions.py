"""
storyreel.exceptions - Custom exception classes.

All Storyreel-specific exceptions inherit from StoryreelError. Timeline
edits never raise; these cover configuration, persistence, generation
services and export.
"""


class StoryreelError(Exception):
    """Base exception for all Storyreel errors."""

    pass


class ConfigError(StoryreelError):
    """Configuration loading or validation error."""

    pass


class ProjectError(StoryreelError):
    """Project directory error."""

    pass


class SessionError(StoryreelError):
    """Saved session missing or unreadable."""

    pass


class GenerationError(StoryreelError):
    """Asset generation service error."""

    pass


class SpeechError(GenerationError):
    """Speech synthesis failed."""

    pass


class ImageError(GenerationError):
    """Image generation failed."""

    pass


class ExportError(StoryreelError):
    """Timeline export error."""

    pass


class DependencyError(StoryreelError):
    """Required dependency missing or misconfigured."""

    def __init__(self, dependency: str, message: str, install_hint: str | None = None):
        self.dependency = dependency
        self.message = message
        self.install_hint = install_hint
        super().__init__(f"{dependency}: {message}")
