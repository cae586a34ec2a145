"""
storyreel.generation.client - litellm-backed speech and image clients.

Both clients retry transient failures and raise a GenerationError subclass
once retries are exhausted. Generated files are written into the project's
assets directory.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

from storyreel.exceptions import DependencyError, GenerationError, ImageError, SpeechError
from storyreel.generation.assets import AudioAsset, ImageAsset, probe_audio_duration
from storyreel.logging import get_logger

logger = get_logger("generation")

T = TypeVar("T")


def _import_litellm() -> Any:
    try:
        import litellm
    except ImportError as e:
        raise DependencyError(
            "litellm", "litellm not installed", "Install with: pip install litellm"
        ) from e
    litellm.telemetry = False
    return litellm


def asset_name(prefix: str, text: str, suffix: str) -> str:
    """Stable file name for an asset generated from ``text``."""
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:12]
    return f"{prefix}_{digest}{suffix}"


class _RetryingClient:
    def __init__(
        self,
        assets_dir: Path,
        timeout: int = 120,
        max_retries: int = 3,
        retry_delay: float = 2.0,
    ) -> None:
        self.assets_dir = assets_dir
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    async def _with_retries(
        self,
        call: Callable[[], Awaitable[T]],
        error_cls: type[GenerationError],
        what: str,
    ) -> T:
        last_error: Exception | None = None
        for attempt in range(self.max_retries):
            if attempt > 0:
                logger.info("Retry %d/%d for %s", attempt + 1, self.max_retries, what)
            try:
                return await call()
            except (GenerationError, DependencyError):
                raise
            except Exception as e:
                last_error = e
                error_str = str(e).lower()
                delay = self.retry_delay * 2 if "rate limit" in error_str else self.retry_delay
                logger.warning("%s failed: %s", what, e)
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(delay)
        raise error_cls(
            f"{what} failed after {self.max_retries} retries: {last_error}"
        ) from last_error


class LiteLLMSpeechService(_RetryingClient):
    """Text-to-speech through ``litellm.aspeech``."""

    def __init__(
        self,
        assets_dir: Path,
        model: str = "openai/tts-1",
        voice: str = "alloy",
        **kwargs: Any,
    ) -> None:
        super().__init__(assets_dir, **kwargs)
        self.model = model
        self.voice = voice

    async def synthesize(self, text: str) -> AudioAsset:
        if not text.strip():
            raise SpeechError("Nothing to synthesize: empty narration")
        litellm = _import_litellm()
        path = self.assets_dir / asset_name("audio", f"{self.voice}:{text}", ".mp3")

        async def call() -> AudioAsset:
            response = await litellm.aspeech(
                model=self.model,
                voice=self.voice,
                input=text,
                timeout=self.timeout,
            )
            self.assets_dir.mkdir(parents=True, exist_ok=True)
            response.stream_to_file(path)
            duration = await asyncio.to_thread(probe_audio_duration, path)
            return AudioAsset(ref=str(path), duration_seconds=duration)

        return await self._with_retries(call, SpeechError, "Speech synthesis")


class LiteLLMImageService(_RetryingClient):
    """Still-image generation through ``litellm.aimage_generation``."""

    def __init__(self, assets_dir: Path, model: str = "dall-e-3", **kwargs: Any) -> None:
        super().__init__(assets_dir, **kwargs)
        self.model = model

    async def generate_image(self, prompt: str) -> ImageAsset:
        litellm = _import_litellm()

        async def call() -> ImageAsset:
            response = await litellm.aimage_generation(
                prompt=prompt,
                model=self.model,
                timeout=self.timeout,
            )
            data = getattr(response, "data", None) or []
            if not data:
                raise ImageError("Empty response from image service")
            image = data[0]
            url = getattr(image, "url", None)
            if url:
                return ImageAsset(ref=url)
            b64 = getattr(image, "b64_json", None)
            if not b64:
                raise ImageError("Image service returned neither url nor data")
            path = self.assets_dir / asset_name("visual", prompt, ".png")
            self.assets_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(base64.b64decode(b64))
            return ImageAsset(ref=str(path))

        return await self._with_retries(call, ImageError, "Image generation")
