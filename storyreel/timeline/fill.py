"""
storyreel.timeline.fill - Concurrent per-item asset fill-in.

For every scene missing narration or a visual, one request per (item, kind)
runs concurrently. Results come back as id-scoped patches applied through
the edit engine, so edits made while requests are in flight (deletions,
reorders, splits) can never route a result to the wrong item: a result
whose item is gone is dropped.
"""

from __future__ import annotations

import asyncio
import math
import random
from dataclasses import dataclass

from pydantic import BaseModel, field_validator

from storyreel.config import STYLES
from storyreel.generation.assets import ImageService, SpeechService
from storyreel.logging import get_logger
from storyreel.timeline.engine import EditEngine
from storyreel.timeline.models import Effect, TimelineItem

logger = get_logger("fill")

CAMERA_EFFECTS = (Effect.ZOOM_IN, Effect.ZOOM_OUT, Effect.PAN_LEFT, Effect.PAN_RIGHT)
PAN_EFFECTS = (Effect.PAN_LEFT, Effect.PAN_RIGHT)


class FillOptions(BaseModel):
    style: str = "Cinematic"
    add_effects: bool = False
    auto_pan: bool = False

    @field_validator("style")
    @classmethod
    def validate_style(cls, v: str) -> str:
        if v not in STYLES:
            raise ValueError(f"style must be one of: {set(STYLES)}")
        return v

    @property
    def assign_effects(self) -> bool:
        return self.add_effects or self.auto_pan

    @property
    def effect_pool(self) -> tuple[Effect, ...]:
        return PAN_EFFECTS if self.auto_pan else CAMERA_EFFECTS


def build_image_prompt(item: TimelineItem, style: str) -> str:
    """Image prompt from the item's visual notes, falling back to its script."""
    subject = item.notes or item.text
    return f"{style} shot: {subject}. High quality, 4k."


@dataclass
class FillReport:
    audio_generated: int = 0
    audio_failed: int = 0
    visuals_generated: int = 0
    visuals_failed: int = 0
    effects_assigned: int = 0
    dropped: int = 0

    @property
    def requested(self) -> int:
        return (
            self.audio_generated
            + self.audio_failed
            + self.visuals_generated
            + self.visuals_failed
            + self.dropped
        )


class FillInOrchestrator:
    """Requests missing narration and visuals for a timeline snapshot.

    Args:
        engine: Edit engine the results are merged into
        speech: Speech synthesis service
        images: Image generation service
        options: Style and effect options
        rng: Random source for effect assignment
    """

    def __init__(
        self,
        engine: EditEngine,
        speech: SpeechService,
        images: ImageService,
        options: FillOptions | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.engine = engine
        self.speech = speech
        self.images = images
        self.options = options or FillOptions()
        self.rng = rng or random.Random()
        self.pending = 0
        self.report = FillReport()

    @property
    def in_progress(self) -> bool:
        return self.pending > 0

    async def run(self) -> FillReport:
        """Fill in every scene of the current snapshot; returns once all requests settle."""
        self.report = FillReport()
        requests = []

        for item in self.engine.items:
            if item.is_empty:
                continue
            if item.audio_ref is None:
                requests.append(self._fill_audio(item.id, item.text))
            if self.options.assign_effects and item.effect is None:
                effect = self.rng.choice(self.options.effect_pool)
                if self.engine.apply_patch(item.id, effect=effect):
                    self.report.effects_assigned += 1
            if item.image_ref is None:
                prompt = build_image_prompt(item, self.options.style)
                requests.append(self._fill_visual(item.id, prompt))

        self.pending = len(requests)
        logger.info("Filling %d asset request(s)", self.pending)
        await asyncio.gather(*requests)
        logger.info(
            "Fill-in complete: %d audio, %d visuals, %d failed, %d dropped",
            self.report.audio_generated,
            self.report.visuals_generated,
            self.report.audio_failed + self.report.visuals_failed,
            self.report.dropped,
        )
        return self.report

    async def _fill_audio(self, item_id: str, text: str) -> None:
        try:
            if not self.engine.apply_patch(item_id, is_generating_audio=True):
                self.report.dropped += 1
                return
            try:
                asset = await self.speech.synthesize(text)
            except Exception as e:
                if not self.engine.apply_patch(item_id, is_generating_audio=False):
                    logger.debug("Narration for deleted item %s dropped: %s", item_id, e)
                    self.report.dropped += 1
                    return
                logger.warning("Narration for %s failed: %s", item_id, e)
                self.report.audio_failed += 1
                return

            current = self.engine.get(item_id)
            if current is None:
                logger.debug("Narration for deleted item %s dropped", item_id)
                self.report.dropped += 1
                return
            duration = current.duration_seconds
            if asset.duration_seconds > duration:
                duration = math.ceil(asset.duration_seconds)
            self.engine.apply_patch(
                item_id,
                audio_ref=asset.ref,
                duration_seconds=duration,
                is_generating_audio=False,
            )
            self.report.audio_generated += 1
        finally:
            self.pending -= 1

    async def _fill_visual(self, item_id: str, prompt: str) -> None:
        try:
            if not self.engine.apply_patch(item_id, is_generating_visual=True):
                self.report.dropped += 1
                return
            try:
                asset = await self.images.generate_image(prompt)
            except Exception as e:
                if not self.engine.apply_patch(item_id, is_generating_visual=False):
                    logger.debug("Visual for deleted item %s dropped: %s", item_id, e)
                    self.report.dropped += 1
                    return
                logger.warning("Visual for %s failed: %s", item_id, e)
                self.report.visuals_failed += 1
                return

            if self.engine.apply_patch(item_id, image_ref=asset.ref, is_generating_visual=False):
                self.report.visuals_generated += 1
            else:
                logger.debug("Visual for deleted item %s dropped", item_id)
                self.report.dropped += 1
        finally:
            self.pending -= 1
