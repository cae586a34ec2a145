"""
storyreel.export.fcpxml - FCPXML 1.9 generator.

Generates Final Cut Pro XML for import into Final Cut Pro or DaVinci
Resolve. Frame rate and resolution are fixed (24fps, 1920x1080) and do not
depend on the timeline.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from urllib.parse import quote
from xml.sax.saxutils import escape, quoteattr

from storyreel.exceptions import ExportError
from storyreel.timeline.models import TimelineItem, Transition
from storyreel.utils import truncate

FPS = 24
TIMEBASE = 2400
FRAME_DURATION = "100/2400s"
WIDTH = 1920
HEIGHT = 1080
FORMAT_NAME = "FFVideoFormat1080p24"
DISSOLVE_UID = ".../Transitions.localized/Dissolves.localized/Cross Dissolve.localized/Cross Dissolve.moti"
DISSOLVE_TRANSITIONS = (Transition.FADE, Transition.DISSOLVE)


def seconds_to_fcpxml_time(seconds: float) -> str:
    """Convert seconds to FCPXML rational time on the 24fps grid.

    Args:
        seconds: Time in seconds

    Returns:
        Time string like "1200/2400s"
    """
    return frames_to_fcpxml_time(seconds_to_frames(seconds))


def seconds_to_frames(seconds: float) -> int:
    return round(seconds * FPS)


def frames_to_fcpxml_time(frames: int) -> str:
    return f"{frames * (TIMEBASE // FPS)}/{TIMEBASE}s"


def path_to_file_url(path: Path) -> str:
    """Convert filesystem path to file:// URL."""
    absolute = path.resolve()
    return f"file://{quote(str(absolute))}"


def asset_src(ref: str | None, fallback: Path) -> str:
    """Source URL for an asset: URLs pass through, paths become file:// URLs."""
    if ref and "://" in ref:
        return ref
    if ref and ref.startswith("data:"):
        return ref
    return path_to_file_url(Path(ref) if ref else fallback)


def generate_fcpxml(
    items: Sequence[TimelineItem],
    project_name: str = "Storyboard Project",
    assets_dir: Path | None = None,
) -> str:
    """Generate FCPXML from a timeline.

    Args:
        items: Timeline items in sequence order
        project_name: Project name shown in the NLE
        assets_dir: Where placeholder asset paths point for items without
            generated assets (default: ./assets)

    Returns:
        FCPXML content as string

    Raises:
        ExportError: If the timeline has no items
    """
    if not items:
        raise ExportError("Nothing to export: the timeline is empty")
    assets_dir = assets_dir or Path("assets")

    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        "<!DOCTYPE fcpxml>",
        '<fcpxml version="1.9">',
        "    <resources>",
        f'        <format id="r1" name="{FORMAT_NAME}" frameDuration="{FRAME_DURATION}" '
        f'width="{WIDTH}" height="{HEIGHT}"/>',
        f'        <effect id="e1" name="Cross Dissolve" uid="{DISSOLVE_UID}"/>',
    ]

    # Offsets are running sums of the rounded clip lengths, in whole frames.
    frame_counts = [seconds_to_frames(item.duration_seconds) for item in items]

    for index, item in enumerate(items):
        duration = frames_to_fcpxml_time(frame_counts[index])
        visual_src = asset_src(item.image_ref, assets_dir / f"{item.id}_visual.png")
        lines.append(
            f'        <asset id="asset_v_{index}" name="Visual {index + 1}" '
            f'uid="uid_v_{index}" src={quoteattr(visual_src)} start="0s" '
            f'duration="{duration}" hasVideo="1" format="r1"/>'
        )
        if item.audio_ref:
            audio_src = asset_src(item.audio_ref, assets_dir / f"{item.id}_audio.mp3")
            lines.append(
                f'        <asset id="asset_a_{index}" name="Audio {index + 1}" '
                f'uid="uid_a_{index}" src={quoteattr(audio_src)} start="0s" '
                f'duration="{duration}" hasAudio="1"/>'
            )

    total = frames_to_fcpxml_time(sum(frame_counts))
    lines.extend(
        [
            "    </resources>",
            "    <library>",
            '        <event name="Storyreel Event">',
            f"            <project name={quoteattr(project_name)}>",
            f'                <sequence format="r1" tcStart="0s" tcFormat="NDF" duration="{total}">',
            "                    <spine>",
        ]
    )

    offset = 0
    for index, item in enumerate(items):
        duration = frames_to_fcpxml_time(frame_counts[index])
        name = truncate(item.text, 30) if item.text else f"Clip {index + 1}"
        lines.append(
            f"                        <asset-clip name={quoteattr(name)} "
            f'ref="asset_v_{index}" offset="{frames_to_fcpxml_time(offset)}" '
            f'duration="{duration}" start="0s" format="r1">'
        )
        lines.append(f"                            <note>{escape(item.notes or '')}</note>")
        if item.audio_ref:
            lines.append(
                f'                            <asset-clip name="Audio {index + 1}" lane="-1" '
                f'offset="0s" ref="asset_a_{index}" duration="{duration}" '
                f'start="0s" role="dialogue"/>'
            )
        lines.append("                        </asset-clip>")
        if item.transition in DISSOLVE_TRANSITIONS:
            lines.append(
                '                        <transition name="Cross Dissolve" offset="0s" '
                'duration="1s" effect="e1"/>'
            )
        offset += frame_counts[index]

    lines.extend(
        [
            "                    </spine>",
            "                </sequence>",
            "            </project>",
            "        </event>",
            "    </library>",
            "</fcpxml>",
        ]
    )

    return "\n".join(lines)
