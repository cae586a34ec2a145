"""
storyreel.session - Saved storyboard/edit sessions.

A session is an opaque named record holding a timeline (or a plain
storyboard) plus its chat messages. Transient generation flags are never
written; loading applies the editor's import defaults.
"""

from __future__ import annotations

import json
import tempfile
import time
import uuid
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from storyreel.exceptions import SessionError
from storyreel.timeline.models import TRANSIENT_FIELDS, ItemKind, TimelineItem, Transition

DEFAULT_IMPORT_SECONDS = 5.0

# Storyboard exports from the web editor use these keys.
RECORD_ALIASES = {
    "image": "image_ref",
    "audioUrl": "audio_ref",
    "duration": "duration_seconds",
    "type": "kind",
}


class Message(BaseModel):
    id: str
    role: Literal["user", "assistant"]
    content: str


class SavedSession(BaseModel):
    id: str
    name: str
    storyboard: list[dict[str, Any]] = Field(default_factory=list)
    messages: list[Message] = Field(default_factory=list)
    timestamp: int = 0
    type: Literal["storyboard", "edit"] = "storyboard"


def items_to_records(items: Iterable[TimelineItem]) -> list[dict[str, Any]]:
    """Serialize timeline items, omitting unset fields and transient flags."""
    return [
        item.model_dump(mode="json", exclude_none=True, exclude=set(TRANSIENT_FIELDS))
        for item in items
    ]


def items_from_records(records: Iterable[dict[str, Any]]) -> list[TimelineItem]:
    """Build timeline items from session records or bare storyboard scenes.

    Storyboard scenes carry only ``id``/``text``/``notes``/``image``; they
    become 5 second scenes with a cut transition. Unknown keys are ignored.

    Raises:
        SessionError: If a record cannot be turned into a valid item
    """
    items = []
    for index, record in enumerate(records):
        data = {k: v for k, v in record.items() if k not in TRANSIENT_FIELDS}
        for alias, field in RECORD_ALIASES.items():
            if alias in data and field not in data:
                data[field] = data.pop(alias)
        data.setdefault("id", f"scene_{index + 1:03d}")
        data["duration_seconds"] = data.get("duration_seconds") or DEFAULT_IMPORT_SECONDS
        data["transition"] = data.get("transition") or Transition.CUT.value
        data["kind"] = data.get("kind") or ItemKind.SCENE.value
        try:
            items.append(TimelineItem.model_validate(data))
        except ValidationError as e:
            raise SessionError(f"Invalid timeline record {data.get('id')!r}: {e}") from e
    return items


def new_session(
    name: str,
    items: Sequence[TimelineItem],
    kind: Literal["storyboard", "edit"] = "edit",
    messages: Sequence[Message] = (),
) -> SavedSession:
    return SavedSession(
        id=uuid.uuid4().hex,
        name=name,
        storyboard=items_to_records(items),
        messages=list(messages),
        timestamp=int(time.time() * 1000),
        type=kind,
    )


def write_session(path: Path, session: SavedSession) -> None:
    """Write a session atomically: temp file in the same directory, then rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        delete=False,
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
        try:
            json.dump(session.model_dump(mode="json"), tmp, indent=2, ensure_ascii=False)
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise
    tmp_path.replace(path)


def read_session(path: Path) -> SavedSession:
    """Load a session file.

    Raises:
        SessionError: If the file is missing or not a valid session
    """
    if not path.exists():
        raise SessionError(f"Session not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            return SavedSession.model_validate(json.load(f))
    except (json.JSONDecodeError, ValidationError) as e:
        raise SessionError(f"Invalid session file {path}: {e}") from e


def list_sessions(directory: Path) -> list[SavedSession]:
    """All readable sessions in a directory, newest first."""
    if not directory.exists():
        return []
    sessions = []
    for path in directory.glob("*.json"):
        try:
            sessions.append(read_session(path))
        except SessionError:
            continue
    return sorted(sessions, key=lambda s: s.timestamp, reverse=True)
