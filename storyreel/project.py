"""
storyreel.project - Project directory management.

A project holds its configuration, saved sessions, generated assets and
exports:

    my-video/
        storyreel.yaml
        sessions/<slug>.json
        assets/
        exports/
        profiles/
"""

from __future__ import annotations

import re
from pathlib import Path

from storyreel.config import create_default_config, write_config
from storyreel.exceptions import ProjectError
from storyreel.session import SavedSession, read_session, write_session


def slugify(name: str) -> str:
    """File-system safe session name: lowercase, dashes for anything else."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "session"


class Project:
    """Represents a Storyreel project directory."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.config_path = path / "storyreel.yaml"
        self.sessions_dir = path / "sessions"
        self.assets_dir = path / "assets"
        self.exports_dir = path / "exports"
        self.profiles_dir = path / "profiles"

    def exists(self) -> bool:
        return self.config_path.exists()

    def create(self, profile: str = "explainer") -> None:
        """Create the project directory structure and default config."""
        if self.exists():
            raise ProjectError(f"Project already exists: {self.path}")
        self.path.mkdir(parents=True, exist_ok=True)
        self.sessions_dir.mkdir(exist_ok=True)
        self.assets_dir.mkdir(exist_ok=True)
        self.exports_dir.mkdir(exist_ok=True)
        self.profiles_dir.mkdir(exist_ok=True)

        config = create_default_config(self.path.name, profile)
        write_config(config, self.config_path)

    def session_path(self, name: str) -> Path:
        return self.sessions_dir / f"{slugify(name)}.json"

    def load_session(self, name: str) -> SavedSession:
        """Load a saved session by name or slug."""
        return read_session(self.session_path(name))

    def save_session(self, session: SavedSession) -> Path:
        path = self.session_path(session.name)
        write_session(path, session)
        return path
