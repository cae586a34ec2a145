"""
storyreel.config - YAML config loading, profile merging, validation.

Handles loading storyreel.yaml from a project directory, applying profile
defaults, and validating all parameters.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from storyreel.exceptions import ConfigError

STYLES = ("Cinematic", "Anime", "Cyberpunk", "Watercolor", "Sketch")


class EditorConfig(BaseModel):
    """Resolved configuration for a Storyreel project."""

    project_name: str = "untitled"
    project_profile: str = "explainer"

    style: str = "Cinematic"
    add_effects: bool = False
    auto_pan: bool = False

    speech_model: str = "openai/tts-1"
    speech_voice: str = "alloy"
    image_model: str = "dall-e-3"
    timeout: int = Field(default=120, gt=0)
    max_retries: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=2.0, ge=0.0)

    tick_seconds: float = Field(default=0.1, gt=0.0)
    drift_threshold: float = Field(default=0.3, gt=0.0)
    default_block_seconds: float = Field(default=5.0, gt=0.0)

    profile_config_path: Path | None = None

    @field_validator("style")
    @classmethod
    def validate_style(cls, v: str) -> str:
        if v not in STYLES:
            raise ValueError(f"style must be one of: {set(STYLES)}")
        return v

    @field_validator("project_profile")
    @classmethod
    def validate_profile(cls, v: str) -> str:
        valid = set(BUILTIN_PROFILES)
        if v not in valid:
            raise ValueError(f"profile must be one of: {valid}")
        return v


BUILTIN_PROFILES: dict[str, dict[str, Any]] = {
    "explainer": {
        "style": "Cinematic",
        "add_effects": False,
        "auto_pan": False,
    },
    "documentary": {
        "style": "Cinematic",
        "add_effects": True,
        "auto_pan": True,
    },
    "social": {
        "style": "Anime",
        "add_effects": True,
        "auto_pan": False,
    },
}


def load_profile(name: str, profiles_dir: Path | None = None) -> dict[str, Any]:
    """Load a profile by name, checking custom profiles first."""
    if profiles_dir and profiles_dir.exists():
        profile_file = profiles_dir / f"{name}.yaml"
        if profile_file.exists():
            with open(profile_file) as f:
                return yaml.safe_load(f) or {}
    if name in BUILTIN_PROFILES:
        return BUILTIN_PROFILES[name].copy()
    raise ValueError(f"Unknown profile: {name}")


def merge_config(project_config: dict[str, Any], profile: dict[str, Any]) -> dict[str, Any]:
    """Merge project config with profile defaults. Project config takes precedence."""
    merged = profile.copy()
    for key, value in project_config.items():
        if value is not None:
            merged[key] = value
    return merged


def load_config(project_dir: Path) -> EditorConfig:
    """Load and validate configuration from a project directory."""
    config_file = project_dir / "storyreel.yaml"
    if not config_file.exists():
        raise FileNotFoundError(f"No storyreel.yaml found in {project_dir}")

    with open(config_file) as f:
        raw_config = yaml.safe_load(f) or {}

    profile_name = raw_config.get("project_profile", "explainer")
    profiles_dir = project_dir / "profiles"
    try:
        profile = load_profile(profile_name, profiles_dir if profiles_dir.exists() else None)
        if "inherits" in profile:
            parent = load_profile(
                profile.pop("inherits"), profiles_dir if profiles_dir.exists() else None
            )
            profile = merge_config(profile, parent)
    except ValueError as e:
        raise ConfigError(str(e)) from e

    merged = merge_config(raw_config, profile)
    merged["profile_config_path"] = config_file

    try:
        return EditorConfig(**merged)
    except ValueError as e:
        raise ConfigError(f"Invalid configuration in {config_file}: {e}") from e


def create_default_config(project_name: str, profile: str = "explainer") -> dict[str, Any]:
    """Create a default config for a new project."""
    defaults: dict[str, Any] = {
        "project_name": project_name,
        "project_profile": profile,
        "speech_model": "openai/tts-1",
        "speech_voice": "alloy",
        "image_model": "dall-e-3",
    }
    if profile in BUILTIN_PROFILES:
        defaults = merge_config(defaults, BUILTIN_PROFILES[profile])
    return defaults


def write_config(config: dict[str, Any], path: Path) -> None:
    """Write configuration to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)
