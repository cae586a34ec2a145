"""Tests for storyreel CLI commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

from storyreel import __version__, cli
from storyreel.cli import app
from storyreel.generation import client
from storyreel.generation.assets import AudioAsset, ImageAsset
from storyreel.project import Project

runner = CliRunner()


@pytest.fixture
def project_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    result = runner.invoke(app, ["init", "demo", "-d", str(tmp_path)])
    assert result.exit_code == 0
    project_dir = tmp_path / "demo"
    monkeypatch.chdir(project_dir)
    return project_dir


@pytest.fixture
def wide_console(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep table cells on one line."""
    monkeypatch.setattr(cli, "console", Console(width=200))


@pytest.fixture
def river(project_dir: Path, storyboard_file: Path) -> Project:
    """Project with session 'River': s1 (5s) then s2 (7s)."""
    result = runner.invoke(app, ["import", str(storyboard_file), "--name", "River"])
    assert result.exit_code == 0
    return Project(project_dir)


def session_ids(project: Project, name: str = "River") -> list[str]:
    return [record["id"] for record in project.load_session(name).storyboard]


def output(result) -> str:
    """CLI output with rich line wrapping collapsed to single spaces."""
    return " ".join(result.output.split())


class TestMain:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in output(result)

    def test_fails_outside_project(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["show", "River"])
        assert result.exit_code == 1
        assert "Not in a Storyreel project" in output(result)


class TestInitCommand:
    def test_init_creates_project_directory(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["init", "test-project", "-d", str(tmp_path)])
        assert result.exit_code == 0
        assert (tmp_path / "test-project" / "storyreel.yaml").exists()
        assert (tmp_path / "test-project" / "sessions").is_dir()
        assert (tmp_path / "test-project" / "assets").is_dir()

    def test_init_with_profile(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["init", "doc", "-p", "documentary", "-d", str(tmp_path)])
        assert result.exit_code == 0
        assert "documentary" in (tmp_path / "doc" / "storyreel.yaml").read_text()

    def test_init_unknown_profile(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["init", "x", "-p", "vlog", "-d", str(tmp_path)])
        assert result.exit_code == 1
        assert "Unknown profile" in output(result)

    def test_init_fails_if_directory_exists(self, tmp_path: Path) -> None:
        (tmp_path / "existing").mkdir()
        result = runner.invoke(app, ["init", "existing", "-d", str(tmp_path)])
        assert result.exit_code == 1
        assert "already exists" in output(result)


class TestImportCommand:
    def test_import_creates_session(self, river: Project) -> None:
        session = river.load_session("River")
        assert session.type == "edit"
        assert session_ids(river) == ["s1", "s2"]
        assert [r["duration_seconds"] for r in session.storyboard] == [5.0, 7.0]

    def test_import_appends(self, river: Project, storyboard_file: Path) -> None:
        result = runner.invoke(app, ["import", str(storyboard_file), "--name", "River"])
        assert result.exit_code == 0
        assert session_ids(river) == ["s1", "s2", "s1_2", "s2_2"]

    def test_import_bare_scene_list(self, project_dir: Path, tmp_path: Path) -> None:
        path = tmp_path / "scenes.json"
        path.write_text(json.dumps([{"text": "Only scene"}]))
        result = runner.invoke(app, ["import", str(path), "--name", "Solo"])
        assert result.exit_code == 0
        assert session_ids(Project(project_dir), "Solo") == ["scene_001"]

    def test_import_invalid_json(self, project_dir: Path, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{")
        result = runner.invoke(app, ["import", str(path), "--name", "Broken"])
        assert result.exit_code == 1


class TestEditCommands:
    def test_show(self, river: Project) -> None:
        result = runner.invoke(app, ["show", "River"])
        assert result.exit_code == 0
        assert "Total: 12.0s" in output(result)

    def test_show_missing_session(self, project_dir: Path) -> None:
        result = runner.invoke(app, ["show", "Nope"])
        assert result.exit_code == 1
        assert "not found" in output(result)

    def test_show_range_filter(self, river: Project, wide_console) -> None:
        result = runner.invoke(app, ["show", "River", "--from", "0", "--to", "00:00:02:00"])
        assert result.exit_code == 0
        assert "s1" in output(result)
        assert "s2" not in output(result)

    def test_show_item_context(self, river: Project, wide_console) -> None:
        result = runner.invoke(app, ["show", "River", "--item", "s1"])
        assert result.exit_code == 0
        assert "before: -" in output(result)
        assert "after: Second line." in output(result)

    def test_show_unknown_item(self, river: Project) -> None:
        result = runner.invoke(app, ["show", "River", "--item", "zzz"])
        assert result.exit_code == 1

    def test_show_ruler(self, river: Project) -> None:
        result = runner.invoke(app, ["show", "River", "--ruler"])
        assert result.exit_code == 0
        for label in ("|0s", "|5s", "|10s", "|20s"):
            assert label in output(result)
        assert "2.73 columns per second" in output(result)

    def test_insert_splits(self, river: Project) -> None:
        result = runner.invoke(app, ["insert", "River", "2", "4"])
        assert result.exit_code == 0
        ids = session_ids(river)
        assert ids[0] == "s1_split_1"
        assert ids[2:] == ["s1_split_2", "s2"]
        assert river.load_session("River").storyboard[1]["kind"] == "empty"

    def test_insert_accepts_timecodes(self, river: Project) -> None:
        result = runner.invoke(app, ["insert", "River", "00:00:02:00", "00:00:04:00"])
        assert result.exit_code == 0
        assert session_ids(river)[0] == "s1_split_1"
        assert river.load_session("River").storyboard[1]["duration_seconds"] == 2.0

    def test_insert_rejects_bad_time(self, river: Project) -> None:
        result = runner.invoke(app, ["insert", "River", "2", "soon"])
        assert result.exit_code == 2
        assert session_ids(river) == ["s1", "s2"]

    def test_insert_short_range_does_nothing(self, river: Project) -> None:
        result = runner.invoke(app, ["insert", "River", "2", "2.2"])
        assert result.exit_code == 0
        assert "nothing inserted" in output(result)
        assert session_ids(river) == ["s1", "s2"]

    def test_insert_at(self, river: Project) -> None:
        result = runner.invoke(app, ["insert-at", "River", "1"])
        assert result.exit_code == 0
        records = river.load_session("River").storyboard
        assert [r["kind"] for r in records] == ["scene", "empty", "scene"]

    def test_delete_range(self, river: Project) -> None:
        result = runner.invoke(app, ["delete", "River", "0", "3"])
        assert result.exit_code == 0
        assert "Removed 1 item(s)" in output(result)
        assert session_ids(river) == ["s2"]

    def test_delete_range_with_timecodes(self, river: Project) -> None:
        result = runner.invoke(app, ["delete", "River", "00:00:05:00", "00:00:12:00"])
        assert result.exit_code == 0
        assert session_ids(river) == ["s1"]

    def test_remove(self, river: Project) -> None:
        result = runner.invoke(app, ["remove", "River", "s2"])
        assert result.exit_code == 0
        assert session_ids(river) == ["s1"]

    def test_remove_unknown_item(self, river: Project) -> None:
        result = runner.invoke(app, ["remove", "River", "zzz"])
        assert result.exit_code == 1

    def test_swap(self, river: Project) -> None:
        result = runner.invoke(app, ["swap", "River", "s1", "s2"])
        assert result.exit_code == 0
        assert session_ids(river) == ["s2", "s1"]


class FakeSpeech:
    def __init__(self, *args, **kwargs) -> None:
        pass

    async def synthesize(self, text: str) -> AudioAsset:
        return AudioAsset(ref=f"assets/{text[:4]}.mp3", duration_seconds=8.2)


class FakeImages:
    def __init__(self, *args, **kwargs) -> None:
        pass

    async def generate_image(self, prompt: str) -> ImageAsset:
        return ImageAsset(ref="https://img.example/shot.png")


class TestFillCommand:
    def test_fill(self, river: Project, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(client, "LiteLLMSpeechService", FakeSpeech)
        monkeypatch.setattr(client, "LiteLLMImageService", FakeImages)

        result = runner.invoke(app, ["fill", "River", "--effects"])
        assert result.exit_code == 0
        assert "Narration: 2 generated" in output(result)

        records = river.load_session("River").storyboard
        assert [r["duration_seconds"] for r in records] == [9, 9]
        assert all(r["image_ref"] == "https://img.example/shot.png" for r in records)
        assert all("effect" in r for r in records)
        assert all("is_generating_audio" not in r for r in records)

    def test_fill_rejects_unknown_style(self, river: Project) -> None:
        result = runner.invoke(app, ["fill", "River", "--style", "Crayon"])
        assert result.exit_code == 1


class TestPlayCommand:
    def test_play_prints_items(self, project_dir: Path, tmp_path: Path) -> None:
        path = tmp_path / "short.json"
        path.write_text(json.dumps([{"id": "a", "text": "Quick", "duration": 0.2}]))
        runner.invoke(app, ["import", str(path), "--name", "Short"])

        result = runner.invoke(app, ["play", "Short"])
        assert result.exit_code == 0
        assert "Quick" in output(result)
        assert "Playback stopped" in output(result)


class TestExportCommand:
    def test_export_default_path(self, river: Project) -> None:
        result = runner.invoke(app, ["export", "River"])
        assert result.exit_code == 0
        exported = river.exports_dir / "river.fcpxml"
        assert exported.exists()
        assert '<fcpxml version="1.9">' in exported.read_text()

    def test_export_custom_path(self, river: Project, tmp_path: Path) -> None:
        target = tmp_path / "out" / "cut.fcpxml"
        result = runner.invoke(app, ["export", "River", "-o", str(target)])
        assert result.exit_code == 0
        assert target.exists()

    def test_export_empty_session(self, project_dir: Path, tmp_path: Path) -> None:
        path = tmp_path / "empty.json"
        path.write_text("[]")
        runner.invoke(app, ["import", str(path), "--name", "Empty"])
        result = runner.invoke(app, ["export", "Empty"])
        assert result.exit_code == 1
        assert "Nothing to export" in output(result)
