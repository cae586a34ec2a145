"""
storyreel.cli - Typer CLI entry point.

Provides subcommands for building, editing, filling in, previewing and
exporting storyboard timelines.
"""

from __future__ import annotations

import asyncio
import json
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from storyreel import __version__
from storyreel.config import BUILTIN_PROFILES, EditorConfig, load_config
from storyreel.exceptions import ExportError, StoryreelError
from storyreel.export.timecode import seconds_to_timecode, timecode_to_seconds
from storyreel.logging import configure_logging
from storyreel.project import Project
from storyreel.session import SavedSession, items_from_records, items_to_records, new_session
from storyreel.timeline.engine import EditEngine
from storyreel.timeline.geometry import GeometryMapper
from storyreel.timeline.models import spans
from storyreel.utils import format_duration, format_time, truncate

app = typer.Typer(
    name="storyreel",
    help="AI-assisted video storyboarding toolkit.\n\n"
    "Edits storyboard timelines, fills in narration and visuals, "
    "and exports FCPXML for Final Cut Pro and DaVinci Resolve.",
    add_completion=False,
)
console = Console()

RULER_WIDTH = 60


def find_project_dir() -> Path | None:
    """Find the project directory by looking for storyreel.yaml."""
    current = Path.cwd()
    while current != current.parent:
        if (current / "storyreel.yaml").exists():
            return current
        current = current.parent
    return None


def parse_time(value: str | float) -> float:
    """Seconds from a plain number or an HH:MM:SS:FF timecode."""
    text = str(value)
    try:
        if ":" in text:
            return timecode_to_seconds(text)
        return float(text)
    except ValueError:
        raise typer.BadParameter(f"'{text}' is not seconds or an HH:MM:SS:FF timecode")


def version_callback(value: bool) -> None:
    if value:
        console.print(f"storyreel {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    """Storyreel - AI-assisted video storyboarding toolkit."""
    configure_logging(verbose)


def require_project() -> tuple[Project, EditorConfig]:
    project_dir = find_project_dir()
    if not project_dir:
        console.print("[red]Error: Not in a Storyreel project directory[/red]")
        console.print("[dim]Run 'storyreel init' first or cd into a project directory[/dim]")
        raise typer.Exit(1)
    try:
        return Project(project_dir), load_config(project_dir)
    except StoryreelError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)


def open_session(
    project: Project, config: EditorConfig, name: str
) -> tuple[SavedSession, EditEngine]:
    try:
        session = project.load_session(name)
        items = items_from_records(session.storyboard)
    except StoryreelError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    return session, EditEngine(items, default_block_seconds=config.default_block_seconds)


def save_session(project: Project, session: SavedSession, engine: EditEngine) -> Path:
    updated = session.model_copy(
        update={
            "storyboard": items_to_records(engine.items),
            "timestamp": int(time.time() * 1000),
            "type": "edit",
        }
    )
    return project.save_session(updated)


def print_timeline(engine: EditEngine, title: str, visible: set[str] | None = None) -> None:
    table = Table(title=title)
    table.add_column("#", style="dim")
    table.add_column("ID", style="cyan")
    table.add_column("Kind")
    table.add_column("In", style="green")
    table.add_column("Duration", style="green")
    table.add_column("Text")
    table.add_column("Transition")
    table.add_column("Effect")
    table.add_column("Audio")
    table.add_column("Visual")

    for index, (item, start, _) in enumerate(spans(engine.items), 1):
        if visible is not None and item.id not in visible:
            continue
        table.add_row(
            str(index),
            item.id,
            item.kind.value,
            seconds_to_timecode(start),
            format_duration(item.duration_seconds),
            escape(truncate(item.text, 40)),
            item.transition.value,
            item.effect.value if item.effect else "-",
            "✓" if item.audio_ref else "-",
            "✓" if item.image_ref else "-",
        )

    console.print(table)
    console.print(f"[dim]Total: {format_duration(engine.content_duration)}[/dim]")


def print_ruler(engine: EditEngine, width: int = RULER_WIDTH) -> None:
    """Print a one-line ruler over the canvas, one column per pixel."""
    mapper = GeometryMapper(base_width=width, height=1)
    total = engine.canvas_duration
    line = [" "] * (width + 8)
    for seconds, x in mapper.ruler_ticks(total):
        label = f"|{seconds:g}s"
        column = int(x)
        line[column : column + len(label)] = label
    console.print("".join(line).rstrip(), highlight=False)
    console.print(
        f"[dim]{mapper.pixels_per_second(total):.2f} columns per second, "
        f"canvas {format_duration(total)}[/dim]"
    )


@app.command("init")
def init_project(
    name: str = typer.Argument(..., help="Project name"),
    profile: str = typer.Option(
        "explainer",
        "--profile",
        "-p",
        help="Project profile: explainer, documentary, or social",
    ),
    path: str = typer.Option(".", "--path", "-d", help="Directory to create project in"),
) -> None:
    """Create a new Storyreel project."""
    project_path = Path(path) / name

    if profile not in BUILTIN_PROFILES:
        console.print(f"[red]Error: Unknown profile '{profile}'[/red]")
        console.print(f"[dim]Available: {', '.join(BUILTIN_PROFILES)}[/dim]")
        raise typer.Exit(1)

    if project_path.exists():
        console.print(f"[red]Error: Directory '{project_path}' already exists[/red]")
        raise typer.Exit(1)

    try:
        Project(project_path).create(profile=profile)
    except (OSError, StoryreelError) as e:
        console.print(f"[red]Error creating project: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Created project '{name}' with profile '{profile}'")
    console.print(f"[dim]  {project_path}[/dim]")
    console.print("\nNext steps:")
    console.print(f"  cd {name}")
    console.print("  storyreel import <storyboard.json> --name <session>")


@app.command("import")
def import_storyboard(
    storyboard: Path = typer.Argument(..., help="Storyboard or session JSON file"),
    name: str = typer.Option(..., "--name", "-n", help="Session to create or append to"),
) -> None:
    """Import storyboard scenes as timeline items.

    Scenes are appended to the end of the session's timeline, creating the
    session if it does not exist yet.
    """
    project, config = require_project()

    try:
        with open(storyboard, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Error reading {storyboard}: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    records = data.get("storyboard", []) if isinstance(data, dict) else data
    try:
        scenes = items_from_records(records)
    except StoryreelError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    if project.session_path(name).exists():
        session, engine = open_session(project, config, name)
    else:
        session = new_session(name, [])
        engine = EditEngine(default_block_seconds=config.default_block_seconds)
    engine.append_items(scenes)

    path = save_session(project, session, engine)
    console.print(f"[green]✓[/green] Imported {len(scenes)} scene(s) into '{name}'")
    console.print(f"[dim]  {path}[/dim]")


@app.command("show")
def show_session(
    name: str = typer.Argument(..., help="Session name"),
    start: float | None = typer.Option(
        None,
        "--from",
        help="Only items overlapping from here (seconds or HH:MM:SS:FF)",
        parser=parse_time,
    ),
    end: float | None = typer.Option(
        None,
        "--to",
        help="Only items overlapping up to here (seconds or HH:MM:SS:FF)",
        parser=parse_time,
    ),
    item_id: str | None = typer.Option(None, "--item", "-i", help="Show an item's script context"),
    ruler: bool = typer.Option(False, "--ruler", help="Print a time ruler over the canvas"),
) -> None:
    """List the timeline of a session."""
    project, config = require_project()
    session, engine = open_session(project, config, name)

    if item_id is not None:
        item = engine.get(item_id)
        if item is None:
            console.print(f"[red]Error: No item '{escape(item_id)}' in '{escape(name)}'[/red]")
            raise typer.Exit(1)
        before, after = engine.neighbors(item_id)
        label = escape(item.text) if item.text else "(context block)"
        console.print(f"[bold cyan]{escape(item_id)}[/bold cyan] {label}")
        console.print(f"[dim]  before: {escape(before or '-')}[/dim]")
        console.print(f"[dim]  after: {escape(after or '-')}[/dim]")
        return

    visible = None
    if start is not None or end is not None:
        low = start if start is not None else 0.0
        high = end if end is not None else engine.content_duration
        visible = {item.id for item in engine.items_in_range(low, high)}

    print_timeline(engine, f"Timeline: {session.name}", visible)
    if ruler:
        print_ruler(engine)


@app.command("insert")
def insert_block(
    name: str = typer.Argument(..., help="Session name"),
    start: float = typer.Argument(
        ..., help="Range start in seconds or HH:MM:SS:FF", parser=parse_time
    ),
    end: float = typer.Argument(..., help="Range end in seconds or HH:MM:SS:FF", parser=parse_time),
) -> None:
    """Insert an empty context block over a time range, splitting scenes it cuts."""
    project, config = require_project()
    session, engine = open_session(project, config, name)

    if not engine.insert_block(start, end):
        console.print("[yellow]Range shorter than 0.5s, nothing inserted[/yellow]")
        return

    save_session(project, session, engine)
    console.print(f"[green]✓[/green] Inserted block at {format_time(start)}")


@app.command("insert-at")
def insert_block_at(
    name: str = typer.Argument(..., help="Session name"),
    index: int = typer.Argument(..., help="Insert before the item at this position (0-based)"),
) -> None:
    """Insert a default-length empty context block before an item."""
    project, config = require_project()
    session, engine = open_session(project, config, name)
    block = engine.insert_block_at(index)
    save_session(project, session, engine)
    console.print(f"[green]✓[/green] Inserted block {block.id} at position {index}")


@app.command("delete")
def delete_range(
    name: str = typer.Argument(..., help="Session name"),
    start: float = typer.Argument(
        ..., help="Range start in seconds or HH:MM:SS:FF", parser=parse_time
    ),
    end: float = typer.Argument(..., help="Range end in seconds or HH:MM:SS:FF", parser=parse_time),
) -> None:
    """Delete every item whose midpoint falls inside a time range."""
    project, config = require_project()
    session, engine = open_session(project, config, name)
    removed = engine.remove_range(start, end)
    save_session(project, session, engine)
    console.print(f"[green]✓[/green] Removed {removed} item(s)")


@app.command("remove")
def remove_item(
    name: str = typer.Argument(..., help="Session name"),
    item_id: str = typer.Argument(..., help="Item ID"),
) -> None:
    """Remove a single item."""
    project, config = require_project()
    session, engine = open_session(project, config, name)
    if not engine.remove_item(item_id):
        console.print(f"[red]Error: No item '{item_id}' in '{name}'[/red]")
        raise typer.Exit(1)
    save_session(project, session, engine)
    console.print(f"[green]✓[/green] Removed {item_id}")


@app.command("swap")
def swap_items(
    name: str = typer.Argument(..., help="Session name"),
    first: str = typer.Argument(..., help="Item ID"),
    second: str = typer.Argument(..., help="Item ID"),
) -> None:
    """Swap two items' positions on the timeline."""
    project, config = require_project()
    session, engine = open_session(project, config, name)
    if not engine.reorder(first, second):
        console.print(f"[red]Error: Cannot swap '{first}' and '{second}'[/red]")
        raise typer.Exit(1)
    save_session(project, session, engine)
    console.print(f"[green]✓[/green] Swapped {first} and {second}")


@app.command("fill")
def fill_assets(
    name: str = typer.Argument(..., help="Session name"),
    style: str | None = typer.Option(None, "--style", "-s", help="Visual style"),
    effects: bool | None = typer.Option(
        None, "--effects/--no-effects", help="Assign random camera effects"
    ),
    auto_pan: bool | None = typer.Option(
        None, "--auto-pan/--no-auto-pan", help="Assign random pan effects"
    ),
) -> None:
    """Generate missing narration and visuals for every scene."""
    from storyreel.generation.client import LiteLLMImageService, LiteLLMSpeechService
    from storyreel.timeline.fill import FillInOrchestrator, FillOptions

    project, config = require_project()
    session, engine = open_session(project, config, name)

    try:
        options = FillOptions(
            style=style or config.style,
            add_effects=config.add_effects if effects is None else effects,
            auto_pan=config.auto_pan if auto_pan is None else auto_pan,
        )
    except ValueError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    client_options = {
        "timeout": config.timeout,
        "max_retries": config.max_retries,
        "retry_delay": config.retry_delay,
    }
    orchestrator = FillInOrchestrator(
        engine,
        speech=LiteLLMSpeechService(
            project.assets_dir,
            model=config.speech_model,
            voice=config.speech_voice,
            **client_options,
        ),
        images=LiteLLMImageService(project.assets_dir, model=config.image_model, **client_options),
        options=options,
    )

    with console.status("[bold]Generating assets in parallel..."):
        report = asyncio.run(orchestrator.run())

    save_session(project, session, engine)
    console.print(
        f"[green]✓[/green] Narration: {report.audio_generated} generated, "
        f"{report.audio_failed} failed"
    )
    console.print(
        f"[green]✓[/green] Visuals: {report.visuals_generated} generated, "
        f"{report.visuals_failed} failed"
    )
    if report.effects_assigned:
        console.print(f"[dim]  Assigned {report.effects_assigned} camera effect(s)[/dim]")
    if report.audio_failed or report.visuals_failed:
        console.print("[yellow]Run 'storyreel fill' again to retry failed items.[/yellow]")


@app.command("play")
def play_session(
    name: str = typer.Argument(..., help="Session name"),
    start: float = typer.Option(
        0.0, "--from", "-f", help="Start time in seconds or HH:MM:SS:FF", parser=parse_time
    ),
) -> None:
    """Preview playback in the terminal, printing each item as it becomes active."""
    from storyreel.timeline.playback import Clock, PlaybackSynchronizer, SilentAudioHandle

    project, config = require_project()
    session, engine = open_session(project, config, name)
    if not engine.items:
        console.print(f"[yellow]'{name}' is empty[/yellow]")
        return

    sync = PlaybackSynchronizer(
        engine,
        SilentAudioHandle(),
        clock=Clock(config.tick_seconds),
        drift_threshold=config.drift_threshold,
    )
    last_id: list[str | None] = [None]

    def announce() -> None:
        item = sync.active_item
        if item is not None and item.id != last_id[0]:
            last_id[0] = item.id
            label = "context block" if item.is_empty else escape(truncate(item.text, 60))
            console.print(f"[cyan]{format_time(engine.playback.current_time)}[/cyan] {label}")

    engine.seek(start)
    sync.play()
    announce()
    try:
        asyncio.run(sync.run(on_tick=announce))
    except KeyboardInterrupt:
        sync.pause()
    console.print("[dim]Playback stopped[/dim]")


@app.command("export")
def export_timeline(
    name: str = typer.Argument(..., help="Session name"),
    output: str | None = typer.Option(None, "--output", "-o", help="Output file path"),
) -> None:
    """Export a session's timeline to FCPXML."""
    from storyreel.export.fcpxml import generate_fcpxml

    project, config = require_project()
    session, engine = open_session(project, config, name)
    try:
        content = generate_fcpxml(
            engine.items, project_name=session.name, assets_dir=project.assets_dir
        )
    except ExportError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    if output:
        output_path = Path(output)
    else:
        output_path = project.exports_dir / f"{project.session_path(name).stem}.fcpxml"
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(content, encoding="utf-8")

    console.print(f"[green]✓[/green] Exported to {output_path}")
    total = format_duration(engine.content_duration)
    console.print(f"[dim]  {len(engine.items)} clip(s), {total}[/dim]")
