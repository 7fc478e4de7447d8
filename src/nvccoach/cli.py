"""CLI commands for the NVC practice companion."""

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from . import __version__
from .config import CLAUDE_MODELS, get_model_specs, load_config, save_config
from .context import split_sources
from .practice_mode import (
    ConversationMode,
    Difficulty,
    NVCComponent,
    PracticeModeType,
    ScenarioFilter,
    detect_practice_mode,
    filter_scenarios,
)
from .progress_tracking import format_stats_text, open_progress_tracker
from .scenarios import load_scenarios, scenario_id
from .suggestions import random_suggestions

console = Console()


def _choices(enum_cls) -> click.Choice:
    return click.Choice([member.value for member in enum_cls])


def get_tracker():
    """Open the progress tracker named in the config."""
    return open_progress_tracker(load_config().progress_storage_key)


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
def cli(verbose: bool) -> None:
    """NVC Coach - Practice Nonviolent Communication from the terminal.

    Chat needs ANTHROPIC_API_KEY. Grounded answers need the ZERODB_*
    knowledge base settings.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@cli.command()
def chat() -> None:
    """Start interactive NVC practice chat.

    Ask about NVC, request practice scenarios, or translate messages.
    Requires ANTHROPIC_API_KEY environment variable.
    """
    from .chat import run_chat
    run_chat()


@cli.command()
@click.argument("message")
def ask(message: str) -> None:
    """Ask a single question and print the answer."""
    from .assistant import AssistantError, NVCAssistant

    try:
        assistant = NVCAssistant()
    except ValueError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)
    assistant._auto_save = False

    try:
        reply = assistant.respond(message)
    except AssistantError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)

    text, sources = split_sources(reply)
    console.print(Markdown(text))
    if sources:
        console.print(f"\n[dim]Sources:[/dim] [cyan]{' | '.join(sources)}[/cyan]")


@cli.command()
@click.argument("model_id", required=False)
def model(model_id: str | None) -> None:
    """Show or change the Claude model.

    Without arguments, shows the current model and available options.
    With a model ID, switches to that model.
    """
    config = load_config()
    specs = get_model_specs(config.main_model)

    if model_id is None:
        console.print(f"\n[bold]Current model:[/bold] [green]{specs['name']}[/green] [dim]({config.main_model})[/dim]")
        console.print(f"  Context window: {specs['context_window']:,} tokens\n")
        console.print("[bold]Available models:[/bold]")

        table = Table()
        table.add_column("#", style="cyan", justify="right")
        table.add_column("Model", style="bold")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Context", justify="right")
        table.add_column("", style="green")

        for i, (mid, info) in enumerate(CLAUDE_MODELS.items(), 1):
            marker = "current" if mid == config.main_model else ""
            table.add_row(
                str(i),
                info["name"],
                mid,
                f"{info['context_window'] // 1000}K",
                marker,
            )
        console.print(table)
        console.print("\n[dim]Usage: nvccoach model <model-id>[/dim]")
        return

    if model_id not in CLAUDE_MODELS:
        # Try partial match
        matches = [m for m in CLAUDE_MODELS if model_id.lower() in m.lower()]
        if len(matches) > 1:
            console.print(f"[yellow]Ambiguous match: {', '.join(matches)}[/yellow]")
            return
        if not matches:
            console.print(f"[red]Unknown model '{model_id}'.[/red]")
            console.print("[dim]Run 'nvccoach model' to see available models.[/dim]")
            sys.exit(1)
        model_id = matches[0]

    config.main_model = model_id
    save_config(config)
    new_specs = get_model_specs(model_id)
    console.print(f"[green]Switched to {new_specs['name']}[/green] [dim]({model_id})[/dim]")


@cli.command()
@click.argument("message")
def detect(message: str) -> None:
    """Show the practice settings detected in MESSAGE as JSON."""
    click.echo(json.dumps(detect_practice_mode(message).to_dict(), indent=2))


@cli.command()
@click.option("-d", "--difficulty", type=_choices(Difficulty), help="Only this difficulty")
@click.option("-f", "--focus", help="Only this focus component")
@click.option("-m", "--mode", type=_choices(ConversationMode), help="Only single or multi-turn scenarios")
@click.option("--file", "catalog", type=click.Path(dir_okay=False, path_type=Path), help="Scenario catalog JSON")
def scenarios(difficulty: str | None, focus: str | None, mode: str | None, catalog: Path | None) -> None:
    """List practice scenarios, optionally filtered."""
    catalog_items = load_scenarios(catalog)
    matches = filter_scenarios(
        catalog_items,
        ScenarioFilter(difficulty=difficulty, focus_component=focus, conversation_mode=mode),
    )

    if not matches:
        console.print("[yellow]No scenarios match.[/yellow]")
        return

    tracker = get_tracker()
    table = Table(title="Practice Scenarios")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Difficulty", style="cyan")
    table.add_column("Focus")
    table.add_column("Mode")
    table.add_column("", style="green")

    for s in matches:
        sid = scenario_id(s)
        table.add_row(
            sid,
            str(s.get("title", "")),
            str(s.get("difficulty", "")),
            str(s.get("focus_component", "")),
            str(s.get("mode", "")),
            "done" if tracker.is_scenario_completed(sid) else "",
        )

    console.print(table)
    console.print(f"\n[dim]Showing {len(matches)} of {len(catalog_items)} scenario(s)[/dim]")


@cli.command()
@click.option("-n", "--count", default=4, help="Number of suggestions")
def suggest(count: int) -> None:
    """Show example prompts to get started."""
    for prompt in random_suggestions(count):
        console.print(f"  [green]•[/green] {prompt}")


@cli.group()
def progress() -> None:
    """Opt-in practice progress tracking (stored locally)."""
    pass


@progress.command("status")
def progress_status() -> None:
    """Show practice statistics."""
    tracker = get_tracker()
    console.print(format_stats_text(tracker.get_stats(), enabled=tracker.is_enabled()))


@progress.command()
def enable() -> None:
    """Start recording practice attempts."""
    get_tracker().enable()
    console.print("[green]✓ Progress tracking enabled. Data stays on this device.[/green]")


@progress.command()
@click.option("--clear", is_flag=True, help="Also delete all recorded progress")
def disable(clear: bool) -> None:
    """Stop recording practice attempts."""
    get_tracker().disable(clear_data=clear)
    if clear:
        console.print("[yellow]Progress tracking disabled and data deleted.[/yellow]")
    else:
        console.print("[dim]Progress tracking disabled. Existing data kept.[/dim]")


@progress.command()
@click.argument("scenario_id")
@click.option("-m", "--mode", type=_choices(PracticeModeType), required=True, help="Exercise type")
@click.option("--completed/--incomplete", default=True, help="Whether the exercise was finished")
@click.option("-f", "--focus", type=_choices(NVCComponent), help="NVC component practiced")
@click.option("-d", "--difficulty", type=_choices(Difficulty), help="Difficulty level")
@click.option("-r", "--rating", type=int, help="Self rating")
def record(
    scenario_id: str,
    mode: str,
    completed: bool,
    focus: str | None,
    difficulty: str | None,
    rating: int | None,
) -> None:
    """Record a practice attempt for SCENARIO_ID."""
    tracker = get_tracker()
    if not tracker.is_enabled():
        console.print("[yellow]Tracking is disabled. Run 'nvccoach progress enable' first.[/yellow]")
        sys.exit(1)

    attempt = tracker.record_attempt(
        scenario_id,
        mode,
        completed,
        focus_component=focus,
        difficulty=difficulty,
        rating=rating,
    )
    state = "completed" if attempt.completed else "incomplete"
    console.print(f"[green]✓ Recorded {state} attempt[/green] [dim]({attempt.id})[/dim]")
    console.print(f"[dim]Streak: {tracker.get_streak()} day(s)[/dim]")


@progress.command()
@click.argument("path", required=False, type=click.Path(dir_okay=False, path_type=Path))
def export(path: Path | None) -> None:
    """Export progress as JSON to PATH or stdout."""
    data = get_tracker().export_data()
    if path is None:
        click.echo(data)
        return
    try:
        path.write_text(data, encoding="utf-8")
    except OSError as e:
        console.print(f"[red]✗ Could not write {path}: {e}[/red]")
        sys.exit(1)
    console.print(f"[green]✓ Exported progress to {path}[/green]")


@progress.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def import_(path: Path) -> None:
    """Replace progress with data exported earlier."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"[red]✗ Could not read {path}: {e}[/red]")
        sys.exit(1)

    if not get_tracker().import_data(text):
        console.print("[red]✗ Not a valid progress export. Nothing changed.[/red]")
        sys.exit(1)
    console.print(f"[green]✓ Imported progress from {path}[/green]")


def main() -> None:
    """Entry point for the CLI."""
    cli()
