"""Terminal chat UI for the NVC practice companion."""

import sys

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from prompt_toolkit.styles import Style
from rich import box
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .assistant import NVCAssistant
from .chat_log import add_exchange, format_history_for_display
from .conversation_store import get_conversation_age
from .paths import DATA_DIR, HISTORY_FILE
from .practice_mode import PracticeMode
from .progress_tracking import ProgressStats, ProgressTracker, format_stats_text, open_progress_tracker
from .scenarios import load_scenarios, pick_scenario, scenario_id
from .suggestions import random_suggestions

# Style for prompt_toolkit
PROMPT_STYLE = Style.from_dict({
    "prompt": "green bold",
})

FREEFORM_SCENARIO_ID = "freeform"


def format_tokens(n: int) -> str:
    """Format token count for display."""
    if n >= 1000:
        return f"{n / 1000:.1f}K"
    return str(n)


def create_context_bar(status: dict, streak_days: int = 0) -> Text:
    """Context usage bar with knowledge base and streak markers.

    Format: Context: [██░░░░░░░░] 23% | KB on | Streak: 3d
    """
    percent = status["percent_used"]

    if percent < 50:
        color = "green"
    elif percent < 75:
        color = "yellow"
    elif percent < 90:
        color = "orange1"
    else:
        color = "red"

    bar_width = 10
    filled = int(bar_width * percent / 100)
    bar = "█" * filled + "░" * (bar_width - filled)

    text = Text()
    text.append("Context: [", style="dim")
    text.append(bar, style=color)
    text.append("] ", style="dim")
    text.append(f"{percent:.0f}%", style=color)
    text.append(" | ", style="dim")
    text.append(f"{format_tokens(status['input_tokens'])} in", style="dim")

    text.append(" | ", style="dim")
    if status.get("rag"):
        text.append("KB on", style="cyan")
    else:
        text.append("KB off", style="dim")

    if streak_days > 0:
        text.append(" | ", style="dim")
        text.append(f"Streak: {streak_days}d", style="bright_green")

    return text


def describe_practice_mode(practice_mode: PracticeMode) -> str:
    """Short label such as 'translate · feelings · beginner'."""
    parts = [practice_mode.mode.value if practice_mode.mode else "practice"]
    for value in (
        practice_mode.focus_component,
        practice_mode.difficulty,
        practice_mode.conversation_mode,
    ):
        if value is not None:
            parts.append(value.value)
    return " · ".join(parts)


def create_practice_panel(practice_mode: PracticeMode, scenario: dict | None) -> Panel:
    """Panel announcing the exercise the next reply will run."""
    content = Text()
    content.append(describe_practice_mode(practice_mode), style="bold green")
    if scenario:
        content.append(f"\nScenario: {scenario.get('title', scenario_id(scenario))}", style="white")
        if scenario.get("content"):
            content.append(f"\n{scenario['content']}", style="dim")
    content.append("\nType 'done [rating]' when finished or 'skip' to log an incomplete attempt.", style="dim")
    return Panel(content, title="[bold green]Practice Mode[/bold green]", border_style="green")


def create_stats_panel(stats: ProgressStats, enabled: bool) -> Panel:
    """Panel summarising recorded practice."""
    return Panel(
        Text(format_stats_text(stats, enabled=enabled)),
        title="[bold cyan]Progress[/bold cyan]",
        border_style="cyan",
    )


def create_sources_text(sources: list[str]) -> Text:
    text = Text()
    text.append("Sources: ", style="dim")
    text.append(" | ".join(sources), style="cyan")
    return text


def _handle_track_command(console: Console, tracker: ProgressTracker, arg: str) -> None:
    if arg == "on":
        tracker.enable()
        console.print("[green]✓ Progress tracking on. Your practice is stored on this device only.[/green]")
    elif arg == "off":
        tracker.disable()
        console.print("[dim]Progress tracking off. Existing data kept.[/dim]")
    elif arg == "clear":
        tracker.disable(clear_data=True)
        console.print("[yellow]Progress tracking off and all progress data deleted.[/yellow]")
    else:
        state = "on" if tracker.is_enabled() else "off"
        console.print(f"[dim]Tracking is {state}. Use 'track on', 'track off' or 'track clear'.[/dim]")


def _handle_record_command(
    console: Console,
    assistant: NVCAssistant,
    tracker: ProgressTracker,
    current_scenario_id: str | None,
    completed: bool,
    arg: str,
) -> bool:
    """Record the current exercise. Returns True when an attempt was stored."""
    if assistant.last_practice_mode is None or current_scenario_id is None:
        console.print("[yellow]No practice exercise in progress. Ask to practice first.[/yellow]")
        return False
    if not tracker.is_enabled():
        console.print("[dim]Tracking is off, nothing recorded. Use 'track on' to opt in.[/dim]")
        return False

    rating = None
    if arg:
        try:
            rating = int(arg)
        except ValueError:
            console.print("[yellow]Rating must be a whole number, e.g. 'done 4'.[/yellow]")
            return False

    attempt = assistant.record_practice(tracker, current_scenario_id, completed, rating=rating)
    if attempt is None:
        return False
    label = "completed" if completed else "logged as incomplete"
    console.print(f"[green]✓ Practice {label}[/green] [dim]({attempt.scenario_id})[/dim]")
    console.print(f"[dim]Streak: {tracker.get_streak()} day(s)[/dim]")
    return True


def run_chat():
    """Run the interactive chat interface."""
    console = Console()

    try:
        assistant = NVCAssistant()
    except ValueError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)

    tracker = open_progress_tracker(assistant.config.progress_storage_key)
    scenarios = load_scenarios()
    current_scenario_id: str | None = None

    welcome_text = Text()
    welcome_text.append("NVC PRACTICE COMPANION\n", style="bold green")
    welcome_text.append(f"Model: {assistant.model_name}", style="green")
    welcome_text.append(f"  ({assistant.model})", style="dim")
    welcome_text.justify = "center"
    console.print()
    console.print(Panel(welcome_text, border_style="green", box=box.DOUBLE))

    if not assistant.rag_active:
        console.print("[yellow]Knowledge base not configured; answers come from the model alone.[/yellow]")

    cmd_table = Table(show_header=False, box=None, padding=(0, 2))
    cmd_table.add_column(style="cyan", min_width=12)
    cmd_table.add_column(style="dim")
    cmd_table.add_row("suggest", "Show starter prompts")
    cmd_table.add_row("scenarios", "List practice scenarios")
    cmd_table.add_row("done [n]", "Finish the current exercise, optional rating")
    cmd_table.add_row("skip", "Log the current exercise as incomplete")
    cmd_table.add_row("progress", "Show practice statistics")
    cmd_table.add_row("track on|off", "Opt in or out of progress tracking")
    cmd_table.add_row("track clear", "Opt out and delete progress data")
    cmd_table.add_row("history", "Show recent chat history")
    cmd_table.add_row("status", "Show context usage")
    cmd_table.add_row("clear/new", "Reset conversation")
    cmd_table.add_row("exit", "Quit")
    console.print(Panel(cmd_table, title="[bold dim]Commands[/bold dim]", border_style="dim", box=box.ROUNDED))

    conversation_age = get_conversation_age()
    if assistant.load_from_disk():
        console.print(f"[green]✓ Restored previous conversation[/green] [dim](from {conversation_age})[/dim]")
        console.print(create_context_bar(assistant.get_context_status(), tracker.get_streak()))
    else:
        console.print("[bold dim]Try asking:[/bold dim]")
        for prompt in random_suggestions():
            console.print(f"  [green]•[/green] {prompt}")
    console.print()

    try:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
        session: PromptSession = PromptSession(
            history=FileHistory(str(HISTORY_FILE)),
            style=PROMPT_STYLE,
        )
    except OSError:
        session = PromptSession(style=PROMPT_STYLE)

    while True:
        try:
            user_input = session.prompt([("class:prompt", "You: ")]).strip()
            if not user_input:
                continue

            command, _, arg = user_input.partition(" ")
            command = command.lower()
            arg = arg.strip().lower()

            if command in ("exit", "quit", "q") and not arg:
                console.print("[dim]Goodbye![/dim]")
                break

            if command in ("clear", "new") and not arg:
                assistant.reset()
                current_scenario_id = None
                console.print("[dim]Conversation cleared. Starting fresh.[/dim]\n")
                continue

            if command == "history" and not arg:
                console.print(format_history_for_display())
                console.print()
                continue

            if command == "status" and not arg:
                console.print(create_context_bar(assistant.get_context_status(), tracker.get_streak()))
                console.print(f"[dim]Messages: {len(assistant.messages)}[/dim]\n")
                continue

            if command == "suggest" and not arg:
                for prompt in random_suggestions():
                    console.print(f"  [green]•[/green] {prompt}")
                console.print()
                continue

            if command == "scenarios" and not arg:
                table = Table(title="Practice Scenarios")
                table.add_column("ID", style="dim", no_wrap=True)
                table.add_column("Title", style="bold")
                table.add_column("Difficulty", style="cyan")
                table.add_column("Focus")
                table.add_column("Mode")
                table.add_column("", style="green")
                for s in scenarios:
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
                console.print()
                continue

            if command == "progress" and not arg:
                console.print(create_stats_panel(tracker.get_stats(), tracker.is_enabled()))
                console.print()
                continue

            if command == "track":
                _handle_track_command(console, tracker, arg)
                console.print()
                continue

            if command in ("done", "skip"):
                if _handle_record_command(
                    console, assistant, tracker, current_scenario_id,
                    completed=command == "done", arg=arg,
                ):
                    current_scenario_id = None
                console.print()
                continue

            # Process with assistant
            console.print()
            response_text = ""
            sources: list[str] = []
            context_status = None
            practice_mode: PracticeMode | None = None
            status_ctx = console.status("[green]Thinking...[/green]", spinner="dots")
            status_ctx.start()

            try:
                for event in assistant.chat(user_input):
                    if event["type"] == "practice_mode":
                        practice_mode = event["practice_mode"]
                        if practice_mode.is_practice_mode:
                            scenario = pick_scenario(scenarios, practice_mode)
                            current_scenario_id = (
                                scenario_id(scenario) if scenario else FREEFORM_SCENARIO_ID
                            )
                            status_ctx.stop()
                            console.print(create_practice_panel(practice_mode, scenario))
                            status_ctx.start()
                    elif event["type"] == "text_delta":
                        response_text += event["content"]
                    elif event["type"] == "sources":
                        sources = event["sources"]
                    elif event["type"] == "context_status":
                        context_status = event["status"]
                    elif event["type"] == "error":
                        status_ctx.stop()
                        console.print(f"[red]{event['content']}[/red]")
            finally:
                status_ctx.stop()

            if response_text.strip():
                console.print("[bold green]Companion:[/bold green]")
                console.print(Markdown(response_text))
                if sources:
                    console.print(create_sources_text(sources))
                add_exchange(
                    user_input,
                    response_text,
                    practice_mode.to_dict() if practice_mode and practice_mode.is_practice_mode else None,
                    sources,
                )

            if context_status:
                console.print(create_context_bar(context_status, tracker.get_streak()))
            console.print()

        except KeyboardInterrupt:
            console.print("\n[dim]Use 'exit' to quit[/dim]")
            continue
        except EOFError:
            console.print("\n[dim]Goodbye![/dim]")
            break
