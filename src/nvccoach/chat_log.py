"""Chat log storage for readable history."""

import json
from datetime import datetime
from typing import Optional

from .paths import CHAT_LOG_FILE, ensure_data_dir, atomic_json_write

# Maximum number of exchanges to keep
MAX_EXCHANGES = 100


def load_log() -> list[dict]:
    """Load the chat log from disk."""
    ensure_data_dir()
    if not CHAT_LOG_FILE.exists():
        return []
    try:
        with open(CHAT_LOG_FILE, encoding="utf-8") as f:
            log = json.load(f)
        return log if isinstance(log, list) else []
    except (json.JSONDecodeError, UnicodeDecodeError, IOError):
        return []


def save_log(log: list[dict]) -> None:
    """Save the chat log to disk."""
    ensure_data_dir()
    atomic_json_write(CHAT_LOG_FILE, log[-MAX_EXCHANGES:])


def add_exchange(
    user_message: str,
    assistant_response: str,
    practice_mode: Optional[dict] = None,
    sources: Optional[list[str]] = None,
) -> None:
    """
    Add a chat exchange to the log.

    Args:
        user_message: The user's input
        assistant_response: The assistant's text response
        practice_mode: Detected practice settings, if the message asked for an exercise
        sources: Knowledge base sources cited in the response
    """
    log = load_log()

    exchange = {
        "timestamp": datetime.now().isoformat(),
        "user": user_message,
        "assistant": assistant_response,
        "practice_mode": practice_mode,
        "sources": sources or [],
    }

    log.append(exchange)
    save_log(log)


def get_recent_exchanges(count: int = 10) -> list[dict]:
    """Get the most recent exchanges."""
    log = load_log()
    return log[-count:]


def format_exchange_for_display(exchange: dict, index: int) -> str:
    """Format a single exchange for display."""
    lines = []

    timestamp = exchange.get("timestamp", "")
    if timestamp:
        try:
            dt = datetime.fromisoformat(timestamp)
            time_str = dt.strftime("%Y-%m-%d %H:%M")
        except ValueError:
            time_str = timestamp[:16]
    else:
        time_str = "unknown"

    lines.append(f"─── Exchange {index} ({time_str}) ───")

    user_msg = exchange.get("user", "")
    if len(user_msg) > 100:
        user_msg = user_msg[:100] + "..."
    lines.append(f"You: {user_msg}")

    practice = exchange.get("practice_mode") or {}
    if practice.get("isPracticeMode"):
        details = [practice.get("mode", "practice")]
        for key in ("focusComponent", "difficulty", "conversationMode"):
            if practice.get(key):
                details.append(practice[key])
        lines.append(f"  → practice: {', '.join(details)}")

    assistant_msg = exchange.get("assistant", "")
    if len(assistant_msg) > 200:
        assistant_msg = assistant_msg[:200] + "..."
    assistant_msg = assistant_msg.replace("\n", " ").strip()
    lines.append(f"Assistant: {assistant_msg}")

    sources = exchange.get("sources") or []
    if sources:
        lines.append(f"  Sources: {', '.join(sources[:3])}")

    return "\n".join(lines)


def format_history_for_display(count: int = 10) -> str:
    """Format recent history for display."""
    exchanges = get_recent_exchanges(count)

    if not exchanges:
        return "No chat history yet."

    output = []
    output.append("=" * 60)
    output.append(f"RECENT CHAT HISTORY ({len(exchanges)} exchanges)")
    output.append("=" * 60)

    for i, exchange in enumerate(exchanges, 1):
        output.append("")
        output.append(format_exchange_for_display(exchange, i))

    output.append("")
    output.append("=" * 60)

    return "\n".join(output)


def clear_log() -> None:
    """Clear the chat log."""
    save_log([])
