"""Persistent conversation storage."""

import json
from datetime import datetime

from .paths import CONVERSATION_FILE, ensure_data_dir, atomic_json_write


def _clean_message(msg: dict) -> dict:
    """Keep only role and text content of a message."""
    content = msg.get("content", "")
    if isinstance(content, list):
        # Flatten SDK text blocks into plain text
        parts = []
        for block in content:
            if isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
            elif hasattr(block, "text"):
                parts.append(block.text)
        content = "".join(parts)
    return {"role": msg["role"], "content": content}


def save_conversation(messages: list[dict], input_tokens: int = 0, output_tokens: int = 0) -> None:
    """Save conversation history to disk."""
    ensure_data_dir()

    data = {
        "last_saved": datetime.now().isoformat(),
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "messages": [_clean_message(msg) for msg in messages],
    }

    atomic_json_write(CONVERSATION_FILE, data)


def _empty() -> dict:
    return {
        "messages": [],
        "input_tokens": 0,
        "output_tokens": 0,
        "last_saved": None,
    }


def load_conversation() -> dict:
    """
    Load conversation history from disk.

    Returns:
        Dict with 'messages', 'input_tokens', 'output_tokens', 'last_saved'
    """
    ensure_data_dir()

    if not CONVERSATION_FILE.exists():
        return _empty()

    try:
        with open(CONVERSATION_FILE) as f:
            data = json.load(f)
        return {
            "messages": data.get("messages", []),
            "input_tokens": data.get("input_tokens", 0),
            "output_tokens": data.get("output_tokens", 0),
            "last_saved": data.get("last_saved"),
        }
    except (json.JSONDecodeError, IOError, AttributeError):
        return _empty()


def clear_conversation() -> None:
    """Delete saved conversation."""
    if CONVERSATION_FILE.exists():
        CONVERSATION_FILE.unlink()


def get_conversation_age() -> str | None:
    """Get human-readable age of saved conversation."""
    if not CONVERSATION_FILE.exists():
        return None

    try:
        with open(CONVERSATION_FILE) as f:
            data = json.load(f)
        last_saved = data.get("last_saved")
        if not last_saved:
            return None

        saved_time = datetime.fromisoformat(last_saved)
        delta = datetime.now() - saved_time

        if delta.days > 0:
            return f"{delta.days} day(s) ago"
        elif delta.seconds > 3600:
            return f"{delta.seconds // 3600} hour(s) ago"
        elif delta.seconds > 60:
            return f"{delta.seconds // 60} minute(s) ago"
        else:
            return "just now"
    except (json.JSONDecodeError, OSError, ValueError, AttributeError):
        return None
