"""Centralized storage paths for nvccoach."""

import json
import os
import tempfile
from pathlib import Path

# Base data directory for all persistent storage
DATA_DIR = Path(
    os.environ.get("NVCCOACH_HOME") or Path(__file__).parent.parent.parent / ".nvccoach"
)

# Configuration
CONFIG_FILE = DATA_DIR / "config.json"

# Conversation persistence
CONVERSATION_FILE = DATA_DIR / "conversation.json"

# Chat log (readable history)
CHAT_LOG_FILE = DATA_DIR / "chat_log.json"

# Durable key-value store holding the practice progress record
PROGRESS_FILE = DATA_DIR / "progress.json"

# Chat input history (prompt_toolkit)
HISTORY_FILE = DATA_DIR / "chat_history"

# Scenario catalog (bundled with package)
SCENARIOS_FILE = Path(__file__).parent / "data" / "nvc_scenarios.json"


def ensure_data_dir() -> None:
    """Ensure the data directory exists."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)


def atomic_json_write(path: Path, data, *, indent: int = 2, ensure_ascii: bool = False) -> None:
    """Write JSON data to a file atomically.

    Writes to a temporary file in the same directory, then renames it
    to the target path. A crash mid-write leaves the previous file intact.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=indent, ensure_ascii=ensure_ascii)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
