"""Durable key-value stores backing the progress ledger."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from .paths import atomic_json_write

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """String slots addressed by key."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """In-process store. Contents live as long as the object."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._slots: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._slots.get(key)

    def set(self, key: str, value: str) -> None:
        self._slots[key] = value


class JsonFileStore:
    """Store persisted as one JSON object file mapping key -> text.

    A missing or unreadable file reads as empty. Every ``set`` rewrites
    the whole file atomically.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, RecursionError, OSError) as e:
            logger.warning("Could not read store %s: %s", self.path, e)
            return {}
        if not isinstance(raw, dict):
            logger.warning("Ignoring store %s: root is not an object", self.path)
            return {}
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        slots = self._load()
        slots[key] = value
        atomic_json_write(self.path, slots)
