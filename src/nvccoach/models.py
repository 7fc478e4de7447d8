"""Data models shared by the chat components."""

from dataclasses import dataclass, field


@dataclass
class ContextDocument:
    """A knowledge base passage returned by semantic search."""

    text: str
    title: str = ""
    source: str = ""
    score: float | None = None
    metadata: dict = field(default_factory=dict)

    @property
    def label(self) -> str:
        """Best human-readable name from the metadata, if any."""
        return self.title or self.source or str(self.metadata.get("name", "") or "")
