"""Knowledge base retrieval for grounding chat replies."""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from typing import Any, Protocol

from .config import ZeroDBSettings
from .models import ContextDocument

logger = logging.getLogger(__name__)

SOURCES_DELIMITER = "___SOURCES___"
MAX_SOURCES = 5


class ContextProviderError(Exception):
    """Base exception for knowledge base errors."""
    pass


class ContextUnavailableError(ContextProviderError):
    """The knowledge base could not be reached or answered badly."""
    pass


class ContextProvider(Protocol):
    """Anything that returns relevant passages for a query."""

    def search(self, query: str) -> list[ContextDocument]: ...


def _document_from_result(raw: dict) -> ContextDocument:
    metadata = raw.get("vector_metadata") or raw.get("metadata") or {}
    if not isinstance(metadata, dict):
        metadata = {}
    score = raw.get("similarity", raw.get("score"))
    return ContextDocument(
        text=str(raw.get("document") or ""),
        title=str(metadata.get("title") or ""),
        source=str(metadata.get("source") or ""),
        score=float(score) if isinstance(score, (int, float)) else None,
        metadata=metadata,
    )


class ZeroDBClient:
    """Semantic search client for the ZeroDB embeddings API."""

    def __init__(self, settings: ZeroDBSettings):
        self.settings = settings

    @property
    def search_url(self) -> str:
        return f"{self.settings.api_url}/v1/public/{self.settings.project_id}/embeddings/search"

    def _request(self, payload: dict) -> Any:
        body = json.dumps(payload).encode("utf-8")
        req = urllib.request.Request(self.search_url, body, method="POST")
        req.add_header("Content-Type", "application/json")
        req.add_header("X-API-Key", self.settings.api_key)

        try:
            with urllib.request.urlopen(req, timeout=self.settings.timeout) as response:
                raw = response.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            detail = e.read().decode("utf-8", errors="replace")[:200]
            raise ContextUnavailableError(
                f"Knowledge base search failed: {e.code} - {detail}"
            ) from e
        except urllib.error.URLError as e:
            raise ContextUnavailableError(
                f"Cannot connect to the knowledge base at {self.settings.api_url}."
            ) from e
        except TimeoutError as e:
            raise ContextUnavailableError(
                f"Knowledge base timed out after {self.settings.timeout:.0f}s."
            ) from e

        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ContextUnavailableError(
                f"Invalid response from the knowledge base: {raw[:200]}"
            ) from e

    def search(self, query: str) -> list[ContextDocument]:
        """Return passages relevant to ``query``, most relevant first."""
        result = self._request({
            "query": query,
            "limit": self.settings.top_k,
            "threshold": self.settings.similarity_threshold,
            "namespace": self.settings.namespace,
            "model": self.settings.embedding_model,
        })

        if isinstance(result, dict):
            raw_docs = result.get("results") or result.get("vectors") or []
        else:
            raw_docs = []
        documents = [_document_from_result(d) for d in raw_docs if isinstance(d, dict)]
        logger.info("Knowledge base returned %d document(s)", len(documents))
        return documents


def _source_label(doc: ContextDocument, index: int) -> str:
    if doc.label:
        return doc.label

    for line in doc.text.split("\n"):
        trimmed = line.strip()
        if len(trimmed) > 15 and trimmed != "---" and not trimmed.startswith("http"):
            return trimmed[:50] + "..." if len(trimmed) > 50 else trimmed

    return f"Source {index + 1}"


def extract_sources(documents: list[ContextDocument], limit: int = MAX_SOURCES) -> list[str]:
    """Pick display names for the top documents, without duplicates."""
    labels = [_source_label(doc, i) for i, doc in enumerate(documents[:limit])]
    return list(dict.fromkeys(labels))


def append_sources(text: str, sources: list[str]) -> str:
    """Attach a machine-readable source list after the reply text."""
    if not sources:
        return text
    return f"{text}\n\n{SOURCES_DELIMITER}\n{json.dumps(sources[:MAX_SOURCES])}"


def split_sources(text: str) -> tuple[str, list[str]]:
    """Split a reply into its text and source list."""
    if SOURCES_DELIMITER not in text:
        return text, []
    body, _, tail = text.partition(SOURCES_DELIMITER)
    try:
        sources = json.loads(tail.strip())
    except json.JSONDecodeError:
        return text, []
    if not isinstance(sources, list):
        return text, []
    return body.rstrip(), [str(s) for s in sources]
