"""Claude-backed NVC practice companion."""

import logging
import os
from pathlib import Path
from typing import Generator

from anthropic import Anthropic, APIError
from dotenv import load_dotenv

# Load .env file from current directory or project root
load_dotenv()
load_dotenv(Path(__file__).parent.parent.parent / ".env")

from .config import RESPONSE_MAX_TOKENS, get_model_specs, load_config, zerodb_settings
from .context import ContextProvider, ContextProviderError, ZeroDBClient, append_sources, extract_sources
from .conversation_store import clear_conversation, load_conversation, save_conversation
from .practice_mode import PracticeMode, detect_practice_mode
from .progress_tracking import PracticeAttempt, ProgressTracker
from .prompts import (
    NO_CONTEXT_REPLY,
    build_doc_context,
    build_practice_instructions,
    build_system_prompt,
)

logger = logging.getLogger(__name__)


class AssistantError(Exception):
    """A chat exchange could not be completed."""
    pass


KNOWLEDGE_BASE_UNAVAILABLE = (
    "NVC knowledge base temporarily unavailable. Please try again in a moment."
)


class NVCAssistant:
    """Chat assistant that grounds replies in the NVC knowledge base."""

    def __init__(
        self,
        model: str | None = None,
        context_provider: ContextProvider | None = None,
        client=None,
        use_rag: bool | None = None,
    ):
        self.config = load_config()

        if client is None:
            api_key = os.environ.get("ANTHROPIC_API_KEY")
            if not api_key:
                raise ValueError(
                    "ANTHROPIC_API_KEY environment variable not set. "
                    "Get your API key from https://console.anthropic.com/"
                )
            client = Anthropic(api_key=api_key, timeout=self.config.request_timeout)
        self.client = client

        self.model = model or self.config.main_model
        self._model_specs = get_model_specs(self.model)
        self.use_rag = self.config.use_rag if use_rag is None else use_rag

        if context_provider is None and self.use_rag:
            settings = zerodb_settings(self.config)
            if settings is None:
                logger.warning("ZERODB_* settings missing; answering without the knowledge base")
            else:
                context_provider = ZeroDBClient(settings)
        self.context_provider = context_provider

        self.messages: list[dict] = []
        self.input_tokens_used = 0
        self.output_tokens_used = 0
        self.last_practice_mode: PracticeMode | None = None
        self.last_sources: list[str] = []
        self._auto_save = True  # Auto-save conversation after each exchange

    @property
    def rag_active(self) -> bool:
        """Whether replies are grounded in retrieved context."""
        return self.use_rag and self.context_provider is not None

    @property
    def max_context_tokens(self) -> int:
        """Context window size for the current model."""
        return self._model_specs["context_window"]

    @property
    def max_output_tokens(self) -> int:
        """Output cap for one reply."""
        return min(RESPONSE_MAX_TOKENS, self._model_specs["max_output_tokens"])

    @property
    def model_name(self) -> str:
        """Human-readable name for the current model."""
        return self._model_specs["name"]

    @property
    def context_usage_percent(self) -> float:
        """Percentage of context window used."""
        return (self.input_tokens_used / self.max_context_tokens) * 100

    def get_context_status(self) -> dict:
        """Get current context usage status."""
        return {
            "input_tokens": self.input_tokens_used,
            "output_tokens": self.output_tokens_used,
            "total_tokens": self.input_tokens_used + self.output_tokens_used,
            "max_tokens": self.max_context_tokens,
            "percent_used": self.context_usage_percent,
            "model": self.model,
            "model_name": self.model_name,
            "rag": self.rag_active,
        }

    def load_from_disk(self) -> bool:
        """
        Load conversation from disk.

        Returns:
            True if conversation was loaded, False if starting fresh
        """
        data = load_conversation()
        if data["messages"]:
            self.messages = data["messages"]
            self.input_tokens_used = data["input_tokens"]
            self.output_tokens_used = data["output_tokens"]
            return True
        return False

    def save_to_disk(self) -> None:
        """Save current conversation to disk."""
        save_conversation(self.messages, self.input_tokens_used, self.output_tokens_used)

    def _auto_save_if_enabled(self) -> None:
        if self._auto_save:
            self.save_to_disk()

    def chat(self, user_message: str) -> Generator[dict, None, None]:
        """
        Send a message and yield response events.

        Yields dicts keyed by 'type':
        - {"type": "practice_mode", "practice_mode": PracticeMode}
        - {"type": "text_delta", "content": "..."}
        - {"type": "sources", "sources": [...]}
        - {"type": "context_status", "status": {...}}
        - {"type": "error", "content": "..."}
        """
        practice_mode = detect_practice_mode(user_message)
        if practice_mode.is_practice_mode:
            self.last_practice_mode = practice_mode
        yield {"type": "practice_mode", "practice_mode": practice_mode}

        documents = []
        if self.rag_active:
            try:
                documents = self.context_provider.search(user_message)
            except ContextProviderError as e:
                logger.error("Knowledge base search failed: %s", e)
                yield {"type": "error", "content": KNOWLEDGE_BASE_UNAVAILABLE}
                return

            if not documents:
                self.messages.append({"role": "user", "content": user_message})
                self.messages.append({"role": "assistant", "content": NO_CONTEXT_REPLY})
                self.last_sources = []
                yield {"type": "text_delta", "content": NO_CONTEXT_REPLY}
                self._auto_save_if_enabled()
                return

        system = build_system_prompt(
            doc_context=build_doc_context(documents),
            practice_instructions=build_practice_instructions(practice_mode),
        )
        self.messages.append({"role": "user", "content": user_message})

        collected_text = ""
        try:
            with self.client.messages.stream(
                model=self.model,
                max_tokens=self.max_output_tokens,
                system=system,
                messages=self.messages,
            ) as stream:
                for text in stream.text_stream:
                    collected_text += text
                    yield {"type": "text_delta", "content": text}
                response = stream.get_final_message()
        except APIError as e:
            # Drop the unanswered message so roles keep alternating
            self.messages.pop()
            logger.error("Completion request failed: %s", e)
            yield {"type": "error", "content": f"Completion request failed: {e}"}
            return

        usage = getattr(response, "usage", None)
        if usage is not None:
            self.input_tokens_used = usage.input_tokens
            self.output_tokens_used += usage.output_tokens

        self.messages.append({"role": "assistant", "content": collected_text})

        self.last_sources = extract_sources(documents) if documents else []
        if self.last_sources:
            yield {"type": "sources", "sources": self.last_sources}

        yield {"type": "context_status", "status": self.get_context_status()}
        self._auto_save_if_enabled()

    def respond(self, user_message: str) -> str:
        """Run one exchange and return the full reply.

        Sources, if any, follow the reply after the sources delimiter.

        Raises:
            AssistantError: The knowledge base or model call failed.
        """
        text = ""
        sources: list[str] = []
        for event in self.chat(user_message):
            if event["type"] == "text_delta":
                text += event["content"]
            elif event["type"] == "sources":
                sources = event["sources"]
            elif event["type"] == "error":
                raise AssistantError(event["content"])
        return append_sources(text, sources)

    def record_practice(
        self,
        tracker: ProgressTracker,
        scenario_id: str,
        completed: bool,
        rating: int | None = None,
    ) -> PracticeAttempt | None:
        """Record an attempt for the most recent practice request.

        Returns None when no practice was requested yet or tracking is off.
        """
        practice = self.last_practice_mode
        if practice is None:
            return None
        return tracker.record_attempt(
            scenario_id,
            practice.mode,
            completed,
            focus_component=practice.focus_component,
            difficulty=practice.difficulty,
            rating=rating,
        )

    def reset(self) -> None:
        """Clear conversation history and saved state."""
        self.messages = []
        self.input_tokens_used = 0
        self.output_tokens_used = 0
        self.last_practice_mode = None
        self.last_sources = []
        clear_conversation()
