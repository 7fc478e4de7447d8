"""Tests for assistant module - retrieval, streaming, practice recording."""

from unittest.mock import MagicMock, patch

import pytest
from anthropic import APIConnectionError

from nvccoach.assistant import KNOWLEDGE_BASE_UNAVAILABLE, AssistantError, NVCAssistant
from nvccoach.config import Config
from nvccoach.context import SOURCES_DELIMITER, ContextUnavailableError, ZeroDBClient
from nvccoach.models import ContextDocument
from nvccoach.practice_mode import PracticeModeType
from nvccoach.progress_tracking import ProgressTracker
from nvccoach.prompts import NO_CONTEXT_REPLY
from nvccoach.storage import MemoryStore


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _mock_client(chunks=("Hello", " there"), input_tokens=1200, output_tokens=40):
    client = MagicMock()
    stream = MagicMock()
    stream.text_stream = iter(chunks)
    final = MagicMock()
    final.usage.input_tokens = input_tokens
    final.usage.output_tokens = output_tokens
    stream.get_final_message.return_value = final
    client.messages.stream.return_value.__enter__.return_value = stream
    return client


def _provider(documents=None, error=None):
    provider = MagicMock()
    if error is not None:
        provider.search.side_effect = error
    else:
        provider.search.return_value = documents if documents is not None else []
    return provider


def _assistant(client=None, provider=None, use_rag=True, config=None):
    with patch("nvccoach.assistant.load_config", return_value=config or Config()):
        assistant = NVCAssistant(
            client=client or _mock_client(),
            context_provider=provider,
            use_rag=use_rag,
        )
    assistant._auto_save = False
    return assistant


DOCS = [
    ContextDocument(text="Feelings are distinct from thoughts.", title="Feelings"),
    ContextDocument(text="Needs are universal.", source="needs.pdf"),
]


class TestInit:
    """Tests for NVCAssistant construction."""

    def test_requires_api_key(self):
        with patch("nvccoach.assistant.load_config", return_value=Config()), \
             patch.dict("os.environ", {}, clear=True):
            with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
                NVCAssistant()

    def test_uses_config_model(self):
        assistant = _assistant(config=Config(main_model="claude-haiku-4-5-20251001"))
        assert assistant.model == "claude-haiku-4-5-20251001"
        assert assistant.model_name == "Claude Haiku 4.5"

    def test_model_override(self):
        with patch("nvccoach.assistant.load_config", return_value=Config()):
            assistant = NVCAssistant(model="claude-opus-4-6", client=_mock_client(), use_rag=False)
        assert assistant.model == "claude-opus-4-6"

    def test_builds_zerodb_client_from_env(self):
        env = {
            "ZERODB_API_URL": "https://zerodb.example.com",
            "ZERODB_PROJECT_ID": "p",
            "ZERODB_API_KEY": "k",
        }
        with patch("nvccoach.assistant.load_config", return_value=Config()), \
             patch.dict("os.environ", env, clear=True):
            assistant = NVCAssistant(client=_mock_client())
        assert isinstance(assistant.context_provider, ZeroDBClient)
        assert assistant.rag_active is True

    def test_rag_inactive_without_settings(self):
        with patch("nvccoach.assistant.load_config", return_value=Config()), \
             patch.dict("os.environ", {}, clear=True):
            assistant = NVCAssistant(client=_mock_client())
        assert assistant.context_provider is None
        assert assistant.rag_active is False

    def test_output_cap(self):
        assert _assistant().max_output_tokens == 1000


class TestChat:
    """Tests for the chat event stream."""

    def test_event_sequence(self):
        assistant = _assistant(provider=_provider(DOCS))
        events = list(assistant.chat("What are feelings?"))
        types = [e["type"] for e in events]
        assert types == ["practice_mode", "text_delta", "text_delta", "sources", "context_status"]
        assert events[0]["practice_mode"].is_practice_mode is False
        assert events[3]["sources"] == ["Feelings", "needs.pdf"]

    def test_history_and_usage(self):
        assistant = _assistant(provider=_provider(DOCS))
        list(assistant.chat("What are feelings?"))
        assert assistant.messages == [
            {"role": "user", "content": "What are feelings?"},
            {"role": "assistant", "content": "Hello there"},
        ]
        assert assistant.input_tokens_used == 1200
        assert assistant.output_tokens_used == 40
        assert assistant.get_context_status()["percent_used"] == pytest.approx(0.6)

    def test_system_prompt_contains_context_and_practice(self):
        client = _mock_client()
        assistant = _assistant(client=client, provider=_provider(DOCS))
        list(assistant.chat("beginner practice on needs"))

        kwargs = client.messages.stream.call_args.kwargs
        assert kwargs["model"] == Config().main_model
        assert kwargs["max_tokens"] == 1000
        assert "START CONTEXT" in kwargs["system"]
        assert "Feelings are distinct from thoughts." in kwargs["system"]
        assert "PRACTICE MODE ACTIVE: Interactive Practice" in kwargs["system"]
        assert 'Focus specifically on the "needs" component' in kwargs["system"]

    def test_practice_mode_remembered(self):
        assistant = _assistant(provider=_provider(DOCS))
        list(assistant.chat("translate 'you are lazy'"))
        assert assistant.last_practice_mode.mode == PracticeModeType.TRANSLATE
        list(assistant.chat("thanks, what else?"))
        assert assistant.last_practice_mode.mode == PracticeModeType.TRANSLATE

    def test_no_documents_skips_model(self):
        client = _mock_client()
        assistant = _assistant(client=client, provider=_provider([]))
        events = list(assistant.chat("Who won the match?"))
        assert [e["type"] for e in events] == ["practice_mode", "text_delta"]
        assert events[1]["content"] == NO_CONTEXT_REPLY
        client.messages.stream.assert_not_called()
        assert assistant.messages[-1] == {"role": "assistant", "content": NO_CONTEXT_REPLY}

    def test_provider_failure(self):
        client = _mock_client()
        assistant = _assistant(client=client, provider=_provider(error=ContextUnavailableError("down")))
        events = list(assistant.chat("What are needs?"))
        assert events[-1] == {"type": "error", "content": KNOWLEDGE_BASE_UNAVAILABLE}
        assert assistant.messages == []
        client.messages.stream.assert_not_called()

    def test_without_rag_calls_model_directly(self):
        client = _mock_client()
        assistant = _assistant(client=client, use_rag=False)
        events = list(assistant.chat("What are needs?"))
        assert "sources" not in [e["type"] for e in events]
        assert "START CONTEXT" not in client.messages.stream.call_args.kwargs["system"]

    def test_api_error_drops_user_message(self):
        client = MagicMock()
        client.messages.stream.side_effect = APIConnectionError(request=MagicMock())
        assistant = _assistant(client=client, use_rag=False)
        events = list(assistant.chat("hello"))
        assert events[-1]["type"] == "error"
        assert assistant.messages == []

    def test_autosave(self):
        assistant = _assistant(use_rag=False)
        assistant._auto_save = True
        with patch("nvccoach.assistant.save_conversation") as mock_save:
            list(assistant.chat("hello"))
        mock_save.assert_called_once_with(assistant.messages, 1200, 40)


class TestRespond:
    """Tests for respond."""

    def test_returns_text_with_sources(self):
        assistant = _assistant(provider=_provider(DOCS))
        reply = assistant.respond("What are feelings?")
        assert reply.startswith("Hello there")
        assert SOURCES_DELIMITER in reply
        assert reply.endswith('["Feelings", "needs.pdf"]')

    def test_plain_text_without_sources(self):
        assert _assistant(use_rag=False).respond("hi") == "Hello there"

    def test_raises_on_error(self):
        assistant = _assistant(provider=_provider(error=ContextUnavailableError("down")))
        with pytest.raises(AssistantError, match="temporarily unavailable"):
            assistant.respond("What are needs?")


class TestRecordPractice:
    """Tests for record_practice."""

    def _tracker(self, enabled=True):
        tracker = ProgressTracker(MemoryStore())
        if enabled:
            tracker.enable()
        return tracker

    def test_nothing_without_practice(self):
        assistant = _assistant(use_rag=False)
        list(assistant.chat("hello"))
        assert assistant.record_practice(self._tracker(), "late-to-dinner", True) is None

    def test_records_detected_settings(self):
        assistant = _assistant(use_rag=False)
        list(assistant.chat("advanced practice with feelings"))
        tracker = self._tracker()
        attempt = assistant.record_practice(tracker, "public-criticism", True, rating=5)
        assert attempt.mode == PracticeModeType.PRACTICE
        assert attempt.focus_component.value == "feelings"
        assert attempt.difficulty.value == "advanced"
        assert attempt.rating == 5
        assert tracker.get_completed_scenarios() == ["public-criticism"]

    def test_disabled_tracker(self):
        assistant = _assistant(use_rag=False)
        list(assistant.chat("practice"))
        assert assistant.record_practice(self._tracker(enabled=False), "x", True) is None


class TestReset:
    """Tests for reset and persistence."""

    def test_reset_clears_state(self):
        assistant = _assistant(use_rag=False)
        list(assistant.chat("practice"))
        with patch("nvccoach.assistant.clear_conversation") as mock_clear:
            assistant.reset()
        mock_clear.assert_called_once()
        assert assistant.messages == []
        assert assistant.input_tokens_used == 0
        assert assistant.last_practice_mode is None

    def test_load_from_disk(self):
        saved = {
            "messages": [{"role": "user", "content": "hi"}],
            "input_tokens": 10,
            "output_tokens": 5,
            "last_saved": None,
        }
        assistant = _assistant(use_rag=False)
        with patch("nvccoach.assistant.load_conversation", return_value=saved):
            assert assistant.load_from_disk() is True
        assert assistant.messages == saved["messages"]
        assert assistant.output_tokens_used == 5

    def test_load_from_disk_empty(self):
        empty = {"messages": [], "input_tokens": 0, "output_tokens": 0, "last_saved": None}
        assistant = _assistant(use_rag=False)
        with patch("nvccoach.assistant.load_conversation", return_value=empty):
            assert assistant.load_from_disk() is False
