"""Tests for practice_mode module - intent detection and scenario filtering."""

import pytest

from nvccoach.practice_mode import (
    ConversationMode,
    Difficulty,
    NVCComponent,
    PracticeMode,
    PracticeModeType,
    ScenarioFilter,
    detect_practice_mode,
    filter_scenarios,
)


class TestDetectPracticeMode:
    """Tests for detect_practice_mode."""

    @pytest.mark.parametrize("message", [
        "What is NVC?",
        "How do I express feelings without blame?",
        "",
        "Tell me about needs and requests",
    ])
    def test_non_practice_messages(self, message):
        result = detect_practice_mode(message)
        assert result == PracticeMode(is_practice_mode=False)
        assert result.to_dict() == {"isPracticeMode": False}

    def test_none_message(self):
        assert detect_practice_mode(None).is_practice_mode is False

    def test_practice_keyword(self):
        result = detect_practice_mode("I want to practice NVC")
        assert result.is_practice_mode is True
        assert result.mode == PracticeModeType.PRACTICE

    def test_scenario_keyword(self):
        result = detect_practice_mode("Give me a scenario")
        assert result.mode == PracticeModeType.PRACTICE

    def test_translate_keyword(self):
        result = detect_practice_mode("Help me translate this into NVC")
        assert result.mode == PracticeModeType.TRANSLATE

    def test_transform_keyword(self):
        result = detect_practice_mode("Transform 'you never listen'")
        assert result.mode == PracticeModeType.TRANSLATE

    def test_translate_wins_over_practice(self):
        result = detect_practice_mode("Practice how to translate criticism")
        assert result.mode == PracticeModeType.TRANSLATE

    def test_case_insensitive(self):
        result = detect_practice_mode("PRACTICE FEELINGS")
        assert result.mode == PracticeModeType.PRACTICE
        assert result.focus_component == NVCComponent.FEELINGS

    def test_observations_focus(self):
        result = detect_practice_mode("Practice making observations")
        assert result.focus_component == NVCComponent.OBSERVATIONS

    def test_observation_prefix_matches(self):
        result = detect_practice_mode("practice observational language")
        assert result.focus_component == NVCComponent.OBSERVATIONS

    @pytest.mark.parametrize("message,expected", [
        ("practice feeling words", NVCComponent.FEELINGS),
        ("practice feelings", NVCComponent.FEELINGS),
        ("practice naming a need", NVCComponent.NEEDS),
        ("practice needs", NVCComponent.NEEDS),
        ("practice a request", NVCComponent.REQUESTS),
        ("practice requests", NVCComponent.REQUESTS),
    ])
    def test_component_patterns(self, message, expected):
        assert detect_practice_mode(message).focus_component == expected

    def test_component_requires_word_boundary(self):
        result = detect_practice_mode("practice with unneeded words")
        assert result.focus_component is None

    def test_component_priority_order(self):
        result = detect_practice_mode("practice requests and feelings")
        assert result.focus_component == NVCComponent.FEELINGS

    def test_beginner_difficulty(self):
        result = detect_practice_mode("Give me a beginner practice scenario")
        assert result.difficulty == Difficulty.BEGINNER

    def test_difficulty_priority_order(self):
        result = detect_practice_mode("advanced or intermediate practice")
        assert result.difficulty == Difficulty.INTERMEDIATE

    def test_multi_turn_mode(self):
        assert detect_practice_mode("multi-turn practice").conversation_mode == ConversationMode.MULTI
        assert detect_practice_mode("multi turn practice").conversation_mode == ConversationMode.MULTI

    def test_single_mode(self):
        assert detect_practice_mode("quick practice").conversation_mode == ConversationMode.SINGLE
        assert detect_practice_mode("single practice").conversation_mode == ConversationMode.SINGLE

    def test_multi_beats_single(self):
        result = detect_practice_mode("quick multi-turn practice")
        assert result.conversation_mode == ConversationMode.MULTI

    def test_to_dict_includes_detected_fields(self):
        result = detect_practice_mode("beginner multi-turn practice on needs")
        assert result.to_dict() == {
            "isPracticeMode": True,
            "mode": "practice",
            "focusComponent": "needs",
            "difficulty": "beginner",
            "conversationMode": "multi",
        }

    def test_to_dict_omits_missing_fields(self):
        assert detect_practice_mode("practice").to_dict() == {
            "isPracticeMode": True,
            "mode": "practice",
        }


class TestFilterScenarios:
    """Tests for filter_scenarios."""

    SCENARIOS = [
        {"id": "a", "difficulty": "beginner", "focus_component": "feelings", "mode": "single"},
        {"id": "b", "difficulty": "intermediate", "focus_component": "needs", "mode": "multi"},
        {"id": "c", "difficulty": "advanced", "focus_component": "feelings", "mode": "multi"},
        {"id": "d", "difficulty": "beginner", "focus_component": "requests", "mode": "multi"},
    ]

    def _ids(self, scenarios):
        return [s["id"] for s in scenarios]

    def test_filter_by_difficulty_keeps_order(self):
        result = filter_scenarios(self.SCENARIOS, ScenarioFilter(difficulty="beginner"))
        assert self._ids(result) == ["a", "d"]

    def test_empty_criteria_returns_all(self):
        result = filter_scenarios(self.SCENARIOS, ScenarioFilter())
        assert self._ids(result) == ["a", "b", "c", "d"]

    def test_combined_criteria(self):
        criteria = ScenarioFilter(focus_component="feelings", conversation_mode="multi")
        assert self._ids(filter_scenarios(self.SCENARIOS, criteria)) == ["c"]

    def test_accepts_enum_criteria(self):
        criteria = ScenarioFilter(difficulty=Difficulty.BEGINNER, conversation_mode=ConversationMode.MULTI)
        assert self._ids(filter_scenarios(self.SCENARIOS, criteria)) == ["d"]

    def test_empty_string_criterion_is_ignored(self):
        criteria = ScenarioFilter(difficulty="", focus_component="needs")
        assert self._ids(filter_scenarios(self.SCENARIOS, criteria)) == ["b"]

    def test_no_match(self):
        assert filter_scenarios(self.SCENARIOS, ScenarioFilter(focus_component="observations")) == []

    def test_missing_field_does_not_match(self):
        scenarios = [{"id": "x"}]
        assert filter_scenarios(scenarios, ScenarioFilter(difficulty="beginner")) == []

    def test_does_not_modify_input(self):
        scenarios = list(self.SCENARIOS)
        filter_scenarios(scenarios, ScenarioFilter(difficulty="advanced"))
        assert scenarios == self.SCENARIOS
