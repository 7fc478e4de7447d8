"""Tests for suggestions module."""

import random

from nvccoach.suggestions import PROMPT_SUGGESTIONS, random_suggestions


class TestRandomSuggestions:
    """Tests for random_suggestions."""

    def test_default_count(self):
        assert len(random_suggestions()) == 4

    def test_distinct_and_known(self):
        picks = random_suggestions(10)
        assert len(set(picks)) == 10
        assert set(picks) <= set(PROMPT_SUGGESTIONS)

    def test_count_is_clamped(self):
        assert len(random_suggestions(1000)) == len(PROMPT_SUGGESTIONS)
        assert random_suggestions(-3) == []

    def test_seeded_rng_is_repeatable(self):
        assert random_suggestions(rng=random.Random(7)) == random_suggestions(rng=random.Random(7))
