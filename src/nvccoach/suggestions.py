"""Starter prompts shown before the first message."""

import random

# Organised by learning progression: basics, practice, advanced
PROMPT_SUGGESTIONS = [
    # Four components
    "What are the four components of Nonviolent Communication?",
    "How do I make observations without evaluations?",
    "What is the difference between feelings and thoughts?",
    "What are universal human needs in NVC?",
    "How do I make requests instead of demands?",
    # Feelings and needs vocabulary
    "What feelings might I have when my needs are met?",
    "Help me expand my feelings vocabulary",
    "What are the main categories of universal human needs?",
    "What needs might be behind anger?",
    # Translation practice
    'Help me translate "You never listen to me!" into NVC',
    "How would I express criticism using the OFNR format?",
    "Transform \"That's a stupid idea\" into giraffe language",
    "Help me practice translating a demand into a request",
    # Empathy and self-empathy
    "How do I give empathy to someone who is upset?",
    "Practice empathic listening with me",
    "Guide me through self-empathy when I feel triggered",
    # Conflict resolution
    "Guide me through the NVC conflict resolution process",
    "Help me prepare for a difficult conversation using NVC",
    # Advanced
    "What are jackal and giraffe language in NVC?",
    "How do I respond to blame with empathy?",
    "How do I say no in NVC without disconnecting?",
    "Help me hear the yes behind someone's no",
    "Give me a self-empathy practice I can do each morning",
    "How do I use NVC with children?",
]


def random_suggestions(count: int = 4, rng: random.Random | None = None) -> list[str]:
    """Return ``count`` distinct suggestions in random order."""
    count = max(0, min(count, len(PROMPT_SUGGESTIONS)))
    return (rng or random).sample(PROMPT_SUGGESTIONS, count)
