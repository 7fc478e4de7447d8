"""System prompt assembly for the NVC practice companion."""

from __future__ import annotations

from .models import ContextDocument
from .practice_mode import ConversationMode, PracticeMode, PracticeModeType

CORE_IDENTITY = """You are an NVC Practice Companion, trained in Marshall Rosenberg's Nonviolent Communication framework. You help users understand, practice, and apply NVC in their daily lives. Format responses using markdown where applicable.

CRITICAL INSTRUCTION: Base your responses on the NVC knowledge provided in the context below. Your guidance should align with NVC principles."""

CAPABILITIES = """YOUR CORE CAPABILITIES:
1. Explain NVC concepts (Observations, Feelings, Needs, Requests)
2. Help translate "jackal" language into "giraffe" language
3. Provide feelings and needs vocabulary
4. Guide users through practice scenarios
5. Model empathic listening and reflection
6. Support conflict resolution using NVC principles"""

GUIDELINES = """GUIDELINES FOR RESPONSES:
- Use the NVC knowledge base context to inform your responses
- When users share situations, first offer empathy before giving advice
- Help users distinguish observations from evaluations
- Help users identify true feelings (not thoughts disguised as feelings)
- Connect feelings to underlying universal human needs
- Encourage requests over demands
- Use a warm, compassionate, non-judgmental tone
- When appropriate, offer practice exercises or reflections

EMPATHY FIRST PRINCIPLE:
When someone shares a difficult situation, prioritize empathic reflection:
- "It sounds like you're feeling [feeling] because you need [need]..."
- "Are you experiencing [feeling] right now?"
- Validate before advising

NVC TRANSLATION HELP:
When asked to translate statements, use the OFNR format:
- Observation: What specifically happened (camera-like)
- Feeling: The emotion experienced
- Need: The universal human need connected to the feeling
- Request: A specific, doable, positive action

Remember: Everyone's feelings and needs are valid. There are no "wrong" feelings or needs - only more or less effective strategies for meeting needs."""

TRANSLATION_FORMAT = """TRANSLATION EXERCISE FORMAT:
1. Acknowledge the original statement
2. Identify the evaluations, judgments, or demands present
3. Guide the transformation using OFNR:
   - Observation: What would a camera record?
   - Feeling: What emotion is present?
   - Need: What universal need is unmet?
   - Request: What specific, doable action would help?
4. Provide the complete NVC translation
5. Explain the key learning from this exercise"""

PRACTICE_FORMAT = """PRACTICE SESSION FORMAT:
1. Present a realistic scenario appropriate to the difficulty level
2. Ask the user to try applying NVC
3. Provide constructive feedback on their attempt
4. Offer model answers and alternatives
5. Highlight key learnings

Use scenarios from the knowledge base context when available."""

NO_CONTEXT_REPLY = (
    "I couldn't find specific NVC content related to your question in my knowledge base. "
    "I can help with topics like the four components of NVC (Observations, Feelings, Needs, "
    "Requests), feelings and needs vocabulary, empathy practice, and conflict resolution. "
    "Could you try rephrasing your question or ask about a specific aspect of Nonviolent Communication?"
)


def build_practice_instructions(practice_mode: PracticeMode) -> str:
    """Build the exercise block injected when practice mode is detected.

    Returns an empty string for ordinary questions.
    """
    if not practice_mode.is_practice_mode:
        return ""

    if practice_mode.focus_component is not None:
        component_focus = (
            f'Focus specifically on the "{practice_mode.focus_component.value}" component of NVC.'
        )
    else:
        component_focus = "Cover all OFNR components as needed."

    if practice_mode.difficulty is not None:
        difficulty_level = f"Adjust complexity for {practice_mode.difficulty.value} level learners."
    else:
        difficulty_level = "Gauge the user's level and adapt accordingly."

    if practice_mode.conversation_mode == ConversationMode.MULTI:
        conversation_style = (
            "Guide the user step-by-step through the practice, asking questions "
            "and providing feedback at each stage."
        )
    else:
        conversation_style = "Provide a complete practice scenario with guidance in a single response."

    if practice_mode.mode == PracticeModeType.TRANSLATE:
        header = "PRACTICE MODE ACTIVE: Translation Exercise"
        intro = "The user wants to translate a statement into NVC."
        exercise_format = TRANSLATION_FORMAT
    else:
        header = "PRACTICE MODE ACTIVE: Interactive Practice"
        intro = "The user wants to practice NVC skills."
        exercise_format = PRACTICE_FORMAT

    return "\n".join([
        header,
        f"{intro} {component_focus} {difficulty_level}",
        conversation_style,
        "",
        exercise_format,
    ])


def build_doc_context(documents: list[ContextDocument]) -> str:
    """Wrap retrieved passages in a context block for the system prompt."""
    if not documents:
        return ""
    joined = "\n\n---\n\n".join(doc.text for doc in documents)
    return f"START CONTEXT\n{joined}\nEND CONTEXT"


def build_system_prompt(doc_context: str = "", practice_instructions: str = "") -> str:
    """Assemble the full system prompt.

    Args:
        doc_context: Output of build_doc_context, may be empty.
        practice_instructions: Output of build_practice_instructions, may be empty.
    """
    sections = [CORE_IDENTITY]
    if doc_context:
        sections.append(doc_context)
    if practice_instructions:
        sections.append(practice_instructions)
    sections.extend([CAPABILITIES, GUIDELINES])
    return "\n\n".join(sections)
