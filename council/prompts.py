"""Prompt text for turns, synthesis, and the review/decision entry points."""

from collections.abc import Sequence

from council.models import Message, Persona

FACILITATOR_SYSTEM_PROMPT = """You are a neutral facilitator synthesizing a council deliberation. Your job is to:
1. Identify points of consensus
2. Preserve and highlight dissenting views (don't smooth over disagreements)
3. Provide a balanced recommendation (if appropriate)
4. Note any unresolved questions

Be concise but thorough. Use clear structure with headers."""

_SYNTHESIS_REQUEST = """**Please synthesize this deliberation:**
- What did the council agree on?
- What key disagreements remain?
- What is the recommended path forward (if any)?
- What questions need further exploration?"""


def transcript_line(persona: Persona, content: str) -> str:
    return f"**{persona.name}:** {content}"


def build_turn_prompt(
    question: str,
    round_number: int,
    history: Sequence[str],
    persona: Persona,
) -> str:
    """Build the user prompt for one persona's turn.

    Round 1 asks for an opening take; later rounds ask the persona to
    respond to the discussion so far.
    """
    prompt = f"**Question for deliberation:** {question}\n\n"

    if history:
        prompt += "**Previous discussion:**\n" + "\n\n".join(history) + "\n\n"

    prompt += f"**Your turn (Round {round_number}):**\n"
    prompt += f"As the {persona.role}, share your perspective. "

    if round_number == 1:
        prompt += "Give your initial take on this question."
    else:
        prompt += "Respond to what others have said. Agree, disagree, or build on their points."

    prompt += "\n\nKeep your response focused and substantive (2-3 paragraphs max)."
    return prompt


def build_turn_messages(
    question: str,
    round_number: int,
    history: Sequence[str],
    persona: Persona,
) -> list[Message]:
    return [
        Message(role="system", content=persona.system_prompt),
        Message(role="user", content=build_turn_prompt(question, round_number, history, persona)),
    ]


def build_synthesis_messages(question: str, discussion: str) -> list[Message]:
    user_prompt = (
        f"**Original question:** {question}\n\n"
        f"**Full deliberation:**\n{discussion}\n\n"
        f"{_SYNTHESIS_REQUEST}"
    )
    return [
        Message(role="system", content=FACILITATOR_SYSTEM_PROMPT),
        Message(role="user", content=user_prompt),
    ]


def build_review_question(file_path: str, file_content: str) -> str:
    return (
        "Review this code for quality, security, maintainability, and potential improvements:\n\n"
        f"**File:** {file_path}\n\n"
        f"```\n{file_content}\n```\n\n"
        "Each persona should focus on their area of expertise while reviewing."
    )


def build_decision_question(options: Sequence[str]) -> str:
    options_list = "\n".join(f"{chr(ord('A') + i)}. {opt}" for i, opt in enumerate(options))
    return (
        "We need to make a decision between the following options:\n\n"
        f"{options_list}\n\n"
        "Analyze each option's pros, cons, risks, and recommend which to choose "
        "(or if more information is needed)."
    )
