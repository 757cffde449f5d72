"""
prompt_builder.py -- Story prompt assembly.

System message: the storyteller identity and delivery rules.
User message: the selected transcripts, concatenated in selection order.

Only transcript text and emotions are sent to the model, never audio
references or ids.
"""

import logging

from jar.models import MemoryRecord

logger = logging.getLogger(__name__)

STORYTELLER_INSTRUCTION: str = (
    "You are a compassionate storyteller synthesizing family memories. "
    "You weave short spoken recollections into one warm narrative that a "
    "family will keep and read aloud for years."
)


def distinct_emotions(memories: list[MemoryRecord]) -> list[str]:
    """Emotions in order of first appearance, without repeats."""
    seen: list[str] = []
    for memory in memories:
        if memory.emotion not in seen:
            seen.append(memory.emotion)
    return seen


def join_emotions(emotions: list[str]) -> str:
    if len(emotions) <= 1:
        return "".join(emotions)
    return ", ".join(emotions[:-1]) + " and " + emotions[-1]


def build_title(memories: list[MemoryRecord]) -> str:
    return f"A story of {join_emotions(distinct_emotions(memories))} moments"


def build_source_text(memories: list[MemoryRecord]) -> str:
    """Selected transcripts joined in selection order."""
    return "\n\n".join(memory.transcript for memory in memories)


def build_instruction_layer() -> str:
    parts = [
        "DELIVERY INSTRUCTIONS:",
        "",
        "Rules:",
        "1. Use only the people, places and events present in the memories.",
        "2. Keep the speaker's own phrases where they carry feeling.",
        "3. Connect the memories into one flowing story, not a list.",
        "4. Write in the third person, warm but not sentimental.",
        "5. Keep it under 350 words.",
    ]
    return chr(10).join(parts)


def build_memory_layer(memories: list[MemoryRecord]) -> str:
    emotions = join_emotions(distinct_emotions(memories))
    return (
        f"These memories carry {emotions} feelings. "
        "Turn them into a single story.\n\n"
        + build_source_text(memories)
    )


def assemble_prompt(memories: list[MemoryRecord]) -> list[dict[str, str]]:
    """
    Assemble the system and user messages for the narrative model.

    Returns a list of message dicts with 'role' and 'content' keys.
    """
    system_content = STORYTELLER_INSTRUCTION + chr(10) + chr(10) + build_instruction_layer()
    user_content = build_memory_layer(memories)

    logger.info("Assembled story prompt: %d memories, %d chars", len(memories), len(user_content))

    return [
        {"role": "system", "content": system_content},
        {"role": "user", "content": user_content},
    ]
