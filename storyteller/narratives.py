"""
narratives.py -- Pre-authored stories used when no model key is configured.

The concatenated transcripts pick one of four templates (grandchildren,
family, health, anything else); the emotion list is filled in.
"""

import logging

logger = logging.getLogger(__name__)

KEYWORD_FAMILIES: list[tuple[str, tuple[str, ...]]] = [
    ("grandchildren", ("grandchild", "grandkid", "grandson", "granddaughter")),
    ("family", ("family", "mother", "father", "my mom", "my dad", "daughter", "wedding", "children")),
    ("health", ("health", "doctor", "hospital", "sick", "healing", "recovery")),
]

TEMPLATES: dict[str, str] = {
    "grandchildren": (
        "There is a particular light that comes into a grandparent's eyes when the "
        "little ones arrive. These {emotions} memories hold that light. They remember "
        "afternoons that stretched on, small hands reaching up, and laughter that "
        "filled every corner. Years from now, the grandchildren will hear these words "
        "and know how deeply they were treasured, long before they understood it."
    ),
    "family": (
        "Every family keeps its history in moments like these. Across {emotions} "
        "days, the same thread runs through: the people who gathered around the "
        "table, who showed up, who stayed. These memories are not grand events but "
        "they are the foundation of a home, passed down so that the ones who come "
        "next know where they come from."
    ),
    "health": (
        "Some chapters are written in waiting rooms and long nights. These {emotions} "
        "memories tell of a body and a spirit tested, and of the people who stood "
        "close through it. What remains is not the fear but the courage, and the "
        "quiet gratitude for every ordinary day that followed."
    ),
    "generic": (
        "Once upon a time, in the tapestry of a life, there were moments that "
        "defined the journey. These {emotions} memories, woven together, tell the "
        "story of a life well-lived, full of feeling, connection and meaning. Each "
        "one is not just an event but a piece of the heart that makes us who we are."
    ),
}


def pick_template(source_text: str) -> str:
    text = source_text.lower()
    for family, keywords in KEYWORD_FAMILIES:
        if any(keyword in text for keyword in keywords):
            return family
    return "generic"


def fallback_story(source_text: str, emotions: str) -> str:
    """Deterministic narrative for the given transcripts and emotion list."""
    family = pick_template(source_text)
    logger.info("Offline story generation using the %s template", family)
    return TEMPLATES[family].format(emotions=emotions or "treasured")
