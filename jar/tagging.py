"""
tagging.py -- Mood and theme derivation from emotion and transcript text.

Responsibility:
- Map each of the six emotions to its mood (default for anything else)
- Scan a transcript for fixed keyword groups and emit one theme per match
- Fall back to a single "Life Story" theme when nothing matches

Matching is plain case-insensitive substring search. A transcript may
match several groups; all matches are emitted in table order.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

DEFAULT_THEME: str = "Life Story"
DEFAULT_MOOD: str = "Reflective"

MOODS: dict[str, str] = {
    "happy": "Joyful",
    "sad": "Melancholy",
    "grateful": "Thankful",
    "excited": "Enthusiastic",
    "anxious": "Worried",
    "proud": "Accomplished",
}

THEME_KEYWORDS: dict[str, tuple[str, ...]] = {
    "Family": (
        "family", "grandchild", "grandkid", "grandson", "granddaughter",
        "daughter", "mother", "father", "my mom", "my dad", "wedding", "children",
        "husband", "wife", "sister", "brother",
    ),
    "Health": (
        "health", "doctor", "hospital", "sick", "illness", "surgery",
        "recovery", "healing", "medicine",
    ),
    "Friendship": (
        "friend", "buddy", "neighbor", "companion",
    ),
    "Nostalgia": (
        "remember", "childhood", "years ago", "used to", "back then",
        "i miss", "growing up",
    ),
    "Gratitude": (
        "grateful", "thankful", "blessing", "blessed", "appreciate",
        "thank you",
    ),
}


def derive_mood(emotion: str) -> str:
    """Return the mood for an emotion, or DEFAULT_MOOD for anything unrecognized."""
    return MOODS.get((emotion or "").strip().lower(), DEFAULT_MOOD)


def derive_themes(transcript: str) -> list[str]:
    """Return every theme whose keyword group appears in the transcript."""
    text = (transcript or "").lower()
    themes = [
        theme
        for theme, keywords in THEME_KEYWORDS.items()
        if any(keyword in text for keyword in keywords)
    ]
    if not themes:
        return [DEFAULT_THEME]
    logger.debug("Derived themes %s", themes)
    return themes
