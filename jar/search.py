"""
search.py -- Free-text and voice-command lookup over memories.

A memory matches when the query appears in its transcript, or the query
mentions the memory's emotion or mood. Results keep repository order;
there is no relevance ranking.
"""

from __future__ import annotations

import logging
from typing import Optional

from jar.models import MemoryRecord

logger = logging.getLogger(__name__)

PLAY_COMMAND: str = "play"


def matches(memory: MemoryRecord, query: str) -> bool:
    """True if the lower-cased query is a substring of the transcript, or the
    query mentions the memory's emotion or mood.

    The query is used as typed, surrounding whitespace included. A blank
    query matches nothing rather than everything.
    """
    if not query.strip():
        return False
    q = query.lower()
    return (
        q in memory.transcript.lower()
        or memory.emotion.lower() in q
        or memory.mood.lower() in q
    )


def search(memories: list[MemoryRecord], query: str) -> list[MemoryRecord]:
    """Return the memories matching query, in the order given."""
    results = [m for m in memories if matches(m, query)]
    logger.info("Search %r: %d of %d memories matched", query, len(results), len(memories))
    return results


def autoplay_target(query: str, results: list[MemoryRecord]) -> Optional[str]:
    """Audio to play for a spoken "play ..." command with exactly one match."""
    if PLAY_COMMAND in query.lower() and len(results) == 1:
        return results[0].audio_ref
    return None
