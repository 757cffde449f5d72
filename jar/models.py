"""
models.py -- Pydantic models for the memory jar.

Defines: AudioClip, MemoryCandidate, MemoryRecord, StoryRecord, FamilyMember.
All data crossing component boundaries uses these models.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Valid enumerations
# ---------------------------------------------------------------------------

VALID_EMOTIONS: tuple[str, ...] = (
    "happy",
    "sad",
    "grateful",
    "excited",
    "anxious",
    "proud",
)

DEFAULT_EMOTION: str = "happy"

VALID_ACCESS_LEVELS: set[str] = {"viewer", "contributor"}

FREEFORM: str = "freeform"

PROMPTS: dict[str, list[str]] = {
    "happy": [
        "Tell me about a day you could not stop smiling.",
        "What is a small thing that always makes you happy?",
    ],
    "sad": [
        "Who do you miss, and what would you tell them today?",
        "Describe a hard goodbye you still think about.",
    ],
    "grateful": [
        "Who helped you when you needed it most?",
        "What blessing do you almost forget to notice?",
    ],
    "excited": [
        "What are you looking forward to right now?",
        "Describe the night before a big day.",
    ],
    "anxious": [
        "What worry kept you up at night, and how did it turn out?",
        "Tell me about a time you were nervous but went ahead anyway.",
    ],
    "proud": [
        "What achievement are you proudest of?",
        "Tell me about a moment someone in your family made you proud.",
    ],
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Input models -- what capture hands to the jar
# ---------------------------------------------------------------------------

class AudioClip(BaseModel):
    """Captured audio plus the opaque reference the device gave it."""

    data: bytes
    content_type: str = "audio/wav"
    filename: str = "memory.wav"
    audio_ref: Optional[str] = None


class MemoryCandidate(BaseModel):
    """A transcribed, tagged recording that has not been appended yet."""

    emotion: str
    prompt: Optional[str] = None
    audio_ref: Optional[str] = None
    transcript: str = Field(min_length=1)
    mood: str
    themes: list[str] = Field(min_length=1)


# ---------------------------------------------------------------------------
# Stored records
# ---------------------------------------------------------------------------

class MemoryRecord(BaseModel):
    """A stored voice memory. Only blockchain_tx is ever set after creation."""

    id: str = Field(default_factory=_new_id)
    emotion: str
    prompt: Optional[str] = None
    audio_ref: Optional[str] = None
    transcript: str = Field(min_length=1)
    mood: str
    themes: list[str] = Field(min_length=1)
    created_at: str = Field(default_factory=_now_iso)
    blockchain_tx: Optional[str] = None


class StoryRecord(BaseModel):
    """A generated story. audio_ref may be attached once, nothing else changes."""

    id: str = Field(default_factory=_new_id)
    title: str
    content: str
    source_memory_ids: list[str] = Field(min_length=1)
    created_at: str = Field(default_factory=_now_iso)
    audio_ref: Optional[str] = None


class FamilyMember(BaseModel):
    """Someone invited into the family circle."""

    id: str = Field(default_factory=_new_id)
    name: str
    email: str
    access_level: str = "viewer"
    joined_at: str = Field(default_factory=_now_iso)
