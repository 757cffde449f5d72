"""
pipeline.py -- The memory jar facade.

Wires the persistence adapter, repositories, family circle and
transcription gateway together, and runs the memory flow in strict order:

1. Transcribe the captured clip (suspension point)
2. Derive mood and themes
3. Store the audio reference
4. Append to the repository, which persists and mirrors the record
"""

from __future__ import annotations

import logging
from typing import Optional

from jar.config import Settings
from jar.errors import InvalidEmotion, PersistenceFailed
from jar.family import FamilyCircle
from jar.media import AudioStore
from jar.models import VALID_EMOTIONS, AudioClip, MemoryCandidate, MemoryRecord
from jar.persistence import PersistenceAdapter
from jar.plans import PREMIUM_PLANS, is_valid_plan
from jar.repository import MemoryRepository, StoryShelf
from jar.search import search
from jar.state import AppState
from jar.tagging import derive_mood, derive_themes
from jar.transcription import Transcriber

logger = logging.getLogger(__name__)


def validate_emotion(emotion: str) -> str:
    normalized = (emotion or "").strip().lower()
    if normalized not in VALID_EMOTIONS:
        raise InvalidEmotion(f"Unknown emotion: {emotion}. Valid emotions: {list(VALID_EMOTIONS)}")
    return normalized


class MemoryJar:
    """Everything one user's jar holds, plus the flows that fill it."""

    def __init__(
        self,
        settings: Settings,
        persistence: PersistenceAdapter,
        transcriber: Transcriber,
        media: Optional[AudioStore] = None,
    ) -> None:
        self.settings = settings
        self.persistence = persistence
        self.transcriber = transcriber
        self.media = media or AudioStore(settings.media_dir)
        stored_plan = persistence.load_plan()
        plan = stored_plan if stored_plan and is_valid_plan(stored_plan) else settings.plan
        self.state = AppState(plan=plan)
        self.memories = MemoryRepository(
            persistence, is_premium=self.is_premium, free_limit=settings.free_memory_limit,
        )
        self.stories = StoryShelf(persistence)
        self.family = FamilyCircle(
            persistence, is_premium=self.is_premium, free_limit=settings.free_family_limit,
        )

    def is_premium(self) -> bool:
        return self.state.plan in PREMIUM_PLANS

    def set_plan(self, plan: str) -> None:
        """Record the plan reported by the billing provider. It survives restarts."""
        if not is_valid_plan(plan):
            raise ValueError(f"Unknown plan: {plan}")
        self.persistence.save_plan(plan)
        logger.info("Plan changed from %s to %s", self.state.plan, plan)
        self.state.plan = plan

    async def transcribe(self, clip: AudioClip, emotion: str) -> str:
        with self.state.pending("is_transcribing"):
            return await self.transcriber.transcribe(clip, emotion)

    def keep(
        self,
        clip: AudioClip,
        emotion: str,
        transcript: str,
        prompt: Optional[str] = None,
    ) -> MemoryRecord:
        """Tag a transcript and append it as a new memory."""
        audio_ref = clip.audio_ref
        stored_here = False
        if not audio_ref and clip.data:
            try:
                audio_ref = self.media.save(clip.data, clip.content_type)
            except OSError as exc:
                raise PersistenceFailed(f"Could not store recording audio: {exc}") from exc
            stored_here = True
        candidate = MemoryCandidate(
            emotion=emotion,
            prompt=prompt or None,
            audio_ref=audio_ref,
            transcript=transcript,
            mood=derive_mood(emotion),
            themes=derive_themes(transcript),
        )
        try:
            return self.memories.append(candidate)
        except Exception:
            if stored_here and audio_ref:
                self.media.discard(audio_ref)
            raise

    async def record(
        self,
        clip: AudioClip,
        emotion: str,
        prompt: Optional[str] = None,
    ) -> MemoryRecord:
        """Transcribe, tag and store one recording."""
        emotion = validate_emotion(emotion)
        transcript = await self.transcribe(clip, emotion)
        return self.keep(clip, emotion, transcript, prompt)

    def search(self, query: str) -> list[MemoryRecord]:
        return search(self.memories.all(), query)

    def share_url(self, memory_id: str) -> Optional[str]:
        if self.memories.get(memory_id) is None:
            return None
        return f"{self.settings.share_base_url}/memory/{memory_id}"
