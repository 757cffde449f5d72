"""
composer.py -- Turns a selection of memories into a stored story.

Steps:
1. Resolve the ids (empty selection and unknown ids are rejected)
2. Title from the distinct emotions, source text from the transcripts
3. Generate the narrative with Claude, or the offline template without a key
4. Optionally synthesize narration (best effort; failure leaves audio_ref empty)
5. Store the story

Nothing is stored if step 3 fails.
"""

import logging
from typing import Any, Optional

import anthropic

from jar.errors import (
    EmptySelection,
    NarrationAlreadyAttached,
    NarrationFailed,
    StoryGenerationFailed,
    UnknownMemory,
)
from jar.models import MemoryRecord, StoryRecord
from jar.pipeline import MemoryJar
from storyteller.narration import Narrator
from storyteller.narratives import fallback_story
from storyteller.prompt_builder import (
    assemble_prompt,
    build_source_text,
    build_title,
    distinct_emotions,
    join_emotions,
)

logger = logging.getLogger(__name__)

MAX_TOKENS: int = 1024
TEMPERATURE: float = 0.8


class StoryComposer:
    def __init__(
        self,
        jar: MemoryJar,
        claude_client: Optional[Any] = None,
        narrator: Optional[Narrator] = None,
        model: str = "claude-sonnet-4-6",
    ) -> None:
        self.jar = jar
        self.claude_client = claude_client
        self.narrator = narrator
        self.model = model

    async def call_claude(self, messages: list[dict[str, str]]) -> str:
        """Call Claude with the assembled prompt. Separates system from user messages."""
        system_content: str = ""
        user_messages: list[dict[str, str]] = []
        for msg in messages:
            if msg["role"] == "system":
                system_content = msg["content"]
            else:
                user_messages.append(msg)
        logger.info("Calling Claude (model=%s, system_len=%d)", self.model, len(system_content))
        try:
            response = await self.claude_client.messages.create(
                model=self.model,
                max_tokens=MAX_TOKENS,
                temperature=TEMPERATURE,
                system=system_content,
                messages=user_messages,
            )
        except anthropic.APIError as exc:
            logger.error("Claude API call failed: %s", exc)
            raise StoryGenerationFailed("Failed to generate the story. Please try again.") from exc
        text_blocks = [block.text for block in response.content if block.type == "text"]
        text = chr(10).join(text_blocks).strip()
        if not text:
            raise StoryGenerationFailed("The story came back empty. Please try again.")
        return text

    async def generate(self, memories: list[MemoryRecord]) -> str:
        if self.claude_client is None:
            return fallback_story(
                build_source_text(memories), join_emotions(distinct_emotions(memories)),
            )
        return await self.call_claude(assemble_prompt(memories))

    def resolve(self, memory_ids: list[str]) -> tuple[list[str], list[MemoryRecord]]:
        ids = list(dict.fromkeys(memory_ids))
        if not ids:
            raise EmptySelection("Please select at least one memory to create a story.")
        memories = self.jar.memories.by_ids(ids)
        if len(memories) != len(ids):
            found = {m.id for m in memories}
            missing = [i for i in ids if i not in found]
            raise UnknownMemory(f"Unknown memory ids: {missing}")
        return ids, memories

    async def compose(self, memory_ids: list[str], voice_narration: bool = False) -> StoryRecord:
        ids, memories = self.resolve(memory_ids)
        with self.jar.state.pending("is_generating_story"):
            content = await self.generate(memories)

        story = StoryRecord(title=build_title(memories), content=content, source_memory_ids=ids)

        if voice_narration:
            if self.narrator is not None and self.narrator.configured:
                try:
                    audio_ref = await self.narrator.synthesize(story.content)
                    story = story.model_copy(update={"audio_ref": audio_ref})
                except NarrationFailed as exc:
                    logger.warning("Narration skipped for story %s: %s", story.id, exc)
            else:
                logger.info("Narration requested but not configured -- skipping")

        stored = self.jar.stories.add(story)
        self.jar.state.selected_memory_ids = []
        return stored

    async def narrate(self, story_id: str) -> StoryRecord:
        """Synthesize narration for a stored story that has none yet."""
        story = self.jar.stories.require(story_id)
        if story.audio_ref:
            raise NarrationAlreadyAttached(f"Story {story_id} already has narration")
        if self.narrator is None:
            raise NarrationFailed("Narration is not configured")
        audio_ref = await self.narrator.synthesize(story.content)
        try:
            return self.jar.stories.attach_audio(story_id, audio_ref)
        except NarrationAlreadyAttached:
            self.jar.media.discard(audio_ref)
            raise
