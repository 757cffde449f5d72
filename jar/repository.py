"""
repository.py -- In-process collections of memories and stories.

MemoryRepository is the authoritative ordered list of MemoryRecords
(insertion order is chronological). It assigns ids, enforces the free-tier
capacity gate, and persists the full snapshot on every change.

StoryShelf does the same for StoryRecords; the only permitted change to a
stored story is attaching narration audio once.

Neither class awaits anything between checking a limit and appending, so
appends are atomic with respect to the event loop.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from jar.errors import (
    CapacityExceeded,
    NarrationAlreadyAttached,
    UnknownMemory,
    UnknownStory,
)
from jar.mirror import MEMORIES_TABLE, STORIES_TABLE, memory_row, story_row
from jar.models import MemoryCandidate, MemoryRecord, StoryRecord
from jar.persistence import PersistenceAdapter

logger = logging.getLogger(__name__)

DEFAULT_FREE_MEMORY_LIMIT: int = 10


class MemoryRepository:
    """Ordered memory collection with the free-tier capacity gate."""

    def __init__(
        self,
        persistence: PersistenceAdapter,
        is_premium: Callable[[], bool] = lambda: False,
        free_limit: int = DEFAULT_FREE_MEMORY_LIMIT,
    ) -> None:
        self._persistence = persistence
        self._is_premium = is_premium
        self.free_limit = free_limit
        self._records: list[MemoryRecord] = persistence.load()

    def __len__(self) -> int:
        return len(self._records)

    def append(self, candidate: MemoryCandidate) -> MemoryRecord:
        """Assign id and timestamp, gate on capacity, persist, then add."""
        if not self._is_premium() and len(self._records) >= self.free_limit:
            logger.info("Capacity reached (%d/%d) on free plan", len(self._records), self.free_limit)
            raise CapacityExceeded(
                f"The free plan holds {self.free_limit} memories. Upgrade to keep recording."
            )
        record = MemoryRecord(**candidate.model_dump())
        snapshot = [*self._records, record]
        self._persistence.save(snapshot)
        self._records = snapshot
        self._persistence.mirror_insert(MEMORIES_TABLE, memory_row(record, self._persistence.user_id))
        logger.info("Appended memory %s (%s, themes=%s)", record.id, record.emotion, record.themes)
        return record

    def all(self) -> list[MemoryRecord]:
        return list(self._records)

    def get(self, memory_id: str) -> Optional[MemoryRecord]:
        for record in self._records:
            if record.id == memory_id:
                return record
        return None

    def by_ids(self, ids: list[str]) -> list[MemoryRecord]:
        """Records in the order of ids; unknown ids are skipped, not errors."""
        index = {record.id: record for record in self._records}
        return [index[i] for i in ids if i in index]

    def attach_blockchain_tx(self, memory_id: str, tx: str) -> MemoryRecord:
        """Record the verification transaction for a memory (set once)."""
        record = self.get(memory_id)
        if record is None:
            raise UnknownMemory(f"No memory with id {memory_id}")
        if record.blockchain_tx == tx:
            return record
        if record.blockchain_tx:
            logger.warning("Memory %s already has blockchain tx %s", memory_id, record.blockchain_tx)
            return record
        updated = record.model_copy(update={"blockchain_tx": tx})
        snapshot = [updated if r.id == memory_id else r for r in self._records]
        self._persistence.save(snapshot)
        self._records = snapshot
        self._persistence.mirror_update(MEMORIES_TABLE, memory_id, {"blockchain_tx": tx})
        return updated


class StoryShelf:
    """Append-only collection of generated stories."""

    def __init__(self, persistence: PersistenceAdapter) -> None:
        self._persistence = persistence
        self._stories: list[StoryRecord] = persistence.load_stories()

    def __len__(self) -> int:
        return len(self._stories)

    def add(self, story: StoryRecord) -> StoryRecord:
        snapshot = [*self._stories, story]
        self._persistence.save_stories(snapshot)
        self._stories = snapshot
        self._persistence.mirror_insert(STORIES_TABLE, story_row(story, self._persistence.user_id))
        logger.info("Stored story %s from %d memories", story.id, len(story.source_memory_ids))
        return story

    def all(self) -> list[StoryRecord]:
        return list(self._stories)

    def get(self, story_id: str) -> Optional[StoryRecord]:
        for story in self._stories:
            if story.id == story_id:
                return story
        return None

    def require(self, story_id: str) -> StoryRecord:
        story = self.get(story_id)
        if story is None:
            raise UnknownStory(f"No story with id {story_id}")
        return story

    def attach_audio(self, story_id: str, audio_ref: str) -> StoryRecord:
        """Attach narration to a story that has none yet."""
        story = self.require(story_id)
        if story.audio_ref:
            raise NarrationAlreadyAttached(f"Story {story_id} already has narration")
        updated = story.model_copy(update={"audio_ref": audio_ref})
        snapshot = [updated if s.id == story_id else s for s in self._stories]
        self._persistence.save_stories(snapshot)
        self._stories = snapshot
        self._persistence.mirror_update(STORIES_TABLE, story_id, {"audio_url": audio_ref})
        return updated
