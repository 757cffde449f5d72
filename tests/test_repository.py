"""
test_repository.py -- Memory ordering, capacity gate, lookups, and the
append-only story shelf.
"""

import pytest

from jar.errors import (
    CapacityExceeded,
    NarrationAlreadyAttached,
    PersistenceFailed,
    UnknownMemory,
    UnknownStory,
)
from jar.models import StoryRecord
from jar.repository import MemoryRepository, StoryShelf

from conftest import make_candidate


def _fill(repo: MemoryRepository, count: int) -> list[str]:
    return [repo.append(make_candidate(transcript=f"Memory number {i}")).id for i in range(count)]


class TestMemoryRepository:
    def test_append_assigns_identity_and_timestamp(self, persistence):
        repo = MemoryRepository(persistence)
        first = repo.append(make_candidate())
        second = repo.append(make_candidate())
        assert first.id and second.id and first.id != second.id
        assert first.created_at.endswith("Z")
        assert first.blockchain_tx is None

    def test_insertion_order_is_kept(self, persistence):
        repo = MemoryRepository(persistence)
        ids = _fill(repo, 4)
        assert [m.id for m in repo.all()] == ids

    def test_append_persists_immediately(self, persistence):
        repo = MemoryRepository(persistence)
        record = repo.append(make_candidate())
        assert persistence.load() == [record]

    def test_reload_restores_collection(self, persistence):
        ids = _fill(MemoryRepository(persistence), 3)
        assert [m.id for m in MemoryRepository(persistence).all()] == ids

    def test_free_plan_rejects_eleventh_memory(self, persistence):
        repo = MemoryRepository(persistence, is_premium=lambda: False)
        _fill(repo, 10)
        with pytest.raises(CapacityExceeded):
            repo.append(make_candidate())
        assert len(repo) == 10
        assert len(persistence.load()) == 10

    def test_premium_plan_is_exempt(self, persistence):
        repo = MemoryRepository(persistence, is_premium=lambda: True)
        _fill(repo, 10)
        repo.append(make_candidate())
        assert len(repo) == 11

    def test_by_ids_follows_requested_order(self, persistence):
        repo = MemoryRepository(persistence)
        a, b, c = _fill(repo, 3)
        assert [m.id for m in repo.by_ids([c, a])] == [c, a]

    def test_by_ids_skips_missing(self, persistence):
        repo = MemoryRepository(persistence)
        a, b = _fill(repo, 2)
        assert [m.id for m in repo.by_ids(["nope", b, "gone"])] == [b]
        assert repo.by_ids([]) == []

    def test_failed_write_leaves_collection_unchanged(self, persistence, monkeypatch):
        repo = MemoryRepository(persistence)
        _fill(repo, 2)

        def broken(key, value):
            raise OSError("read-only filesystem")

        monkeypatch.setattr(persistence.store, "set", broken)
        with pytest.raises(PersistenceFailed):
            repo.append(make_candidate())
        assert len(repo) == 2

    def test_blockchain_tx_set_once(self, persistence):
        repo = MemoryRepository(persistence)
        (memory_id,) = _fill(repo, 1)
        updated = repo.attach_blockchain_tx(memory_id, "ALGO-TX-1")
        assert updated.blockchain_tx == "ALGO-TX-1"
        again = repo.attach_blockchain_tx(memory_id, "ALGO-TX-2")
        assert again.blockchain_tx == "ALGO-TX-1"
        assert persistence.load()[0].blockchain_tx == "ALGO-TX-1"

    def test_blockchain_tx_unknown_memory(self, persistence):
        with pytest.raises(UnknownMemory):
            MemoryRepository(persistence).attach_blockchain_tx("missing", "tx")


class TestStoryShelf:
    def _story(self) -> StoryRecord:
        return StoryRecord(title="A story of happy moments", content="Once...", source_memory_ids=["m1"])

    def test_add_and_reload(self, persistence):
        shelf = StoryShelf(persistence)
        story = shelf.add(self._story())
        assert StoryShelf(persistence).all() == [story]

    def test_audio_attached_once(self, persistence):
        shelf = StoryShelf(persistence)
        story = shelf.add(self._story())
        narrated = shelf.attach_audio(story.id, "/media/narration-1.mp3")
        assert narrated.audio_ref == "/media/narration-1.mp3"
        with pytest.raises(NarrationAlreadyAttached):
            shelf.attach_audio(story.id, "/media/narration-2.mp3")
        assert StoryShelf(persistence).get(story.id).audio_ref == "/media/narration-1.mp3"

    def test_unknown_story(self, persistence):
        with pytest.raises(UnknownStory):
            StoryShelf(persistence).require("missing")
