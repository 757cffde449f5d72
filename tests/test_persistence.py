"""
test_persistence.py -- Local snapshot round-trips and the best-effort mirror.
"""

import json

import httpx
import pytest

from jar.errors import PersistenceFailed
from jar.mirror import MEMORIES_TABLE, RemoteMirror, memory_row
from jar.models import AudioClip, MemoryRecord
from jar.persistence import MEMORIES_KEY, STORAGE_FILENAME, STORIES_KEY, LocalStore, PersistenceAdapter
from jar.pipeline import MemoryJar
from jar.repository import MemoryRepository
from jar.transcription import Transcriber

from conftest import make_candidate, mock_client


def _records() -> list[MemoryRecord]:
    return [
        MemoryRecord(**make_candidate("happy", "A picnic with my grandchildren").model_dump()),
        MemoryRecord(**make_candidate("sad", "I miss my mother's voice").model_dump()),
        MemoryRecord(**make_candidate("proud", "She finished her first marathon").model_dump()),
    ]


class TestLocalSnapshot:
    def test_load_without_snapshot_is_empty(self, persistence):
        assert persistence.load() == []

    def test_save_then_load_returns_same_records_in_order(self, persistence):
        records = _records()
        persistence.save(records)
        assert persistence.load() == records

    def test_save_of_loaded_snapshot_changes_nothing(self, persistence):
        persistence.save(_records())
        before = persistence.store.path.read_bytes()
        persistence.save(persistence.load())
        assert persistence.store.path.read_bytes() == before

    def test_save_overwrites_wholesale(self, persistence):
        persistence.save(_records())
        persistence.save(_records()[:1])
        assert len(persistence.load()) == 1

    def test_snapshot_is_one_array_under_fixed_key(self, persistence):
        persistence.save(_records())
        data = json.loads(persistence.store.path.read_text(encoding="utf-8"))
        assert isinstance(data[MEMORIES_KEY], list)
        assert len(data[MEMORIES_KEY]) == 3

    def test_collections_do_not_clobber_each_other(self, persistence):
        persistence.save(_records())
        persistence.save_stories([])
        persistence.save_family([])
        assert len(persistence.load()) == 3

    def test_write_failure_is_persistence_failed(self, persistence, monkeypatch):
        def broken(key, value):
            raise OSError("disk full")

        monkeypatch.setattr(persistence.store, "set", broken)
        with pytest.raises(PersistenceFailed, match="disk full"):
            persistence.save(_records())

    def test_restart_loads_local_snapshot(self, settings):
        path = settings.data_dir / STORAGE_FILENAME
        first = PersistenceAdapter(LocalStore(path))
        first.save(_records())
        second = PersistenceAdapter(LocalStore(path))
        assert [r.transcript for r in second.load()] == [r.transcript for r in _records()]


class TestRemoteMirror:
    async def test_new_memory_is_mirrored_with_user_id(self, settings):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json=json.loads(request.content))

        async with mock_client(handler) as client:
            mirror = RemoteMirror("https://example.supabase.co", "anon-key", client)
            persistence = PersistenceAdapter(
                LocalStore(settings.data_dir / STORAGE_FILENAME), mirror, user_id="user-7",
            )
            repo = MemoryRepository(persistence)
            record = repo.append(make_candidate())
            await persistence.drain()

        assert len(seen) == 1
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/rest/v1/memories"
        assert seen[0].headers["apikey"] == "anon-key"
        row = json.loads(seen[0].content)[0]
        assert row["id"] == record.id
        assert row["user_id"] == "user-7"

    async def test_mirror_error_status_is_swallowed(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        async with mock_client(handler) as client:
            mirror = RemoteMirror("https://example.supabase.co", "anon-key", client)
            persistence = PersistenceAdapter(LocalStore(settings.data_dir / STORAGE_FILENAME), mirror)
            repo = MemoryRepository(persistence)
            record = repo.append(make_candidate())
            await persistence.drain()

        assert persistence.load() == [record]

    async def test_mirror_unreachable_is_swallowed(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with mock_client(handler) as client:
            mirror = RemoteMirror("https://example.supabase.co", "anon-key", client)
            persistence = PersistenceAdapter(LocalStore(settings.data_dir / STORAGE_FILENAME), mirror)
            repo = MemoryRepository(persistence)
            repo.append(make_candidate())
            await persistence.drain()

        assert len(repo.all()) == 1

    async def test_select_and_update(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                assert request.url.params["user_id"] == "eq.user-1"
                return httpx.Response(200, json=[{"id": "m1"}, {"id": "m2"}])
            assert request.url.params["id"] == "eq.m1"
            return httpx.Response(200, json=[{"id": "m1", "blockchain_tx": "0xabc"}])

        async with mock_client(handler) as client:
            mirror = RemoteMirror("https://example.supabase.co/", "anon-key", client)
            rows = await mirror.select(MEMORIES_TABLE, "user-1")
            updated = await mirror.update(MEMORIES_TABLE, "m1", {"blockchain_tx": "0xabc"})

        assert [r["id"] for r in rows] == ["m1", "m2"]
        assert updated["blockchain_tx"] == "0xabc"

    def test_memory_row_shape(self):
        record = _records()[0]
        row = memory_row(record, "user-1")
        assert row["audio_url"] == record.audio_ref
        assert row["themes"] == record.themes
        assert row["user_id"] == "user-1"

    def test_no_event_loop_skips_mirror(self, settings):
        mirror = RemoteMirror("https://example.supabase.co", "anon-key", httpx.AsyncClient())
        persistence = PersistenceAdapter(LocalStore(settings.data_dir / STORAGE_FILENAME), mirror)
        repo = MemoryRepository(persistence)
        repo.append(make_candidate())
        assert len(persistence.load()) == 1


class TestCorruptStore:
    def test_save_over_unreadable_file_is_persistence_failed(self, persistence):
        persistence.store.path.parent.mkdir(parents=True, exist_ok=True)
        persistence.store.path.write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceFailed):
            persistence.save([])

    def test_load_unreadable_file_is_persistence_failed(self, persistence):
        persistence.store.path.parent.mkdir(parents=True, exist_ok=True)
        persistence.store.path.write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceFailed):
            persistence.load()

    def test_malformed_entry_is_persistence_failed(self, persistence):
        persistence.store.set(MEMORIES_KEY, [{"id": "m1", "emotion": "happy"}])
        with pytest.raises(PersistenceFailed):
            persistence.load()

    def test_non_object_entry_is_persistence_failed(self, persistence):
        persistence.store.set(STORIES_KEY, ["just a string"])
        with pytest.raises(PersistenceFailed):
            persistence.load_stories()

    def test_audio_write_failure_is_persistence_failed(self, jar, monkeypatch):
        def disk_full(data, content_type="audio/wav", prefix="memory"):
            raise OSError("disk full")

        monkeypatch.setattr(jar.media, "save", disk_full)
        clip = AudioClip(data=b"RIFF-fake-wave")
        with pytest.raises(PersistenceFailed, match="disk full"):
            jar.keep(clip, "happy", "A quiet morning with coffee.")
        assert jar.memories.all() == []


class TestPlan:
    def test_no_plan_stored(self, persistence):
        assert persistence.load_plan() is None

    def test_plan_survives_restart(self, settings, persistence):
        jar = MemoryJar(settings, persistence, Transcriber(settings))
        jar.set_plan("premium")

        restarted = MemoryJar(settings, PersistenceAdapter(LocalStore(persistence.store.path)), Transcriber(settings))
        assert restarted.state.plan == "premium"
        assert restarted.is_premium()

    def test_unknown_stored_plan_falls_back_to_settings(self, settings, persistence):
        persistence.save_plan("platinum")
        jar = MemoryJar(settings, persistence, Transcriber(settings))
        assert jar.state.plan == settings.plan

    def test_plan_kept_apart_from_memories(self, persistence):
        persistence.save(_records())
        persistence.save_plan("family")
        assert len(persistence.load()) == 3
        assert persistence.load_plan() == "family"
