"""
persistence.py -- Local snapshot store with a best-effort remote mirror.

Responsibility:
- Keep one array-valued entry per collection under a fixed key in a local
  key-value file, overwritten wholesale on every save
- Load the local snapshot unconditionally on start (no remote reconciliation)
- Replicate new rows and updates to the remote mirror in background tasks
  whose failures are logged and swallowed

The local write is the source of truth and completes before save() returns.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from jar.errors import PersistenceFailed, RemoteMirrorUnavailable
from jar.mirror import RemoteMirror
from jar.models import FamilyMember, MemoryRecord, StoryRecord

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

MEMORIES_KEY: str = "memoryJar.memories"
STORIES_KEY: str = "memoryJar.stories"
FAMILY_KEY: str = "memoryJar.familyMembers"
PLAN_KEY: str = "memoryJar.plan"
STORAGE_FILENAME: str = "local_storage.json"


class LocalStore:
    """A JSON file used as a string-keyed store, like browser local storage."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read_all(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            logger.warning("Ignoring non-object local store at %s", self.path)
            return {}
        return data

    def get(self, key: str) -> Any:
        return self._read_all().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read_all()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".store_", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


class PersistenceAdapter:
    """One interface over the local store and the optional remote mirror."""

    def __init__(
        self,
        store: LocalStore,
        mirror: Optional[RemoteMirror] = None,
        user_id: str = "local-user",
    ) -> None:
        self.store = store
        self.mirror = mirror
        self.user_id = user_id
        self._pending: set[asyncio.Task] = set()

    # -- local snapshot ------------------------------------------------------

    def _load_list(self, key: str) -> list[dict[str, Any]]:
        try:
            raw = self.store.get(key)
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceFailed(f"Could not read local store: {exc}") from exc
        return raw if isinstance(raw, list) else []

    def _parse(self, model: type[T], key: str) -> list[T]:
        try:
            return [model(**item) for item in self._load_list(key)]
        except (TypeError, ValidationError) as exc:
            raise PersistenceFailed(f"Malformed entry under {key}: {exc}") from exc

    def _save_list(self, key: str, items: list[Any]) -> None:
        payload = [item.model_dump(mode="json") for item in items]
        try:
            self.store.set(key, payload)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceFailed(f"Could not write local store: {exc}") from exc
        logger.debug("Saved %d entries under %s", len(payload), key)

    def load(self) -> list[MemoryRecord]:
        """Restore the last memory snapshot, or an empty list if none exists."""
        records = self._parse(MemoryRecord, MEMORIES_KEY)
        logger.info("Loaded %d memories from %s", len(records), self.store.path)
        return records

    def save(self, records: list[MemoryRecord]) -> None:
        """Overwrite the memory snapshot. Returns once the local write is done."""
        self._save_list(MEMORIES_KEY, records)

    def load_stories(self) -> list[StoryRecord]:
        return self._parse(StoryRecord, STORIES_KEY)

    def save_stories(self, stories: list[StoryRecord]) -> None:
        self._save_list(STORIES_KEY, stories)

    def load_family(self) -> list[FamilyMember]:
        return self._parse(FamilyMember, FAMILY_KEY)

    def save_family(self, members: list[FamilyMember]) -> None:
        self._save_list(FAMILY_KEY, members)

    def load_plan(self) -> Optional[str]:
        """The last plan reported by the billing provider, if any."""
        try:
            plan = self.store.get(PLAN_KEY)
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceFailed(f"Could not read local store: {exc}") from exc
        return plan if isinstance(plan, str) else None

    def save_plan(self, plan: str) -> None:
        try:
            self.store.set(PLAN_KEY, plan)
        except (OSError, ValueError) as exc:
            raise PersistenceFailed(f"Could not write local store: {exc}") from exc

    # -- remote mirror ---------------------------------------------------------

    def mirror_insert(self, table: str, row: dict[str, Any]) -> None:
        """Replicate a new row in the background. Never raises."""
        if self.mirror is None:
            return
        self._schedule(self.mirror.insert(table, row), f"insert into {table}")

    def mirror_update(self, table: str, row_id: str, fields: dict[str, Any]) -> None:
        """Replicate an update in the background. Never raises."""
        if self.mirror is None:
            return
        self._schedule(self.mirror.update(table, row_id, fields), f"update {table}/{row_id}")

    def _schedule(self, coro: Any, label: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.warning("No event loop running; skipped mirror %s", label)
            return
        task = loop.create_task(self._guarded(coro, label))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _guarded(self, coro: Any, label: str) -> None:
        try:
            await coro
            logger.debug("Mirrored %s", label)
        except RemoteMirrorUnavailable as exc:
            logger.warning("Remote mirror %s failed: %s", label, exc)

    async def drain(self) -> None:
        """Wait for every in-flight mirror task (shutdown and tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
