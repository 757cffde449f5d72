"""
conftest.py -- Shared fixtures: isolated data directory, offline jar,
and stand-ins for the remote services.
"""

from types import SimpleNamespace
from typing import Any, Callable

import httpx
import pytest

from jar.config import Settings
from jar.models import MemoryCandidate
from jar.persistence import STORAGE_FILENAME, LocalStore, PersistenceAdapter
from jar.pipeline import MemoryJar
from jar.tagging import derive_mood, derive_themes
from jar.transcription import Transcriber


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(data_dir=tmp_path / "jar-data")


@pytest.fixture
def persistence(settings) -> PersistenceAdapter:
    return PersistenceAdapter(LocalStore(settings.data_dir / STORAGE_FILENAME))


@pytest.fixture
def jar(settings, persistence) -> MemoryJar:
    return MemoryJar(settings, persistence, Transcriber(settings))


def make_candidate(emotion: str = "happy", transcript: str = "A sunny afternoon at the lake.") -> MemoryCandidate:
    return MemoryCandidate(
        emotion=emotion,
        transcript=transcript,
        mood=derive_mood(emotion),
        themes=derive_themes(transcript),
    )


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class FakeMessages:
    def __init__(self, text: str = "", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=self.text)])


class FakeClaude:
    """Stands in for anthropic.AsyncAnthropic: only messages.create is used."""

    def __init__(self, text: str = "", error: Exception | None = None) -> None:
        self.messages = FakeMessages(text, error)
