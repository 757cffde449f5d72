"""
state.py -- Explicit, serializable application state.

Each screen is a projection of the memory, story and family collections
plus these flags. Nothing here is authoritative data.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from pydantic import BaseModel, Field, PrivateAttr

VIEWS: tuple[str, ...] = ("home", "record", "collection", "stories", "family", "pricing")

IN_PROGRESS_FLAGS: set[str] = {"is_recording", "is_transcribing", "is_generating_story"}


class AppState(BaseModel):
    view: str = "home"
    selected_emotion: Optional[str] = None
    selected_prompt: Optional[str] = None
    is_recording: bool = False
    is_transcribing: bool = False
    is_generating_story: bool = False
    selected_memory_ids: list[str] = Field(default_factory=list)
    plan: str = "free"

    _in_flight: dict[str, int] = PrivateAttr(default_factory=dict)

    def navigate(self, view: str) -> None:
        if view not in VIEWS:
            raise ValueError(f"Unknown view: {view}. Valid views: {list(VIEWS)}")
        self.view = view

    @contextmanager
    def pending(self, flag: str) -> Iterator[None]:
        """Hold an in-progress flag for the duration of a call, success or failure.

        Overlapping calls are counted so the flag clears only when the last
        one finishes.
        """
        if flag not in IN_PROGRESS_FLAGS:
            raise ValueError(f"Not an in-progress flag: {flag}")
        self._in_flight[flag] = self._in_flight.get(flag, 0) + 1
        setattr(self, flag, True)
        try:
            yield
        finally:
            self._in_flight[flag] -= 1
            setattr(self, flag, self._in_flight[flag] > 0)
