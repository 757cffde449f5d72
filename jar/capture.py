"""
capture.py -- Recording flow from microphone start to stored memory.

The device is anything with async start()/stop(). A PermissionError from
start() means the microphone was refused; the flow aborts before any
record exists. A recording that runs past MAX_RECORDING_SECONDS stops
itself and the next stop() returns that result. back() abandons the flow:
a transcript that arrives after it is discarded and never stored.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import os
from pathlib import Path
from typing import Optional, Protocol

from jar.errors import MicrophoneAccessDenied
from jar.models import AudioClip, MemoryRecord
from jar.pipeline import MemoryJar, validate_emotion

logger = logging.getLogger(__name__)

MAX_RECORDING_SECONDS: float = 60.0


class AudioDevice(Protocol):
    async def start(self) -> None: ...

    async def stop(self) -> AudioClip: ...


class FileAudioDevice:
    """Plays back an audio file as if it had just been recorded."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    async def start(self) -> None:
        if not self.path.is_file() or not os.access(self.path, os.R_OK):
            raise PermissionError(f"Cannot read audio from {self.path}")

    async def stop(self) -> AudioClip:
        content_type = mimetypes.guess_type(self.path.name)[0] or "audio/wav"
        return AudioClip(
            data=self.path.read_bytes(),
            content_type=content_type,
            filename=self.path.name,
        )


class RecordingFlow:
    def __init__(
        self,
        jar: MemoryJar,
        device: AudioDevice,
        max_seconds: float = MAX_RECORDING_SECONDS,
    ) -> None:
        self.jar = jar
        self.device = device
        self.max_seconds = max_seconds
        self._generation = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._auto_stop: Optional[asyncio.Task] = None

    async def start(self, emotion: str, prompt: Optional[str] = None) -> None:
        emotion = validate_emotion(emotion)
        state = self.jar.state
        state.selected_emotion = emotion
        state.selected_prompt = prompt
        try:
            await self.device.start()
        except PermissionError as exc:
            logger.warning("Microphone access denied: %s", exc)
            raise MicrophoneAccessDenied(
                "Microphone access denied. Please allow microphone access to record."
            ) from exc
        state.is_recording = True
        self._generation += 1
        self._cancel_timer()
        self._auto_stop = None
        self._timer = asyncio.get_running_loop().call_later(
            self.max_seconds, self._time_limit_reached, self._generation,
        )

    def _time_limit_reached(self, generation: int) -> None:
        self._timer = None
        if generation != self._generation or not self.jar.state.is_recording:
            return
        logger.info("Recording reached %.0f seconds -- stopping", self.max_seconds)
        self._auto_stop = asyncio.ensure_future(self._finish(generation))

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def stop(self) -> Optional[MemoryRecord]:
        """Finish recording and store the memory, or None if the flow was abandoned."""
        if self._auto_stop is not None:
            task, self._auto_stop = self._auto_stop, None
            return await task
        return await self._finish()

    async def _finish(self, generation: Optional[int] = None) -> Optional[MemoryRecord]:
        self._cancel_timer()
        if generation is None:
            generation = self._generation
        elif generation != self._generation:
            return None
        state = self.jar.state
        emotion = state.selected_emotion
        prompt = state.selected_prompt
        if emotion is None:
            raise RuntimeError("stop() called before start()")
        try:
            clip = await self.device.stop()
        finally:
            state.is_recording = False
        transcript = await self.jar.transcribe(clip, emotion)
        if generation != self._generation:
            logger.info("Recording flow was abandoned -- discarding late transcript")
            return None
        record = self.jar.keep(clip, emotion, transcript, prompt)
        state.selected_emotion = None
        state.selected_prompt = None
        return record

    def back(self) -> None:
        """Abandon whatever is in flight and clear the selection."""
        self._cancel_timer()
        self._auto_stop = None
        self._generation += 1
        state = self.jar.state
        state.is_recording = False
        state.selected_emotion = None
        state.selected_prompt = None
