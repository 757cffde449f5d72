"""
transcription.py -- Speech-to-text gateway.

With OPENAI_API_KEY set, the clip is posted to the remote transcription
endpoint and any non-success becomes TranscriptionFailed. Without a key,
a pre-authored transcript for the selected emotion is returned instead;
that path never fails.
"""

from __future__ import annotations

import logging
import random
from typing import Optional

import httpx

from jar.config import Settings
from jar.errors import TranscriptionFailed
from jar.models import DEFAULT_EMOTION, AudioClip

logger = logging.getLogger(__name__)

SAMPLE_TRANSCRIPTS: dict[str, list[str]] = {
    "happy": [
        "Today was such a wonderful day! I spent time with my grandchildren at the park, "
        "and we had the most amazing picnic. The sun was shining, and everyone was laughing "
        "and playing together. These are the moments that make life so beautiful.",
        "We finally took the boat out on the lake after talking about it all summer. "
        "Nobody caught a single fish and nobody cared. I laughed until my cheeks hurt.",
    ],
    "sad": [
        "I've been thinking a lot about my mom lately. It's been a year since she passed, "
        "and I still miss her voice, her laugh, and the way she used to make everything "
        "better with just a hug.",
        "We sold the old house this week. Walking through the empty rooms, I kept hearing "
        "the echo of every birthday and every argument we ever had in that kitchen.",
    ],
    "grateful": [
        "I want to take a moment to appreciate all the blessings in my life. My family's "
        "health, the roof over our heads, and the simple joy of sharing meals together. "
        "Sometimes we forget how much we truly have to be thankful for.",
        "My neighbor shoveled our driveway every morning this winter without being asked. "
        "I am so grateful for people like that.",
    ],
    "excited": [
        "I can hardly contain my excitement! Tomorrow is my daughter's wedding day, and "
        "after months of planning, everything is finally coming together.",
        "The tickets are booked. After thirty years of talking about it, we are finally "
        "going back to the village where I was born.",
    ],
    "anxious": [
        "The doctor called and wants to run more tests next week. I keep telling myself "
        "it is routine, but I could not sleep last night.",
        "My first day at the new job is on Monday. I have not started somewhere new in "
        "twenty years and my stomach is in knots.",
    ],
    "proud": [
        "My grandson graduated today, the first in our family to finish university. "
        "Watching him walk across that stage, I could not stop crying.",
        "I finished my first marathon this morning. Two years ago I could not run to "
        "the end of the street.",
    ],
}


def fallback_transcript(emotion: str) -> str:
    """Pick a canned transcript for the emotion (default emotion if unknown)."""
    candidates = SAMPLE_TRANSCRIPTS.get((emotion or "").lower()) or SAMPLE_TRANSCRIPTS[DEFAULT_EMOTION]
    return random.choice(candidates)


class Transcriber:
    """Turns an AudioClip into transcript text."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None) -> None:
        self.settings = settings
        self.client = client
        self._in_flight = 0

    @property
    def online(self) -> bool:
        return bool(self.settings.openai_api_key and self.client is not None)

    @property
    def is_transcribing(self) -> bool:
        return self._in_flight > 0

    async def transcribe(self, clip: AudioClip, emotion: str) -> str:
        """Return the transcript for a clip. Raises TranscriptionFailed on remote failure."""
        self._in_flight += 1
        try:
            if not self.online:
                logger.info("No transcription key configured -- using offline transcript")
                return fallback_transcript(emotion)
            return await self._transcribe_remote(clip)
        finally:
            self._in_flight -= 1

    async def _transcribe_remote(self, clip: AudioClip) -> str:
        assert self.client is not None
        logger.info(
            "Transcribing %d bytes (%s) with %s",
            len(clip.data), clip.content_type, self.settings.transcribe_model,
        )
        try:
            resp = await self.client.post(
                self.settings.transcribe_url,
                headers={"Authorization": f"Bearer {self.settings.openai_api_key}"},
                files={"file": (clip.filename, clip.data, clip.content_type)},
                data={
                    "model": self.settings.transcribe_model,
                    "language": self.settings.transcribe_language,
                    "response_format": "json",
                },
            )
        except httpx.HTTPError as exc:
            logger.error("Transcription request failed: %s", exc)
            raise TranscriptionFailed("Transcription service unreachable. Please try again.") from exc

        if resp.status_code != 200:
            logger.error("Transcription returned %d: %s", resp.status_code, resp.text[:300])
            raise TranscriptionFailed(f"Transcription failed with status {resp.status_code}")

        try:
            text = (resp.json().get("text") or "").strip()
        except ValueError as exc:
            raise TranscriptionFailed("Transcription service returned an unreadable body") from exc
        if not text:
            raise TranscriptionFailed("Transcription came back empty. Please record again.")
        return text
