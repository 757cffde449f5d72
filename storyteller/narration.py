"""
narration.py -- Speech synthesis for story narration (ElevenLabs).

Returns a media reference for the synthesized audio. Any failure is a
NarrationFailed; deciding whether that is fatal is the caller's job.
"""

import logging
from typing import Optional

import httpx

from jar.config import Settings
from jar.errors import NarrationFailed
from jar.media import AudioStore

logger = logging.getLogger(__name__)

VOICE_SETTINGS: dict[str, float] = {"stability": 0.5, "similarity_boost": 0.75}
TTS_MODEL: str = "eleven_multilingual_v2"


class Narrator:
    def __init__(
        self,
        settings: Settings,
        media: AudioStore,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings
        self.media = media
        self.client = client

    @property
    def configured(self) -> bool:
        return bool(self.settings.elevenlabs_api_key and self.client is not None)

    async def synthesize(self, text: str) -> str:
        """Synthesize text and return the stored audio reference."""
        if not self.configured:
            raise NarrationFailed("Narration is not configured")
        assert self.client is not None
        url = f"{self.settings.elevenlabs_url}/{self.settings.elevenlabs_voice_id}"
        logger.info("Requesting narration (%d chars, voice=%s)", len(text), self.settings.elevenlabs_voice_id)
        try:
            resp = await self.client.post(
                url,
                headers={
                    "xi-api-key": self.settings.elevenlabs_api_key or "",
                    "Accept": "audio/mpeg",
                },
                json={"text": text, "model_id": TTS_MODEL, "voice_settings": VOICE_SETTINGS},
            )
        except httpx.HTTPError as exc:
            logger.error("Narration request failed: %s", exc)
            raise NarrationFailed("Narration service unreachable") from exc
        if resp.status_code != 200 or not resp.content:
            logger.error("Narration returned %d: %s", resp.status_code, resp.text[:300])
            raise NarrationFailed(f"Narration failed with status {resp.status_code}")
        try:
            return self.media.save(resp.content, "audio/mpeg", prefix="narration")
        except OSError as exc:
            logger.error("Could not store narration audio: %s", exc)
            raise NarrationFailed("Could not store narration audio") from exc
