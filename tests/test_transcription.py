"""
test_transcription.py -- Remote speech-to-text path and the offline fallback.
"""

import httpx
import pytest

from jar.config import Settings
from jar.errors import TranscriptionFailed
from jar.models import VALID_EMOTIONS, AudioClip
from jar.transcription import SAMPLE_TRANSCRIPTS, Transcriber

from conftest import mock_client

CLIP = AudioClip(data=b"RIFF0000WAVEfmt ", content_type="audio/wav", filename="clip.wav")


@pytest.fixture
def online_settings(tmp_path) -> Settings:
    return Settings(data_dir=tmp_path, openai_api_key="sk-test")


class TestOfflineFallback:
    @pytest.mark.parametrize("emotion", VALID_EMOTIONS)
    async def test_every_emotion_gets_a_canned_transcript(self, settings, emotion):
        text = await Transcriber(settings).transcribe(CLIP, emotion)
        assert text in SAMPLE_TRANSCRIPTS[emotion]

    async def test_unknown_emotion_uses_default_set(self, settings):
        text = await Transcriber(settings).transcribe(CLIP, "bored")
        assert text in SAMPLE_TRANSCRIPTS["happy"]

    async def test_key_without_client_stays_offline(self, online_settings):
        transcriber = Transcriber(online_settings, client=None)
        assert not transcriber.online
        assert await transcriber.transcribe(CLIP, "sad")

    async def test_client_without_key_never_calls_remote(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("remote call attempted without a key")

        async with mock_client(handler) as client:
            text = await Transcriber(settings, client).transcribe(CLIP, "proud")
        assert text in SAMPLE_TRANSCRIPTS["proud"]


class TestRemoteTranscription:
    async def test_success_returns_text(self, online_settings):
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["authorization"]
            seen["body"] = request.content
            seen["busy"] = transcriber.is_transcribing
            return httpx.Response(200, json={"text": "  We drove to the coast with my daughter.  "})

        async with mock_client(handler) as client:
            transcriber = Transcriber(online_settings, client)
            text = await transcriber.transcribe(CLIP, "happy")

        assert text == "We drove to the coast with my daughter."
        assert seen["auth"] == "Bearer sk-test"
        assert b"whisper-1" in seen["body"]
        assert b"clip.wav" in seen["body"]
        assert seen["busy"] is True
        assert transcriber.is_transcribing is False

    async def test_error_status_fails_and_clears_state(self, online_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": "server"})

        async with mock_client(handler) as client:
            transcriber = Transcriber(online_settings, client)
            with pytest.raises(TranscriptionFailed):
                await transcriber.transcribe(CLIP, "happy")
        assert transcriber.is_transcribing is False

    async def test_network_error_fails(self, online_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with mock_client(handler) as client:
            with pytest.raises(TranscriptionFailed):
                await Transcriber(online_settings, client).transcribe(CLIP, "happy")

    async def test_empty_text_fails(self, online_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"text": "   "})

        async with mock_client(handler) as client:
            with pytest.raises(TranscriptionFailed):
                await Transcriber(online_settings, client).transcribe(CLIP, "happy")

    async def test_failure_creates_no_memory(self, online_settings, persistence):
        from jar.pipeline import MemoryJar

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": "bad key"})

        async with mock_client(handler) as client:
            jar = MemoryJar(online_settings, persistence, Transcriber(online_settings, client))
            with pytest.raises(TranscriptionFailed):
                await jar.record(CLIP, "happy")
        assert jar.memories.all() == []
        assert jar.state.is_transcribing is False
