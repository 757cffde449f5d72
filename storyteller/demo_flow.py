"""
demo_flow.py -- End-to-end memory jar demo from the command line.

Runs the complete flow for one recording:
1. Open the audio file as a recording device
2. Transcribe, tag and store the memory
3. Optionally compose a story from every stored memory (with narration)

Without API keys every step uses its offline fallback.

Usage:
    python -m storyteller.demo_flow --audio clip.wav --emotion grateful --story
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import httpx
from dotenv import load_dotenv

from jar.capture import FileAudioDevice, RecordingFlow
from jar.config import Settings
from jar.errors import JarError
from jar.models import VALID_EMOTIONS
from storyteller.wiring import build_jar

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("memory_jar.demo")


async def run_demo(
    settings: Settings,
    audio_path: str,
    emotion: str,
    prompt: str | None = None,
    story: bool = False,
    narrate: bool = False,
) -> int:
    """Record one memory and optionally compose a story. Returns an exit code."""
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        jar, composer = build_jar(settings, client)

        logger.info("=" * 60)
        logger.info("STEP 1: Recording %s as a %s memory", audio_path, emotion)
        logger.info("=" * 60)
        flow = RecordingFlow(jar, FileAudioDevice(audio_path))
        try:
            await flow.start(emotion, prompt)
            record = await flow.stop()
        except JarError as exc:
            logger.error("Recording failed: %s", exc)
            return 1
        if record is None:
            logger.error("Recording was abandoned")
            return 1
        logger.info("Transcript: %s", record.transcript)
        logger.info("Mood: %s  Themes: %s", record.mood, ", ".join(record.themes))
        logger.info("Jar now holds %d memories", len(jar.memories))

        if story:
            logger.info("=" * 60)
            logger.info("STEP 2: Composing a story from %d memories", len(jar.memories))
            logger.info("=" * 60)
            ids = [m.id for m in jar.memories.all()]
            try:
                composed = await composer.compose(ids, voice_narration=narrate)
            except JarError as exc:
                logger.error("Story generation failed: %s", exc)
                return 1
            logger.info("Title: %s", composed.title)
            logger.info("Narration: %s", composed.audio_ref or "none")
            print(chr(10) + composed.content + chr(10))

        await jar.persistence.drain()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Memory Jar -- Demo Flow")
    parser.add_argument("--audio", type=str, required=True, help="Path to an audio recording")
    parser.add_argument("--emotion", type=str, required=True, choices=VALID_EMOTIONS)
    parser.add_argument("--prompt", type=str, default=None, help="Prompt the memory answers")
    parser.add_argument("--story", action="store_true", help="Compose a story afterwards")
    parser.add_argument("--narrate", action="store_true", help="Request narration for the story")
    parser.add_argument("--data-dir", type=str, default=None, help="Override JAR_DATA_DIR")
    args = parser.parse_args()
    env_path = Path(__file__).resolve().parent.parent / ".env"
    if env_path.exists():
        load_dotenv(env_path)
        logger.info("Loaded environment from %s", env_path)
    settings = Settings.from_env()
    if args.data_dir:
        settings = settings.model_copy(update={"data_dir": Path(args.data_dir)})
    sys.exit(asyncio.run(run_demo(
        settings, args.audio, args.emotion, args.prompt, story=args.story, narrate=args.narrate,
    )))


if __name__ == "__main__":
    main()
