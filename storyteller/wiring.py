"""
wiring.py -- Builds one user's jar and story composer from settings.

Shared by the web service and the command-line demo flow.
"""

import logging
from typing import Any, Optional

import anthropic
import httpx

from jar.config import Settings
from jar.media import AudioStore
from jar.mirror import RemoteMirror
from jar.persistence import STORAGE_FILENAME, LocalStore, PersistenceAdapter
from jar.pipeline import MemoryJar
from jar.transcription import Transcriber
from storyteller.composer import StoryComposer
from storyteller.narration import Narrator

logger = logging.getLogger(__name__)


def build_jar(
    settings: Settings,
    http_client: httpx.AsyncClient,
    claude_client: Optional[Any] = None,
) -> tuple[MemoryJar, StoryComposer]:
    """Wire persistence, gateways, jar and composer for one user."""
    mirror: RemoteMirror | None = None
    if settings.mirror_enabled:
        mirror = RemoteMirror(settings.supabase_url or "", settings.supabase_anon_key or "", http_client)
    else:
        logger.info("SUPABASE_URL not set -- running local-only")
    persistence = PersistenceAdapter(
        LocalStore(settings.data_dir / STORAGE_FILENAME), mirror, settings.user_id,
    )
    media = AudioStore(settings.media_dir)
    jar = MemoryJar(settings, persistence, Transcriber(settings, http_client), media)
    if claude_client is None and settings.anthropic_api_key:
        claude_client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
    if claude_client is None:
        logger.warning("ANTHROPIC_API_KEY not set -- stories use offline templates")
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY not set -- transcription uses offline samples")
    narrator = Narrator(settings, media, http_client)
    composer = StoryComposer(jar, claude_client, narrator, settings.claude_model)
    return jar, composer
