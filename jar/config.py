"""
config.py -- Runtime settings for the memory jar service and CLI.

Values come from the environment (optionally a .env file loaded by the
entry point). Credential presence alone decides whether a remote service
is called or the offline fallback is used.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from jar.plans import PREMIUM_PLANS


def _optional(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


class Settings(BaseModel):
    """Everything the jar needs to know about its environment."""

    data_dir: Path = Path("jar-data")
    user_id: str = "local-user"
    plan: str = "free"
    free_memory_limit: int = 10
    free_family_limit: int = 2

    openai_api_key: Optional[str] = None
    transcribe_url: str = "https://api.openai.com/v1/audio/transcriptions"
    transcribe_model: str = "whisper-1"
    transcribe_language: str = "en"

    anthropic_api_key: Optional[str] = None
    claude_model: str = "claude-sonnet-4-6"

    elevenlabs_api_key: Optional[str] = None
    elevenlabs_url: str = "https://api.elevenlabs.io/v1/text-to-speech"
    elevenlabs_voice_id: str = "21m00Tcm4TlvDq8ikWAM"

    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None

    share_base_url: str = "https://mymemoryjar.com"
    port: int = 3002
    http_timeout_seconds: float = 30.0

    @property
    def is_premium(self) -> bool:
        return self.plan in PREMIUM_PLANS

    @property
    def media_dir(self) -> Path:
        return self.data_dir / "media"

    @property
    def mirror_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from JAR_* and provider environment variables."""
        return cls(
            data_dir=Path(os.getenv("JAR_DATA_DIR", "jar-data")),
            user_id=os.getenv("JAR_USER_ID", "local-user"),
            plan=os.getenv("JAR_PLAN", "free").strip().lower(),
            free_memory_limit=int(os.getenv("JAR_FREE_MEMORY_LIMIT", "10")),
            free_family_limit=int(os.getenv("JAR_FREE_FAMILY_LIMIT", "2")),
            openai_api_key=_optional("OPENAI_API_KEY"),
            transcribe_url=os.getenv(
                "TRANSCRIBE_URL", "https://api.openai.com/v1/audio/transcriptions"
            ),
            transcribe_model=os.getenv("TRANSCRIBE_MODEL", "whisper-1"),
            anthropic_api_key=_optional("ANTHROPIC_API_KEY"),
            claude_model=os.getenv("CLAUDE_MODEL", "claude-sonnet-4-6"),
            elevenlabs_api_key=_optional("ELEVENLABS_API_KEY"),
            elevenlabs_voice_id=os.getenv("ELEVENLABS_VOICE_ID", "21m00Tcm4TlvDq8ikWAM"),
            supabase_url=_optional("SUPABASE_URL"),
            supabase_anon_key=_optional("SUPABASE_ANON_KEY"),
            share_base_url=os.getenv("SHARE_BASE_URL", "https://mymemoryjar.com").rstrip("/"),
            port=int(os.getenv("JAR_PORT", "3002")),
            http_timeout_seconds=float(os.getenv("HTTP_TIMEOUT_SECONDS", "30")),
        )
