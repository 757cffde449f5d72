"""
media.py -- Audio files referenced by memories and stories.

Stored files are addressed by an opaque "/media/<name>" reference that
the web service serves read-only.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)

MEDIA_PREFIX: str = "/media/"

EXTENSIONS: dict[str, str] = {
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/wave": ".wav",
    "audio/vnd.wave": ".wav",
    "audio/webm": ".webm",
    "audio/ogg": ".ogg",
    "audio/mpeg": ".mp3",
    "audio/mp4": ".m4a",
}


class AudioStore:
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def save(self, data: bytes, content_type: str = "audio/wav", prefix: str = "memory") -> str:
        """Write audio bytes and return their reference."""
        ext = EXTENSIONS.get(content_type.split(";")[0].strip().lower(), ".bin")
        name = f"{prefix}-{uuid.uuid4().hex}{ext}"
        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / name).write_bytes(data)
        logger.info("Stored %d bytes of audio as %s", len(data), name)
        return MEDIA_PREFIX + name

    def path_for(self, ref: str) -> Path | None:
        if not ref.startswith(MEDIA_PREFIX):
            return None
        name = ref[len(MEDIA_PREFIX):]
        if not name or "/" in name or ".." in name:
            return None
        return self.root / name

    def discard(self, ref: str) -> None:
        path = self.path_for(ref)
        if path is not None and path.exists():
            path.unlink()
