"""
errors.py -- Error kinds raised by the memory jar.

Each error carries the HTTP status the service answers with.
RemoteMirrorUnavailable is only ever logged, never surfaced to a caller.
"""

from __future__ import annotations


class JarError(Exception):
    """Base class for every user-facing memory jar failure."""

    status_code: int = 500


class CapacityExceeded(JarError):
    """Free-tier limit reached. Recoverable by upgrading."""

    status_code = 402


class TranscriptionFailed(JarError):
    status_code = 502


class StoryGenerationFailed(JarError):
    status_code = 502


class NarrationFailed(JarError):
    status_code = 502


class RemoteMirrorUnavailable(JarError):
    status_code = 503


class MicrophoneAccessDenied(JarError):
    status_code = 403


class EmptySelection(JarError):
    status_code = 400


class InvalidEmotion(JarError):
    status_code = 422


class InvalidAccessLevel(JarError):
    status_code = 422


class UnknownMemory(JarError):
    status_code = 404


class UnknownStory(JarError):
    status_code = 404


class UnknownFamilyMember(JarError):
    status_code = 404


class DuplicateFamilyMember(JarError):
    status_code = 409


class NarrationAlreadyAttached(JarError):
    status_code = 409


class PersistenceFailed(JarError):
    """The local snapshot could not be written. The triggering action is aborted."""

    status_code = 500
