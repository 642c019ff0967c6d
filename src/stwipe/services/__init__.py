"""Service layer for the Stwipe application.

The pipeline talks to external systems only through the capability protocols defined here, so
that tests and alternative backends can be substituted through
:class:`stwipe.services.pipeline.PipelineContext`.
"""

from __future__ import annotations

from pathlib import Path
from typing import AsyncContextManager, List, Optional, Protocol

from stwipe.models.transcript import TranscriptionResult
from stwipe.models.video import VideoSource


class ExternalServiceError(RuntimeError):
    """Raised when a call to an external service fails."""


class PlaylistFetchError(ExternalServiceError):
    """Raised when playlist or video metadata cannot be retrieved."""


class AudioExtractionError(ExternalServiceError):
    """Raised when the audio track of a video cannot be downloaded."""


class TranscriptionError(ExternalServiceError):
    """Raised when the transcription service rejects or fails a request."""


class StageTimeoutError(ExternalServiceError):
    """Raised when a pipeline stage exceeds ``STAGE_TIMEOUT_SECONDS``."""


class AudioSource(Protocol):
    """Produces a local audio file for a remote video and removes it afterwards."""

    def audio_for(self, source: VideoSource) -> AsyncContextManager[Path]:
        """Return a context manager yielding the path of the downloaded audio."""


class Transcriber(Protocol):
    """Turns an audio file into transcript text."""

    async def transcribe(self, audio_path: Path, language: Optional[str] = None) -> TranscriptionResult:
        """Transcribe ``audio_path``; ``language`` is a hint, auto-detected when ``None``."""


class TextCleaner(Protocol):
    """Removes disfluencies and off-topic chatter from transcript text."""

    async def clean(self, text: str, language: str) -> str:
        """Return the cleaned text."""


class TopicExtractor(Protocol):
    """Names the educational topics discussed in a piece of text."""

    async def identify_topics(self, text: str) -> List[str]:
        """Return short topic labels in order of appearance."""


__all__ = [
    "AudioExtractionError",
    "AudioSource",
    "ExternalServiceError",
    "PlaylistFetchError",
    "StageTimeoutError",
    "TextCleaner",
    "TopicExtractor",
    "Transcriber",
    "TranscriptionError",
]
