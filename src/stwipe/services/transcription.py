"""Speech-to-text through the OpenAI Whisper API."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Dict, Optional

from openai import AsyncOpenAI
from rich.console import Console

from stwipe.config.settings import Settings, get_settings
from stwipe.models.transcript import TranscriptionResult
from stwipe.services import TranscriptionError

# Hinglish and unknown languages are left to Whisper's auto-detection.
WHISPER_LANGUAGE_CODES: Dict[str, str] = {
    "hindi": "hi",
    "english": "en",
}


def whisper_language_code(language: Optional[str]) -> Optional[str]:
    """Map a playlist language tag onto a Whisper ISO-639-1 hint."""

    if not language:
        return None
    return WHISPER_LANGUAGE_CODES.get(language.strip().lower())


class WhisperTranscriber:
    """Transcribe audio files with the hosted Whisper model."""

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._console = console or Console()
        self._client = client or self._create_client()

    async def transcribe(self, audio_path: Path, language: Optional[str] = None) -> TranscriptionResult:
        """Transcribe ``audio_path`` and report the measured audio duration.

        Parameters
        ----------
        audio_path:
            Local audio file produced by :class:`stwipe.services.audio.AudioExtractor`.
        language:
            Playlist language tag used as a hint; ``None`` lets the service auto-detect.

        Returns
        -------
        TranscriptionResult
            Transcript text and duration in seconds.

        Raises
        ------
        TranscriptionError
            If the API call fails. No retry is attempted.
        """

        request: Dict[str, object] = {
            "model": self._settings.transcription_model,
            "response_format": "verbose_json",
        }
        language_code = whisper_language_code(language)
        if language_code is not None:
            request["language"] = language_code

        self._console.log(f"Transcribing {audio_path.name} (language={language_code or 'auto'})")
        start_time = time.perf_counter()
        try:
            with audio_path.open("rb") as audio_file:
                response = await self._client.audio.transcriptions.create(file=audio_file, **request)
        except Exception as exc:
            raise TranscriptionError(f"Failed to transcribe audio: {exc}") from exc

        text = (getattr(response, "text", None) or "").strip()
        duration = float(getattr(response, "duration", None) or 0.0)
        detected = getattr(response, "language", None) or language_code
        self._console.log(
            "Transcription succeeded "
            f"(duration={time.perf_counter() - start_time:.2f}s, words={len(text.split())})"
        )
        return TranscriptionResult(text=text, duration=duration, language=detected)

    def _create_client(self) -> AsyncOpenAI:
        if self._settings.openai_api_key is None:
            raise TranscriptionError("No transcription credentials configured. Set OPENAI_API_KEY.")
        return AsyncOpenAI(api_key=self._settings.openai_api_key.get_secret_value())


__all__ = ["WhisperTranscriber", "WHISPER_LANGUAGE_CODES", "whisper_language_code"]
