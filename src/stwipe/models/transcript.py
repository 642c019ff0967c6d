"""Models describing transcription output."""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from stwipe.models.base import StwipeBaseModel


class TranscriptionResult(StwipeBaseModel):
    """Raw transcript text plus the measured audio duration in seconds."""

    text: str
    duration: float = Field(default=0.0, ge=0.0)
    language: Optional[str] = None

    @property
    def word_count(self) -> int:
        """Return the number of whitespace-delimited tokens in the transcript."""

        return len(self.text.split()) if self.text else 0


__all__ = ["TranscriptionResult"]
