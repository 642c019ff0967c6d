"""Progress snapshots emitted while a playlist moves through the pipeline."""

from __future__ import annotations

from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import ConfigDict, Field, computed_field

from stwipe.models.base import StwipeBaseModel


class ProcessingStage(str, Enum):
    DOWNLOADING = "downloading"
    TRANSCRIBING = "transcribing"
    FILTERING = "filtering"
    SEGMENTING = "segmenting"
    STORING = "storing"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def percent(self) -> int:
        """How far through a single video this stage sits."""

        return _STAGE_PERCENT[self]


_STAGE_PERCENT = {
    ProcessingStage.DOWNLOADING: 10,
    ProcessingStage.TRANSCRIBING: 30,
    ProcessingStage.FILTERING: 60,
    ProcessingStage.SEGMENTING: 80,
    ProcessingStage.STORING: 90,
    ProcessingStage.COMPLETE: 100,
    ProcessingStage.FAILED: 100,
}


class ProgressUpdate(StwipeBaseModel):
    """One event for ``on_progress`` callbacks.

    ``processed_videos`` counts videos that finished (either way) when the event was emitted, so
    ``overall_progress`` never moves backwards during a run.
    """

    model_config = ConfigDict(frozen=True)

    playlist_id: UUID
    stage: ProcessingStage
    message: str
    processed_videos: int = Field(default=0, ge=0)
    total_videos: int = Field(default=0, ge=0)
    video_index: Optional[int] = Field(default=None, ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def stage_progress(self) -> int:
        return self.stage.percent

    @computed_field  # type: ignore[prop-decorator]
    @property
    def overall_progress(self) -> int:
        if not self.total_videos:
            return 100
        return min(100, self.processed_videos * 100 // self.total_videos)

    @property
    def label(self) -> str:
        """Short description for progress bars, e.g. ``[2] Transcribing``."""

        prefix = f"[{self.video_index + 1}] " if self.video_index is not None else ""
        return f"{prefix}{self.stage.value.title()}"


__all__ = ["ProcessingStage", "ProgressUpdate"]
