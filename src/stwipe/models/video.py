"""Pydantic models describing playlist videos."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from stwipe.models.base import ProcessingStatus, StwipeBaseModel


class VideoSource(StwipeBaseModel):
    """Remote video reference returned by the playlist fetcher."""

    remote_id: str = Field(min_length=1)
    title: str
    url: str
    duration_seconds: int = Field(default=0, ge=0)


class Video(StwipeBaseModel):
    """Domain model representing a row in the ``videos`` table.

    Videos are created in bulk before any processing begins so that partial progress is
    observable; ``order_index`` is the zero-based position within the source playlist.
    """

    id: Optional[UUID] = None
    playlist_id: UUID
    title: str
    remote_video_id: str = Field(min_length=1)
    source_url: str
    duration_seconds: int = Field(default=0, ge=0)
    order_index: int = Field(ge=0)
    status: ProcessingStatus = ProcessingStatus.PENDING
    total_shorts: int = Field(default=0, ge=0)
    processed_shorts: int = Field(default=0, ge=0)
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None


__all__ = ["Video", "VideoSource"]
