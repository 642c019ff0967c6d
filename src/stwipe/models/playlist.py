"""Pydantic models describing submitted playlists."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from stwipe.models.base import ProcessingStatus, StwipeBaseModel


class Playlist(StwipeBaseModel):
    """Domain model representing a row in the ``playlists`` table.

    A playlist is created on submission in ``pending`` state and is afterwards mutated only by
    :class:`stwipe.services.pipeline.PlaylistPipeline`. ``completed`` and ``failed`` are terminal.
    """

    id: Optional[UUID] = None
    user_id: str = Field(min_length=1)
    title: str
    source_url: str
    remote_playlist_id: str = Field(min_length=1)
    subject: Optional[str] = None
    language: str = Field(default="hinglish", min_length=2)
    status: ProcessingStatus = ProcessingStatus.PENDING
    total_videos: int = Field(default=0, ge=0)
    processed_videos: int = Field(default=0, ge=0)
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


__all__ = ["Playlist"]
