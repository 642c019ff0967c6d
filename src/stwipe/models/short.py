"""Pydantic models for study shorts and the segments they are built from."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import ConfigDict, Field

from stwipe.models.base import StwipeBaseModel


class Segment(StwipeBaseModel):
    """Topical chunk of cleaned transcript text with synthetic time bounds."""

    topic: str
    content: str
    start_time: int = Field(ge=0)
    end_time: int = Field(ge=0)


class StudyShort(StwipeBaseModel):
    """Domain model representing a row in the ``study_shorts`` table.

    Study shorts are immutable once created.
    """

    id: Optional[UUID] = None
    playlist_id: UUID
    video_id: UUID
    title: str
    topic: str
    content: str
    start_time: int = Field(ge=0)
    end_time: int = Field(ge=0)
    duration: int = Field(ge=0)
    order_index: int = Field(ge=0)
    created_at: Optional[datetime] = None

    model_config = ConfigDict(extra="forbid", frozen=True)


__all__ = ["Segment", "StudyShort"]
