"""Models describing per-user study progress."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from stwipe.models.base import StwipeBaseModel


class UserProgress(StwipeBaseModel):
    """Domain model representing a row in the ``user_progress`` table.

    ``current_short_id`` is a weak reference used for lookup only. The completed and bookmarked
    collections behave as sets and never contain duplicates.
    """

    id: Optional[UUID] = None
    user_id: str = Field(min_length=1)
    playlist_id: UUID
    current_short_id: Optional[UUID] = None
    completed_shorts: List[UUID] = Field(default_factory=list)
    bookmarked_shorts: List[UUID] = Field(default_factory=list)
    total_time_spent: int = Field(default=0, ge=0)
    last_studied_at: Optional[datetime] = None


class UserStats(StwipeBaseModel):
    """Aggregated study statistics across all of a user's playlists."""

    total_shorts: int = Field(default=0, ge=0)
    hours_studied: float = Field(default=0.0, ge=0.0)
    streak: int = Field(default=0, ge=0)


__all__ = ["UserProgress", "UserStats"]
