"""Repository for the ``user_progress`` table."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from stwipe.db.repositories import BaseRepository
from stwipe.models.progress import UserProgress


class UserProgressRepository(BaseRepository[UserProgress]):
    """One progress row per user and playlist; short id lists are stored as JSONB."""

    table_name = "user_progress"
    model_type = UserProgress
    insert_fields = (
        "user_id",
        "playlist_id",
        "current_short_id",
        "completed_shorts",
        "bookmarked_shorts",
        "total_time_spent",
        "last_studied_at",
    )
    update_fields = (
        "current_short_id",
        "completed_shorts",
        "bookmarked_shorts",
        "total_time_spent",
        "last_studied_at",
    )
    json_fields = frozenset({"completed_shorts", "bookmarked_shorts"})

    def find_for_playlist(self, user_id: str, playlist_id: UUID) -> Optional[UserProgress]:
        return self.find_one({"user_id": user_id, "playlist_id": playlist_id})

    def list_for_user(self, user_id: str) -> List[UserProgress]:
        return self.find_all({"user_id": user_id})


__all__ = ["UserProgressRepository"]
