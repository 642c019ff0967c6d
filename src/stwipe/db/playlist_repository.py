"""Repository for the ``playlists`` table."""

from __future__ import annotations

from typing import List

from stwipe.db.repositories import BaseRepository
from stwipe.models.playlist import Playlist


class PlaylistRepository(BaseRepository[Playlist]):
    """Playlists are inserted on submission and afterwards only change status and counters."""

    table_name = "playlists"
    model_type = Playlist
    insert_fields = (
        "user_id",
        "title",
        "source_url",
        "remote_playlist_id",
        "subject",
        "language",
        "status",
        "total_videos",
        "processed_videos",
    )
    update_fields = ("status", "total_videos", "processed_videos", "completed_at")
    default_order = (("created_at", "DESC"),)

    def list_for_user(self, user_id: str) -> List[Playlist]:
        return self.find_all({"user_id": user_id})


__all__ = ["PlaylistRepository"]
