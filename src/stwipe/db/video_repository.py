"""Repository for the ``videos`` table."""

from __future__ import annotations

from typing import List
from uuid import UUID

from stwipe.db.repositories import BaseRepository
from stwipe.models.video import Video


class VideoRepository(BaseRepository[Video]):
    """Playlist videos, one row per source position."""

    table_name = "videos"
    model_type = Video
    insert_fields = (
        "playlist_id",
        "title",
        "remote_video_id",
        "source_url",
        "duration_seconds",
        "order_index",
        "status",
    )
    update_fields = ("status", "total_shorts", "processed_shorts", "error_message")
    default_order = (("order_index", "ASC"),)

    def list_for_playlist(self, playlist_id: UUID) -> List[Video]:
        return self.find_all({"playlist_id": playlist_id})


__all__ = ["VideoRepository"]
