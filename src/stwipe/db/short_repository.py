"""Repository for the ``study_shorts`` table."""

from __future__ import annotations

from typing import List
from uuid import UUID

from stwipe.db.repositories import BaseRepository
from stwipe.models.short import StudyShort


class StudyShortRepository(BaseRepository[StudyShort]):
    """Study shorts are inserted per segment and only ever removed as a whole video's set."""

    table_name = "study_shorts"
    model_type = StudyShort
    insert_fields = (
        "playlist_id",
        "video_id",
        "title",
        "topic",
        "content",
        "start_time",
        "end_time",
        "duration",
        "order_index",
    )
    default_order = (("order_index", "ASC"),)

    def list_for_video(self, video_id: UUID) -> List[StudyShort]:
        return self.find_all({"video_id": video_id})

    def list_for_playlist(self, playlist_id: UUID) -> List[StudyShort]:
        """Return every short of a playlist ordered by video position, then segment position."""

        rows = self._fetch_all(
            "SELECT s.* FROM study_shorts s JOIN videos v ON v.id = s.video_id "
            "WHERE s.playlist_id = %(playlist_id)s ORDER BY v.order_index ASC, s.order_index ASC",
            {"playlist_id": str(playlist_id)},
        )
        return [self._to_model(row) for row in rows]


__all__ = ["StudyShortRepository"]
