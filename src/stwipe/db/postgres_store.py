"""Postgres-backed :class:`~stwipe.db.store.StudyStore` built on table repositories."""

from __future__ import annotations

from typing import List, Mapping, Optional
from uuid import UUID

import psycopg2
from rich.console import Console

from stwipe.config.settings import Settings, get_settings
from stwipe.db.connection import pooled_connection_factory
from stwipe.db.migrate import apply_migrations
from stwipe.db.playlist_repository import PlaylistRepository
from stwipe.db.progress_repository import UserProgressRepository
from stwipe.db.repositories import ConnectionFactory, RepositoryError
from stwipe.db.short_repository import StudyShortRepository
from stwipe.db.video_repository import VideoRepository
from stwipe.models.playlist import Playlist
from stwipe.models.progress import UserProgress
from stwipe.models.short import StudyShort
from stwipe.models.video import Video


class PostgresStore:
    """Persist playlists, videos, study shorts and progress in Postgres."""

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
        connection_factory: Optional[ConnectionFactory] = None,
        auto_migrate: bool = True,
    ) -> None:
        self._settings = settings or get_settings()
        self._console = console or Console()
        self._connection_factory = connection_factory or pooled_connection_factory(self._settings)
        self._playlists = PlaylistRepository(self._connection_factory)
        self._videos = VideoRepository(self._connection_factory)
        self._shorts = StudyShortRepository(self._connection_factory)
        self._progress = UserProgressRepository(self._connection_factory)

        if auto_migrate:
            try:
                apply_migrations(self._connection_factory, console=self._console)
            except psycopg2.Error as exc:
                raise RepositoryError(f"Failed to run database migrations: {exc}") from exc

    def create_playlist(self, playlist: Playlist) -> Playlist:
        return self._playlists.insert(playlist)

    def get_playlist(self, playlist_id: UUID) -> Playlist:
        return self._playlists.get_by_id(playlist_id)

    def update_playlist(self, playlist_id: UUID, changes: Mapping[str, object]) -> Playlist:
        return self._playlists.update_columns(playlist_id, changes)

    def list_playlists(self, user_id: str) -> List[Playlist]:
        return self._playlists.list_for_user(user_id)

    def create_video(self, video: Video) -> Video:
        return self._videos.insert(video)

    def get_video(self, video_id: UUID) -> Video:
        return self._videos.get_by_id(video_id)

    def update_video(self, video_id: UUID, changes: Mapping[str, object]) -> Video:
        return self._videos.update_columns(video_id, changes)

    def list_videos(self, playlist_id: UUID) -> List[Video]:
        return self._videos.list_for_playlist(playlist_id)

    def create_study_short(self, short: StudyShort) -> StudyShort:
        return self._shorts.insert(short)

    def get_study_short(self, short_id: UUID) -> StudyShort:
        return self._shorts.get_by_id(short_id)

    def list_shorts_for_video(self, video_id: UUID) -> List[StudyShort]:
        return self._shorts.list_for_video(video_id)

    def list_shorts_for_playlist(self, playlist_id: UUID) -> List[StudyShort]:
        return self._shorts.list_for_playlist(playlist_id)

    def delete_shorts_for_video(self, video_id: UUID) -> int:
        return self._shorts.delete_where({"video_id": video_id})

    def find_progress(self, user_id: str, playlist_id: UUID) -> Optional[UserProgress]:
        return self._progress.find_for_playlist(user_id, playlist_id)

    def create_progress(self, progress: UserProgress) -> UserProgress:
        return self._progress.insert(progress)

    def update_progress(self, progress_id: UUID, changes: Mapping[str, object]) -> UserProgress:
        return self._progress.update_columns(progress_id, changes)

    def list_progress(self, user_id: str) -> List[UserProgress]:
        return self._progress.list_for_user(user_id)


__all__ = ["PostgresStore"]
