"""Record store interface consumed by the pipeline, plus the in-memory backend."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Protocol, TypeVar
from uuid import UUID, uuid4

from rich.console import Console

from stwipe.config.settings import Settings, get_settings
from stwipe.db.repositories import RecordNotFoundError, RepositoryError
from stwipe.models.base import StwipeBaseModel
from stwipe.models.playlist import Playlist
from stwipe.models.progress import UserProgress
from stwipe.models.short import StudyShort
from stwipe.models.video import Video

RecordT = TypeVar("RecordT", bound=StwipeBaseModel)


class StudyStore(Protocol):
    """CRUD operations over playlists, videos, study shorts and user progress.

    ``get_*`` methods raise :class:`RecordNotFoundError` for unknown identifiers; ``update_*``
    methods apply a partial mapping of field changes and return the updated record.
    """

    def create_playlist(self, playlist: Playlist) -> Playlist: ...

    def get_playlist(self, playlist_id: UUID) -> Playlist: ...

    def update_playlist(self, playlist_id: UUID, changes: Mapping[str, object]) -> Playlist: ...

    def list_playlists(self, user_id: str) -> List[Playlist]: ...

    def create_video(self, video: Video) -> Video: ...

    def get_video(self, video_id: UUID) -> Video: ...

    def update_video(self, video_id: UUID, changes: Mapping[str, object]) -> Video: ...

    def list_videos(self, playlist_id: UUID) -> List[Video]: ...

    def create_study_short(self, short: StudyShort) -> StudyShort: ...

    def get_study_short(self, short_id: UUID) -> StudyShort: ...

    def list_shorts_for_video(self, video_id: UUID) -> List[StudyShort]: ...

    def list_shorts_for_playlist(self, playlist_id: UUID) -> List[StudyShort]: ...

    def delete_shorts_for_video(self, video_id: UUID) -> int: ...

    def find_progress(self, user_id: str, playlist_id: UUID) -> Optional[UserProgress]: ...

    def create_progress(self, progress: UserProgress) -> UserProgress: ...

    def update_progress(self, progress_id: UUID, changes: Mapping[str, object]) -> UserProgress: ...

    def list_progress(self, user_id: str) -> List[UserProgress]: ...


class MemoryStore:
    """Thread-safe dictionary-backed :class:`StudyStore` used for local runs and tests."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._playlists: Dict[UUID, Playlist] = {}
        self._videos: Dict[UUID, Video] = {}
        self._shorts: Dict[UUID, StudyShort] = {}
        self._progress: Dict[UUID, UserProgress] = {}

    # ------------------------------------------------------------------ #
    # Playlists                                                          #
    # ------------------------------------------------------------------ #
    def create_playlist(self, playlist: Playlist) -> Playlist:
        record = playlist.model_copy(update={"id": uuid4(), "created_at": _now()})
        with self._lock:
            self._playlists[record.id] = record
        return record

    def get_playlist(self, playlist_id: UUID) -> Playlist:
        return self._get(self._playlists, playlist_id, "Playlist")

    def update_playlist(self, playlist_id: UUID, changes: Mapping[str, object]) -> Playlist:
        return self._update(self._playlists, playlist_id, changes, "Playlist")

    def list_playlists(self, user_id: str) -> List[Playlist]:
        with self._lock:
            owned = [playlist for playlist in self._playlists.values() if playlist.user_id == user_id]
        return sorted(owned, key=lambda playlist: playlist.created_at or _EPOCH, reverse=True)

    # ------------------------------------------------------------------ #
    # Videos                                                             #
    # ------------------------------------------------------------------ #
    def create_video(self, video: Video) -> Video:
        with self._lock:
            self._get(self._playlists, video.playlist_id, "Playlist")
            if any(
                existing.playlist_id == video.playlist_id and existing.order_index == video.order_index
                for existing in self._videos.values()
            ):
                raise RepositoryError(
                    f"Playlist {video.playlist_id} already has a video at position {video.order_index}"
                )
            record = video.model_copy(update={"id": uuid4(), "created_at": _now()})
            self._videos[record.id] = record
        return record

    def get_video(self, video_id: UUID) -> Video:
        return self._get(self._videos, video_id, "Video")

    def update_video(self, video_id: UUID, changes: Mapping[str, object]) -> Video:
        return self._update(self._videos, video_id, changes, "Video")

    def list_videos(self, playlist_id: UUID) -> List[Video]:
        with self._lock:
            videos = [video for video in self._videos.values() if video.playlist_id == playlist_id]
        return sorted(videos, key=lambda video: video.order_index)

    # ------------------------------------------------------------------ #
    # Study shorts                                                       #
    # ------------------------------------------------------------------ #
    def create_study_short(self, short: StudyShort) -> StudyShort:
        with self._lock:
            video = self._get(self._videos, short.video_id, "Video")
            if video.playlist_id != short.playlist_id:
                raise RepositoryError(f"Video {video.id} does not belong to playlist {short.playlist_id}")
            record = short.model_copy(update={"id": uuid4(), "created_at": _now()})
            self._shorts[record.id] = record
        return record

    def get_study_short(self, short_id: UUID) -> StudyShort:
        return self._get(self._shorts, short_id, "StudyShort")

    def list_shorts_for_video(self, video_id: UUID) -> List[StudyShort]:
        with self._lock:
            shorts = [short for short in self._shorts.values() if short.video_id == video_id]
        return sorted(shorts, key=lambda short: short.order_index)

    def list_shorts_for_playlist(self, playlist_id: UUID) -> List[StudyShort]:
        with self._lock:
            positions = {video_id: video.order_index for video_id, video in self._videos.items()}
            shorts = [short for short in self._shorts.values() if short.playlist_id == playlist_id]
        return sorted(shorts, key=lambda short: (positions.get(short.video_id, 0), short.order_index))

    def delete_shorts_for_video(self, video_id: UUID) -> int:
        with self._lock:
            doomed = [short_id for short_id, short in self._shorts.items() if short.video_id == video_id]
            for short_id in doomed:
                del self._shorts[short_id]
        return len(doomed)

    # ------------------------------------------------------------------ #
    # User progress                                                      #
    # ------------------------------------------------------------------ #
    def find_progress(self, user_id: str, playlist_id: UUID) -> Optional[UserProgress]:
        with self._lock:
            for progress in self._progress.values():
                if progress.user_id == user_id and progress.playlist_id == playlist_id:
                    return progress
        return None

    def create_progress(self, progress: UserProgress) -> UserProgress:
        with self._lock:
            if self.find_progress(progress.user_id, progress.playlist_id) is not None:
                raise RepositoryError(
                    f"Progress already exists for user {progress.user_id} on playlist {progress.playlist_id}"
                )
            record = progress.model_copy(update={"id": uuid4()})
            self._progress[record.id] = record
        return record

    def update_progress(self, progress_id: UUID, changes: Mapping[str, object]) -> UserProgress:
        return self._update(self._progress, progress_id, changes, "UserProgress")

    def list_progress(self, user_id: str) -> List[UserProgress]:
        with self._lock:
            return [progress for progress in self._progress.values() if progress.user_id == user_id]

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #
    def _get(self, table: Dict[UUID, RecordT], record_id: UUID, kind: str) -> RecordT:
        with self._lock:
            record = table.get(record_id)
        if record is None:
            raise RecordNotFoundError(f"{kind} {record_id} not found")
        return record

    def _update(
        self,
        table: Dict[UUID, RecordT],
        record_id: UUID,
        changes: Mapping[str, object],
        kind: str,
    ) -> RecordT:
        with self._lock:
            current = self._get(table, record_id, kind)
            # Revalidate so field constraints hold for partial updates too.
            updated = type(current).model_validate({**current.model_dump(), **dict(changes)})
            table[record_id] = updated
        return updated


_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def build_store(settings: Optional[Settings] = None, *, console: Optional[Console] = None) -> StudyStore:
    """Return the storage backend selected by ``STORAGE_BACKEND``."""

    settings = settings or get_settings()
    if settings.storage_backend == "postgres":
        from stwipe.db.postgres_store import PostgresStore

        return PostgresStore(settings=settings, console=console)
    return MemoryStore()


__all__ = ["MemoryStore", "StudyStore", "build_store"]
