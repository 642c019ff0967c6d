"""Per-user study progress: time tracking, bookmarks, completions, and statistics."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Mapping, Optional
from uuid import UUID

from rich.console import Console

from stwipe.db.repositories import RecordNotFoundError
from stwipe.db.store import StudyStore
from stwipe.models.progress import UserProgress, UserStats
from stwipe.models.short import StudyShort

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StudyProgressService:
    """Record how a user works through the study shorts of a playlist."""

    def __init__(
        self,
        store: StudyStore,
        *,
        console: Optional[Console] = None,
        clock: Clock = _utcnow,
    ) -> None:
        self._store = store
        self._console = console or Console()
        self._clock = clock

    def record_study(self, user_id: str, short_id: UUID, seconds: int) -> UserProgress:
        """Add ``seconds`` of study time on ``short_id`` and make it the current short.

        Progress for the short's playlist is created on first use.
        """

        if seconds < 0:
            raise ValueError("seconds must be non-negative")

        short = self._store.get_study_short(short_id)
        progress = self._find_or_create(user_id, short)
        return self._update(
            progress,
            {
                "current_short_id": short.id,
                "last_studied_at": self._clock(),
                "total_time_spent": progress.total_time_spent + seconds,
            },
        )

    def toggle_bookmark(self, user_id: str, short_id: UUID) -> bool:
        """Flip the bookmark on ``short_id`` and return whether it is now bookmarked.

        Raises
        ------
        RecordNotFoundError
            If the short does not exist or the user has no progress for its playlist yet.
        """

        short = self._store.get_study_short(short_id)
        progress = self._store.find_progress(user_id, short.playlist_id)
        if progress is None:
            raise RecordNotFoundError(f"No progress for user {user_id} on playlist {short.playlist_id}")

        bookmarks = list(progress.bookmarked_shorts)
        bookmarked = short.id not in bookmarks
        if bookmarked:
            bookmarks.append(short.id)
        else:
            bookmarks = [existing for existing in bookmarks if existing != short.id]
        self._update(progress, {"bookmarked_shorts": bookmarks})
        return bookmarked

    def mark_completed(self, user_id: str, short_id: UUID) -> UserProgress:
        short = self._store.get_study_short(short_id)
        progress = self._find_or_create(user_id, short)
        if short.id in progress.completed_shorts:
            return progress
        return self._update(progress, {"completed_shorts": [*progress.completed_shorts, short.id]})

    def get_user_stats(self, user_id: str) -> UserStats:
        """Aggregate completions, study hours, and distinct study days across playlists."""

        records = self._store.list_progress(user_id)
        total_shorts = sum(len(record.completed_shorts) for record in records)
        total_seconds = sum(record.total_time_spent for record in records)
        study_days = {record.last_studied_at.date() for record in records if record.last_studied_at is not None}
        return UserStats(
            total_shorts=total_shorts,
            hours_studied=round(total_seconds / 3600, 1),
            streak=len(study_days),
        )

    def _find_or_create(self, user_id: str, short: StudyShort) -> UserProgress:
        progress = self._store.find_progress(user_id, short.playlist_id)
        if progress is not None:
            return progress
        self._console.log(f"Starting progress (user_id={user_id}, playlist_id={short.playlist_id})")
        return self._store.create_progress(
            UserProgress(user_id=user_id, playlist_id=short.playlist_id, current_short_id=short.id)
        )

    def _update(self, progress: UserProgress, changes: Mapping[str, object]) -> UserProgress:
        if progress.id is None:
            raise RecordNotFoundError("Progress record has no identifier")
        return self._store.update_progress(progress.id, changes)


__all__ = ["StudyProgressService"]
