"""Playlist submission and browsing built on the processing pipeline."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import List, Optional, Sequence
from uuid import UUID

from rich.console import Console

from stwipe.config.settings import Settings, get_settings
from stwipe.db.store import StudyStore
from stwipe.models.playlist import Playlist
from stwipe.models.short import StudyShort
from stwipe.models.video import Video, VideoSource
from stwipe.services.fetcher import PlaylistFetcher
from stwipe.services.pipeline import PipelineContext, PipelineResult, PlaylistPipeline, ProgressHandler
from stwipe.utils.validation import extract_playlist_id


@dataclass(slots=True)
class Submission:
    """A freshly created playlist together with the videos it will process."""

    playlist: Playlist
    sources: List[VideoSource]


class PlaylistService:
    """Create playlists from YouTube URLs, run them, and read back their study shorts."""

    def __init__(
        self,
        context: PipelineContext,
        *,
        fetcher: Optional[PlaylistFetcher] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._context = context
        self._store: StudyStore = context.store
        self._console = context.console
        self._fetcher = fetcher or PlaylistFetcher(console=context.console)
        self._rng = rng or random.Random()

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        *,
        console: Optional[Console] = None,
    ) -> "PlaylistService":
        settings = settings or get_settings()
        return cls(PipelineContext.from_settings(settings, console=console))

    @property
    def store(self) -> StudyStore:
        return self._store

    def submit(
        self,
        user_id: str,
        url: str,
        *,
        language: Optional[str] = None,
        subject: Optional[str] = None,
    ) -> Submission:
        """Validate ``url``, resolve its videos, and create a ``pending`` playlist.

        Raises
        ------
        stwipe.utils.validation.InvalidPlaylistURLError
            If ``url`` is not a YouTube playlist link.
        stwipe.services.PlaylistFetchError
            If the playlist cannot be resolved.
        """

        remote_id = extract_playlist_id(url)
        title, sources = self._fetcher.fetch_playlist(url)
        playlist = self._store.create_playlist(
            Playlist(
                user_id=user_id,
                title=title,
                source_url=url,
                remote_playlist_id=remote_id,
                subject=subject,
                language=language or self._context.settings.default_language,
            )
        )
        self._console.log(f"Created playlist {playlist.id} ({len(sources)} videos)")
        return Submission(playlist=playlist, sources=sources)

    async def process(
        self,
        submission: Submission,
        *,
        on_progress: Optional[ProgressHandler] = None,
    ) -> PipelineResult:
        pipeline = PlaylistPipeline(self._context, on_progress=on_progress)
        return await pipeline.run(submission.playlist.id, submission.sources, submission.playlist.language)

    def get_playlist(self, playlist_id: UUID) -> Playlist:
        return self._store.get_playlist(playlist_id)

    def list_playlists(self, user_id: str) -> List[Playlist]:
        return self._store.list_playlists(user_id)

    def list_videos(self, playlist_id: UUID) -> List[Video]:
        return self._store.list_videos(playlist_id)

    def list_shorts(self, playlist_id: UUID, *, shuffle: bool = True) -> List[StudyShort]:
        """Return a playlist's shorts, shuffled for study unless ``shuffle`` is false.

        The unshuffled order is by video position, then by position within the video.
        """

        self._store.get_playlist(playlist_id)
        shorts: Sequence[StudyShort] = self._store.list_shorts_for_playlist(playlist_id)
        ordered = list(shorts)
        if shuffle:
            self._rng.shuffle(ordered)
        return ordered


__all__ = ["PlaylistService", "Submission"]
