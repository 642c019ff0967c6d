"""Playlist processing pipeline: audio, transcript, filter, segments, study shorts."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Mapping, Optional, Sequence, TypeVar, Union
from uuid import UUID

from rich.console import Console

from stwipe.config.settings import Settings, get_settings
from stwipe.db.store import StudyStore, build_store
from stwipe.models.base import ProcessingStatus
from stwipe.models.playlist import Playlist
from stwipe.models.short import Segment, StudyShort
from stwipe.models.video import Video, VideoSource
from stwipe.services import AudioSource, StageTimeoutError, TopicExtractor, Transcriber
from stwipe.services.audio import AudioExtractor
from stwipe.services.content_filter import ContentFilter, remove_fillers, topic_extractor_from_settings
from stwipe.services.rate_limit import OPENAI_SERVICE, YOUTUBE_SERVICE, RateLimitRegistry
from stwipe.services.segmenter import Segmenter
from stwipe.services.transcription import WhisperTranscriber
from stwipe.utils.progress import ProcessingStage, ProgressUpdate

T = TypeVar("T")
ProgressHandler = Callable[[ProgressUpdate], None]


class PipelineBootstrapError(RuntimeError):
    """Raised when a run fails before per-video processing begins."""


@dataclass(slots=True, frozen=True)
class VideoSuccess:
    """A video whose study shorts were all created."""

    video: Video
    shorts: List[StudyShort]

    @property
    def succeeded(self) -> bool:
        return True


@dataclass(slots=True, frozen=True)
class VideoFailure:
    """A video that failed in some stage; the cause is recorded on the video row as well."""

    video: Video
    error_type: str
    error_message: str

    @property
    def succeeded(self) -> bool:
        return False


VideoOutcome = Union[VideoSuccess, VideoFailure]


@dataclass(slots=True)
class PipelineResult:
    """Final playlist state plus one outcome per video source, in source order."""

    playlist: Playlist
    outcomes: List[VideoOutcome]

    @property
    def shorts(self) -> List[StudyShort]:
        return [short for outcome in self.outcomes if isinstance(outcome, VideoSuccess) for short in outcome.shorts]

    @property
    def failures(self) -> List[VideoFailure]:
        return [outcome for outcome in self.outcomes if isinstance(outcome, VideoFailure)]


@dataclass(slots=True)
class PipelineContext:
    """Collaborators the pipeline depends on, passed in explicitly."""

    store: StudyStore
    audio: AudioSource
    transcriber: Transcriber
    content_filter: ContentFilter
    segmenter: Segmenter
    settings: Settings
    console: Console = field(default_factory=Console)
    rate_limits: Optional[RateLimitRegistry] = None
    topic_extractor: Optional[TopicExtractor] = None

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        *,
        store: Optional[StudyStore] = None,
        console: Optional[Console] = None,
    ) -> "PipelineContext":
        """Wire the production collaborators described by ``settings``."""

        settings = settings or get_settings()
        console = console or Console()
        return cls(
            store=store or build_store(settings, console=console),
            audio=AudioExtractor(settings=settings, console=console),
            transcriber=WhisperTranscriber(settings=settings, console=console),
            content_filter=ContentFilter.from_settings(settings, console=console),
            segmenter=Segmenter.from_settings(settings),
            settings=settings,
            console=console,
            rate_limits=RateLimitRegistry(settings.rate_limits),
            topic_extractor=topic_extractor_from_settings(settings, console=console),
        )


@dataclass(slots=True)
class _RunState:
    playlist_id: UUID
    language: str
    total: int
    processed: int = 0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class PlaylistPipeline:
    """Drive every video of a playlist through the processing stages.

    A single video's failure is recorded on that video and never aborts the playlist; only
    failures before the per-video loop starts mark the playlist ``failed`` and propagate.
    """

    def __init__(self, context: PipelineContext, *, on_progress: Optional[ProgressHandler] = None) -> None:
        self._context = context
        self._store = context.store
        self._console = context.console
        self._settings = context.settings
        self._rate_limits = context.rate_limits or RateLimitRegistry()
        self._on_progress = on_progress

    async def run(
        self,
        playlist_id: UUID,
        video_sources: Sequence[VideoSource],
        language: Optional[str] = None,
    ) -> PipelineResult:
        """Process ``video_sources`` for an existing playlist.

        Parameters
        ----------
        playlist_id:
            Identifier of a playlist previously created in ``pending`` state.
        video_sources:
            Videos to process, in playlist order.
        language:
            Language hint; defaults to the playlist's language tag.

        Returns
        -------
        PipelineResult
            The completed playlist and one outcome per source.

        Raises
        ------
        stwipe.db.repositories.RecordNotFoundError
            If the playlist does not exist.
        PipelineBootstrapError
            If the playlist is not pending or its video records cannot be created. The playlist
            is marked ``failed`` in the latter case.
        """

        playlist = await self._call(self._store.get_playlist, playlist_id)
        if playlist.status is not ProcessingStatus.PENDING:
            raise PipelineBootstrapError(f"Playlist {playlist_id} is {playlist.status.value}; only pending playlists run.")

        state = _RunState(
            playlist_id=playlist_id,
            language=language or playlist.language,
            total=len(video_sources),
        )
        self._console.log(
            f"[blue]Pipeline:[/blue] starting playlist {playlist_id} "
            f"(videos={state.total}, language={state.language})"
        )

        try:
            await self._call(
                self._store.update_playlist,
                playlist_id,
                {"status": ProcessingStatus.PROCESSING, "total_videos": state.total, "processed_videos": 0},
            )
            videos = await self._create_videos(playlist_id, video_sources)
        except Exception as exc:
            await self._mark_playlist_failed(playlist_id, exc)
            raise PipelineBootstrapError(f"Failed to start playlist {playlist_id}: {exc}") from exc

        try:
            outcomes = await self._process_all(state, videos, video_sources)
        except asyncio.CancelledError:
            await self._mark_playlist_failed(playlist_id, "run cancelled")
            raise

        playlist = await self._call(
            self._store.update_playlist,
            playlist_id,
            {"status": ProcessingStatus.COMPLETED, "completed_at": datetime.now(timezone.utc)},
        )
        failed = sum(1 for outcome in outcomes if not outcome.succeeded)
        self._console.log(
            f"[green]Pipeline:[/green] playlist processed "
            f"(playlist_id={playlist_id}, videos={len(outcomes)}, failed={failed})"
        )
        self._emit(state, ProcessingStage.COMPLETE, "Playlist processed")
        return PipelineResult(playlist=playlist, outcomes=outcomes)

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #
    async def _create_videos(self, playlist_id: UUID, sources: Sequence[VideoSource]) -> List[Video]:
        videos: List[Video] = []
        for index, source in enumerate(sources):
            video = Video(
                playlist_id=playlist_id,
                title=source.title,
                remote_video_id=source.remote_id,
                source_url=source.url,
                duration_seconds=source.duration_seconds,
                order_index=index,
            )
            videos.append(await self._call(self._store.create_video, video))
        return videos

    async def _process_all(
        self,
        state: _RunState,
        videos: Sequence[Video],
        sources: Sequence[VideoSource],
    ) -> List[VideoOutcome]:
        limit = self._settings.max_concurrent_videos
        if limit <= 1:
            return [
                await self._process_video(state, index, video, source)
                for index, (video, source) in enumerate(zip(videos, sources))
            ]

        semaphore = asyncio.Semaphore(limit)

        async def bounded(index: int, video: Video, source: VideoSource) -> VideoOutcome:
            async with semaphore:
                return await self._process_video(state, index, video, source)

        return list(
            await asyncio.gather(
                *(bounded(index, video, source) for index, (video, source) in enumerate(zip(videos, sources)))
            )
        )

    async def _process_video(self, state: _RunState, index: int, video: Video, source: VideoSource) -> VideoOutcome:
        outcome: VideoOutcome
        try:
            video = await self._call(self._store.update_video, video.id, {"status": ProcessingStatus.PROCESSING})
            shorts = await self._run_stages(state, index, video, source)
            video = await self._call(
                self._store.update_video,
                video.id,
                {
                    "status": ProcessingStatus.COMPLETED,
                    "total_shorts": len(shorts),
                    "processed_shorts": len(shorts),
                },
            )
            outcome = VideoSuccess(video=video, shorts=shorts)
            self._console.log(f"[green]Video processed:[/green] {video.title} (shorts={len(shorts)})")
        except Exception as exc:
            self._console.log(f"[red]Error processing video {video.title}:[/red] {exc}")
            self._emit(state, ProcessingStage.FAILED, f"{video.title} failed: {exc}", index)
            await self._discard_shorts(video)
            video = await self._mark_video_failed(video, exc)
            outcome = VideoFailure(video=video, error_type=exc.__class__.__name__, error_message=str(exc))

        await self._advance_counter(state)
        return outcome

    async def _run_stages(self, state: _RunState, index: int, video: Video, source: VideoSource) -> List[StudyShort]:
        context = self._context

        self._emit(state, ProcessingStage.DOWNLOADING, f"Downloading audio for {video.title}", index)
        await self._rate_limits.apply(YOUTUBE_SERVICE)
        async with context.audio.audio_for(source) as audio_path:
            self._emit(state, ProcessingStage.TRANSCRIBING, f"Transcribing {video.title}", index)
            await self._rate_limits.apply(OPENAI_SERVICE)
            transcript = await self._with_timeout(
                "Transcription", context.transcriber.transcribe(audio_path, state.language)
            )

        self._emit(state, ProcessingStage.FILTERING, f"Filtering {video.title}", index)
        await self._rate_limits.apply(OPENAI_SERVICE)
        try:
            cleaned = await self._with_timeout(
                "Filtering", context.content_filter.filter(transcript.text, state.language)
            )
        except StageTimeoutError as exc:
            self._console.log(f"[yellow]{exc}, using basic filter:[/yellow] {video.title}")
            cleaned = remove_fillers(transcript.text, state.language)

        topics: Optional[List[str]] = None
        if context.topic_extractor is not None and cleaned:
            await self._rate_limits.apply(OPENAI_SERVICE)
            topics = await context.topic_extractor.identify_topics(cleaned)

        self._emit(state, ProcessingStage.SEGMENTING, f"Segmenting {video.title}", index)
        segments = context.segmenter.segment(cleaned, video.title, topics=topics)

        self._emit(state, ProcessingStage.STORING, f"Saving {len(segments)} shorts", index)
        return [await self._store_short(video, position, segment) for position, segment in enumerate(segments)]

    async def _store_short(self, video: Video, position: int, segment: Segment) -> StudyShort:
        short = StudyShort(
            playlist_id=video.playlist_id,
            video_id=video.id,
            title=f"{video.title} - Part {position + 1}",
            topic=segment.topic,
            content=segment.content,
            start_time=segment.start_time,
            end_time=segment.end_time,
            duration=segment.end_time - segment.start_time,
            order_index=position,
        )
        return await self._call(self._store.create_study_short, short)

    async def _discard_shorts(self, video: Video) -> None:
        try:
            removed = await self._call(self._store.delete_shorts_for_video, video.id)
        except Exception as store_exc:  # pragma: no cover - store outage while cleaning up
            self._console.log(f"[red]Could not remove partial shorts for video {video.id}:[/red] {store_exc}")
            return
        if removed:
            self._console.log(f"[yellow]Removed {removed} partial shorts for {video.title}[/yellow]")

    async def _mark_video_failed(self, video: Video, exc: Exception) -> Video:
        try:
            return await self._call(
                self._store.update_video,
                video.id,
                {"status": ProcessingStatus.FAILED, "error_message": f"{exc.__class__.__name__}: {exc}"},
            )
        except Exception as store_exc:  # pragma: no cover - store outage while recording a failure
            self._console.log(f"[red]Could not record failure for video {video.id}:[/red] {store_exc}")
            return video.model_copy(update={"status": ProcessingStatus.FAILED})

    async def _mark_playlist_failed(self, playlist_id: UUID, cause: object) -> None:
        self._console.log(f"[red]Error processing playlist {playlist_id}:[/red] {cause}")
        try:
            await self._call(self._store.update_playlist, playlist_id, {"status": ProcessingStatus.FAILED})
        except Exception as exc:  # pragma: no cover - original error is the one surfaced
            self._console.log(f"[red]Could not mark playlist {playlist_id} failed:[/red] {exc}")

    async def _advance_counter(self, state: _RunState) -> None:
        async with state.lock:
            state.processed = min(state.processed + 1, state.total)
            await self._call(self._store.update_playlist, state.playlist_id, {"processed_videos": state.processed})
            self._emit(state, ProcessingStage.COMPLETE, f"{state.processed}/{state.total} videos processed")

    async def _with_timeout(self, stage: str, awaitable: Awaitable[T]) -> T:
        timeout = self._settings.stage_timeout_seconds
        if timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise StageTimeoutError(f"{stage} timed out after {timeout:g}s") from exc

    async def _call(self, func: Callable[..., T], *args: object) -> T:
        return await asyncio.to_thread(func, *args)

    def _emit(
        self,
        state: _RunState,
        stage: ProcessingStage,
        message: str,
        video_index: Optional[int] = None,
    ) -> None:
        if self._on_progress is None:
            return
        self._on_progress(
            ProgressUpdate(
                playlist_id=state.playlist_id,
                stage=stage,
                message=message,
                processed_videos=state.processed,
                total_videos=state.total,
                video_index=video_index,
            )
        )


__all__ = [
    "PipelineBootstrapError",
    "PipelineContext",
    "PipelineResult",
    "PlaylistPipeline",
    "ProgressHandler",
    "VideoFailure",
    "VideoOutcome",
    "VideoSuccess",
]
