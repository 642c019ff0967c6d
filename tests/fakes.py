"""In-process stand-ins for the external collaborators of the processing pipeline."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Dict, List, Optional, Set, Tuple

from rich.console import Console

from stwipe.config.settings import RateLimitConfig, Settings
from stwipe.db.store import MemoryStore
from stwipe.models.playlist import Playlist
from stwipe.models.transcript import TranscriptionResult
from stwipe.models.video import VideoSource
from stwipe.services import AudioExtractionError, TranscriptionError
from stwipe.services.content_filter import ContentFilter
from stwipe.services.pipeline import PipelineContext
from stwipe.services.rate_limit import RateLimitRegistry
from stwipe.services.segmenter import Segmenter

NINE_WORDS = "force equals mass times acceleration for every single body"
PLAYLIST_URL = "https://www.youtube.com/playlist?list=PLmechanics01"


def quiet_console() -> Console:
    return Console(quiet=True)


def make_settings(**overrides: object) -> Settings:
    values: Dict[str, object] = {
        "storage_backend": "memory",
        "openai_api_key": None,
        "ai_filter_enabled": False,
        "rate_limits": RateLimitConfig(),
    }
    values.update(overrides)
    return Settings(**values)


def make_source(index: int, *, title: Optional[str] = None) -> VideoSource:
    remote_id = f"vid{index:08d}"
    return VideoSource(
        remote_id=remote_id,
        title=title or f"Lecture {index}",
        url=f"https://www.youtube.com/watch?v={remote_id}",
        duration_seconds=600,
    )


def make_playlist(store: MemoryStore, *, user_id: str = "student-1", language: str = "hinglish") -> Playlist:
    return store.create_playlist(
        Playlist(
            user_id=user_id,
            title="Physics 101",
            source_url="https://www.youtube.com/playlist?list=PLphysics101",
            remote_playlist_id="PLphysics101",
            language=language,
        )
    )


class FakeAudioSource:
    """Yields a placeholder path and records acquisition and release per video."""

    def __init__(self, *, failing: Optional[Set[str]] = None, delay: float = 0.0) -> None:
        self.failing = failing or set()
        self.delay = delay
        self.acquired: List[str] = []
        self.released: List[str] = []
        self.active = 0
        self.max_active = 0

    @asynccontextmanager
    async def audio_for(self, source: VideoSource) -> AsyncIterator[Path]:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if source.remote_id in self.failing:
                raise AudioExtractionError(f"Audio download failed for {source.url}")
            self.acquired.append(source.remote_id)
            try:
                yield Path(f"/tmp/{source.remote_id}.mp3")
            finally:
                self.released.append(source.remote_id)
        finally:
            self.active -= 1


class FakeTranscriber:
    """Returns canned transcript text, optionally failing or stalling."""

    def __init__(self, text: str = NINE_WORDS, *, fail: bool = False, delay: float = 0.0) -> None:
        self.text = text
        self.fail = fail
        self.delay = delay
        self.calls: List[Optional[str]] = []

    async def transcribe(self, audio_path: Path, language: Optional[str] = None) -> TranscriptionResult:
        self.calls.append(language)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise TranscriptionError("Failed to transcribe audio: service unavailable")
        return TranscriptionResult(text=self.text, duration=540.0, language=language)


class FakeCleaner:
    """Text cleaner that returns a fixed answer or raises."""

    def __init__(self, answer: Optional[str] = None, *, error: Optional[Exception] = None) -> None:
        self.answer = answer
        self.error = error
        self.calls: List[str] = []

    async def clean(self, text: str, language: str) -> str:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return text if self.answer is None else self.answer


class FakeTopicExtractor:
    def __init__(self, topics: List[str]) -> None:
        self.topics = topics

    async def identify_topics(self, text: str) -> List[str]:
        return list(self.topics)


def make_context(
    store: Optional[MemoryStore] = None,
    *,
    audio: Optional[FakeAudioSource] = None,
    transcriber: Optional[FakeTranscriber] = None,
    content_filter: Optional[ContentFilter] = None,
    topic_extractor: Optional[FakeTopicExtractor] = None,
    **settings_overrides: object,
) -> PipelineContext:
    settings = make_settings(**settings_overrides)
    console = quiet_console()
    return PipelineContext(
        store=store or MemoryStore(),
        audio=audio or FakeAudioSource(),
        transcriber=transcriber or FakeTranscriber(),
        content_filter=content_filter or ContentFilter(console=console),
        segmenter=Segmenter.from_settings(settings),
        settings=settings,
        console=console,
        rate_limits=RateLimitRegistry(settings.rate_limits),
        topic_extractor=topic_extractor,
    )


class FakeFetcher:
    """Playlist fetcher returning fixed sources."""

    def __init__(self, sources: Optional[List[VideoSource]] = None, *, error: Optional[Exception] = None) -> None:
        self.sources = sources if sources is not None else [make_source(1), make_source(2)]
        self.error = error
        self.urls: List[str] = []

    def fetch_playlist(self, url: str) -> Tuple[str, List[VideoSource]]:
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return "Mechanics", list(self.sources)
