"""Audio download for playlist videos using ``yt-dlp`` and FFmpeg."""

from __future__ import annotations

import asyncio
import shutil
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import yt_dlp
from rich.console import Console

from stwipe.config.settings import Settings, get_settings
from stwipe.models.video import VideoSource
from stwipe.services import AudioExtractionError


class AudioExtractor:
    """Download a video's audio track into a scratch directory that is removed afterwards."""

    def __init__(self, *, settings: Optional[Settings] = None, console: Optional[Console] = None) -> None:
        self._settings = settings or get_settings()
        self._console = console or Console()

    @asynccontextmanager
    async def audio_for(self, source: VideoSource) -> AsyncIterator[Path]:
        """Yield the path of an mp3 rendition of ``source``.

        The scratch directory holding the file is deleted exactly once when the block exits,
        whether it exits normally or with an exception.
        """

        work_dir = self._settings.work_dir
        if work_dir is not None:
            work_dir.mkdir(parents=True, exist_ok=True)
        scratch = Path(tempfile.mkdtemp(prefix="stwipe-", dir=str(work_dir) if work_dir else None))
        try:
            audio_path = await asyncio.to_thread(self._download_audio, source, scratch)
            yield audio_path
        finally:
            shutil.rmtree(scratch, ignore_errors=True)
            self._console.log(f"Removed temporary audio (video_id={source.remote_id})")

    def _download_audio(self, source: VideoSource, destination: Path) -> Path:
        """Download the audio track for transcription via ``yt-dlp``.

        Raises
        ------
        AudioExtractionError
            If ``yt-dlp`` fails or completes without producing an output file.
        """

        self._console.log(f"Downloading audio via yt-dlp (video_id={source.remote_id})")
        ydl_opts = {
            "format": "bestaudio/best",
            "outtmpl": str(destination / f"{source.remote_id}.%(ext)s"),
            "quiet": True,
            "no_warnings": True,
            "postprocessors": [
                {
                    "key": "FFmpegExtractAudio",
                    "preferredcodec": "mp3",
                    "preferredquality": str(self._settings.audio_bitrate_kbps),
                }
            ],
        }
        try:
            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                ydl.download([source.url])
        except Exception as exc:
            raise AudioExtractionError(f"Audio download failed for {source.url}: {exc}") from exc

        downloaded_files = sorted(destination.glob(f"{source.remote_id}.*"))
        mp3_files = [path for path in downloaded_files if path.suffix == ".mp3"]
        if mp3_files:
            return mp3_files[0]
        if downloaded_files:
            return downloaded_files[0]
        raise AudioExtractionError(f"yt-dlp produced no audio file for {source.url}")


__all__ = ["AudioExtractor"]
