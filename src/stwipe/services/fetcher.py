"""Playlist and video metadata retrieval via ``yt-dlp``."""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Tuple

import yt_dlp
from rich.console import Console

from stwipe.models.video import VideoSource
from stwipe.services import PlaylistFetchError
from stwipe.utils.validation import canonical_video_url, extract_video_id


class PlaylistFetcher:
    """Resolve playlist URLs into ordered :class:`VideoSource` references."""

    def __init__(self, *, console: Optional[Console] = None) -> None:
        self._console = console or Console()

    def fetch_playlist(self, url: str) -> Tuple[str, List[VideoSource]]:
        """Return the playlist title and its videos in playlist order.

        Parameters
        ----------
        url:
            YouTube playlist URL (already validated by the caller).

        Returns
        -------
        tuple[str, list[VideoSource]]
            Playlist title and one entry per video. Entries without an identifier (deleted or
            private videos) are skipped.

        Raises
        ------
        PlaylistFetchError
            If ``yt-dlp`` cannot resolve the playlist.
        """

        self._console.log(f"Fetching playlist entries via yt-dlp (url={url})")
        ydl_opts = {"quiet": True, "no_warnings": True, "skip_download": True, "extract_flat": "in_playlist"}
        try:
            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                info = ydl.extract_info(url, download=False)
        except Exception as exc:
            raise PlaylistFetchError(f"Could not fetch playlist {url!r}: {exc}") from exc

        if not info:
            raise PlaylistFetchError(f"yt-dlp returned no data for playlist {url!r}")

        sources = self._sources_from_entries(info.get("entries") or [])
        title = info.get("title") or f"Playlist {info.get('id', '')}".strip()
        self._console.log(f"[green]Fetched {len(sources)} videos[/green] (playlist={title})")
        return title, sources

    def describe_videos(self, urls: Iterable[str]) -> List[VideoSource]:
        """Look up metadata for an explicit list of video URLs, preserving order."""

        ydl_opts = {"quiet": True, "no_warnings": True, "skip_download": True}
        sources: List[VideoSource] = []
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            for url in urls:
                video_id = extract_video_id(url)
                try:
                    info = ydl.extract_info(canonical_video_url(video_id), download=False)
                except Exception as exc:
                    raise PlaylistFetchError(f"Could not fetch video {url!r}: {exc}") from exc
                sources.append(self._source_from_info(info or {}, fallback_id=video_id))
        return sources

    def _sources_from_entries(self, entries: Iterable[Optional[Mapping[str, object]]]) -> List[VideoSource]:
        sources: List[VideoSource] = []
        for entry in entries:
            if not entry or not entry.get("id"):
                continue
            sources.append(self._source_from_info(entry))
        return sources

    @staticmethod
    def _source_from_info(info: Mapping[str, object], *, fallback_id: Optional[str] = None) -> VideoSource:
        video_id = str(info.get("id") or fallback_id)
        duration = info.get("duration")
        return VideoSource(
            remote_id=video_id,
            title=str(info.get("title") or video_id),
            url=canonical_video_url(video_id),
            duration_seconds=int(float(duration)) if duration else 0,
        )


__all__ = ["PlaylistFetcher"]
