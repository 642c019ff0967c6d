"""Parsing of YouTube playlist and video URLs into their identifiers."""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import ParseResult, parse_qs, urlparse


class InvalidYouTubeURLError(ValueError):
    """Raised when a string names no YouTube video."""


class InvalidPlaylistURLError(ValueError):
    """Raised when a URL does not reference a YouTube playlist."""


VIDEO_ID = re.compile(r"[0-9A-Za-z_-]{11}")
PLAYLIST_ID = re.compile(r"[0-9A-Za-z_-]{2,64}")

_YOUTUBE_HOSTS = frozenset({"youtube.com", "www.youtube.com", "m.youtube.com", "music.youtube.com"})
_SHORT_HOST = "youtu.be"
_PATH_PREFIXES = ("/embed/", "/shorts/", "/live/")


def _youtube_url(text: str) -> Optional[ParseResult]:
    parsed = urlparse(text.strip())
    host = parsed.netloc.lower()
    if parsed.scheme not in {"http", "https"}:
        return None
    if host != _SHORT_HOST and host not in _YOUTUBE_HOSTS:
        return None
    return parsed


def _query_value(parsed: ParseResult, key: str) -> str:
    values = parse_qs(parsed.query).get(key) or [""]
    return values[0]


def extract_playlist_id(url: str) -> str:
    """Return the ``list`` identifier from a YouTube playlist URL.

    Both ``/playlist?list=...`` and ``/watch?v=...&list=...`` forms are accepted.
    """

    parsed = _youtube_url(url)
    candidate = _query_value(parsed, "list") if parsed is not None else ""
    if not PLAYLIST_ID.fullmatch(candidate):
        raise InvalidPlaylistURLError(f"Invalid YouTube playlist URL: {url!r}")
    return candidate


def extract_video_id(url: str) -> str:
    """Return the 11-character video id from a watch, short-link, embed or shorts URL, or a bare id."""

    text = url.strip()
    if VIDEO_ID.fullmatch(text):
        return text

    candidate = ""
    parsed = _youtube_url(text)
    if parsed is not None:
        if parsed.netloc.lower() == _SHORT_HOST:
            candidate = parsed.path[1:]
        elif parsed.path == "/watch":
            candidate = _query_value(parsed, "v")
        else:
            for prefix in _PATH_PREFIXES:
                if parsed.path.startswith(prefix):
                    candidate = parsed.path[len(prefix):].split("/")[0]
                    break

    if not VIDEO_ID.fullmatch(candidate):
        raise InvalidYouTubeURLError(f"Invalid YouTube URL or video ID: {url!r}")
    return candidate


def canonical_video_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


__all__ = [
    "InvalidPlaylistURLError",
    "InvalidYouTubeURLError",
    "PLAYLIST_ID",
    "VIDEO_ID",
    "canonical_video_url",
    "extract_playlist_id",
    "extract_video_id",
]
