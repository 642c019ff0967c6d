"""Pydantic domain models for Stwipe."""

from stwipe.models.base import ProcessingStatus, StwipeBaseModel
from stwipe.models.playlist import Playlist
from stwipe.models.progress import UserProgress, UserStats
from stwipe.models.short import Segment, StudyShort
from stwipe.models.transcript import TranscriptionResult
from stwipe.models.video import Video, VideoSource

__all__ = [
    "Playlist",
    "ProcessingStatus",
    "Segment",
    "StudyShort",
    "StwipeBaseModel",
    "TranscriptionResult",
    "UserProgress",
    "UserStats",
    "Video",
    "VideoSource",
]
