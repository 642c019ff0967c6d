"""Split cleaned transcript text into topical study segments."""

from __future__ import annotations

import math
from typing import List, Optional, Sequence

from stwipe.config.settings import Settings
from stwipe.models.short import Segment

DEFAULT_SEGMENT_COUNT = 3
DEFAULT_SEGMENT_SECONDS = 180


class Segmenter:
    """Cut text into a fixed number of contiguous, roughly equal word chunks.

    Chunk ``i`` holds words ``[i * size, (i + 1) * size)`` where ``size`` is
    ``ceil(total_words / segment_count)``; empty trailing chunks are dropped. Time bounds are
    synthetic: chunk ``i`` spans ``[i * segment_seconds, (i + 1) * segment_seconds)`` regardless of
    when the words were actually spoken.
    """

    def __init__(
        self,
        *,
        segment_count: int = DEFAULT_SEGMENT_COUNT,
        segment_seconds: int = DEFAULT_SEGMENT_SECONDS,
    ) -> None:
        if segment_count < 1:
            raise ValueError("segment_count must be at least 1")
        if segment_seconds < 1:
            raise ValueError("segment_seconds must be at least 1")
        self._segment_count = segment_count
        self._segment_seconds = segment_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "Segmenter":
        return cls(segment_count=settings.segment_count, segment_seconds=settings.segment_seconds)

    @property
    def segment_count(self) -> int:
        return self._segment_count

    def segment(self, text: str, video_title: str, *, topics: Optional[Sequence[str]] = None) -> List[Segment]:
        """Return at most ``segment_count`` segments covering every word of ``text`` in order.

        ``topics`` optionally supplies labels by position; positions without a usable label get
        ``"<video_title> - Concept <n>"``.
        """

        words = text.split()
        if not words:
            return []

        size = math.ceil(len(words) / self._segment_count)
        segments: List[Segment] = []
        for index in range(self._segment_count):
            chunk = words[index * size : (index + 1) * size]
            if not chunk:
                continue
            segments.append(
                Segment(
                    topic=self._topic_for(index, video_title, topics),
                    content=" ".join(chunk),
                    start_time=index * self._segment_seconds,
                    end_time=(index + 1) * self._segment_seconds,
                )
            )
        return segments

    @staticmethod
    def _topic_for(index: int, video_title: str, topics: Optional[Sequence[str]]) -> str:
        if topics and index < len(topics) and topics[index].strip():
            return topics[index].strip()
        return f"{video_title} - Concept {index + 1}"


__all__ = ["DEFAULT_SEGMENT_COUNT", "DEFAULT_SEGMENT_SECONDS", "Segmenter"]
