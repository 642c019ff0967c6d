"""Tests for playlist submission, processing, and browsing."""

import random
import unittest
from uuid import uuid4

from fakes import PLAYLIST_URL, FakeFetcher, make_context

from stwipe.db.repositories import RecordNotFoundError
from stwipe.models.base import ProcessingStatus
from stwipe.services import PlaylistFetchError
from stwipe.services.playlists import PlaylistService
from stwipe.utils.validation import InvalidPlaylistURLError


class TestPlaylistService(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.context = make_context()
        self.fetcher = FakeFetcher()
        self.service = PlaylistService(self.context, fetcher=self.fetcher, rng=random.Random(7))

    def test_submit_creates_pending_playlist(self):
        submission = self.service.submit("student-1", PLAYLIST_URL, subject="physics")

        playlist = submission.playlist
        self.assertIs(playlist.status, ProcessingStatus.PENDING)
        self.assertEqual(playlist.title, "Mechanics")
        self.assertEqual(playlist.remote_playlist_id, "PLmechanics01")
        self.assertEqual(playlist.language, "hinglish")
        self.assertEqual(playlist.subject, "physics")
        self.assertEqual(len(submission.sources), 2)
        self.assertEqual(self.service.list_playlists("student-1"), [playlist])

    def test_submit_rejects_invalid_url_before_fetching(self):
        with self.assertRaises(InvalidPlaylistURLError):
            self.service.submit("student-1", "https://example.com/not-a-playlist")
        self.assertEqual(self.fetcher.urls, [])

    def test_submit_propagates_fetch_failure(self):
        service = PlaylistService(self.context, fetcher=FakeFetcher(error=PlaylistFetchError("private playlist")))
        with self.assertRaises(PlaylistFetchError):
            service.submit("student-1", PLAYLIST_URL)
        self.assertEqual(service.list_playlists("student-1"), [])

    async def test_process_and_browse(self):
        submission = self.service.submit("student-1", PLAYLIST_URL, language="english")

        result = await self.service.process(submission)

        self.assertIs(self.service.get_playlist(submission.playlist.id).status, ProcessingStatus.COMPLETED)
        self.assertEqual(len(self.service.list_videos(submission.playlist.id)), 2)
        ordered = self.service.list_shorts(submission.playlist.id, shuffle=False)
        self.assertEqual(ordered, result.shorts)

        shuffled = self.service.list_shorts(submission.playlist.id)
        self.assertCountEqual([short.id for short in shuffled], [short.id for short in ordered])

    async def test_shuffle_uses_injected_rng(self):
        submission = self.service.submit("student-1", PLAYLIST_URL)
        await self.service.process(submission)
        ordered = self.service.list_shorts(submission.playlist.id, shuffle=False)

        expected = list(ordered)
        random.Random(7).shuffle(expected)
        self.assertEqual(self.service.list_shorts(submission.playlist.id), expected)

    def test_list_shorts_for_unknown_playlist(self):
        with self.assertRaises(RecordNotFoundError):
            self.service.list_shorts(uuid4())


if __name__ == "__main__":
    unittest.main()
