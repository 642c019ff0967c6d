"""Tests for the Postgres store's SQL generation using a recording connection."""

import unittest
from contextlib import contextmanager
from datetime import datetime, timezone
from uuid import uuid4

from psycopg2.extras import Json

from stwipe.db.postgres_store import PostgresStore
from stwipe.db.repositories import RecordNotFoundError, RepositoryError
from stwipe.models.base import ProcessingStatus
from stwipe.models.progress import UserProgress


class _RecordingCursor:
    def __init__(self, rows):
        self._rows = rows
        self.executed = []
        self.rowcount = len(rows)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def execute(self, query, params):
        self.executed.append((query, dict(params)))

    def fetchone(self):
        return self._rows[0] if self._rows else None

    def fetchall(self):
        return list(self._rows)


class _RecordingConnection:
    def __init__(self, rows):
        self.cursor_instance = _RecordingCursor(rows)

    def cursor(self, cursor_factory=None):
        return self.cursor_instance


def _store(rows):
    connection = _RecordingConnection(rows)

    @contextmanager
    def factory():
        yield connection

    return PostgresStore(connection_factory=factory, auto_migrate=False), connection.cursor_instance


def _playlist_row(**overrides):
    row = {
        "id": uuid4(),
        "user_id": "student-1",
        "title": "Physics 101",
        "source_url": "https://www.youtube.com/playlist?list=PLphysics101",
        "remote_playlist_id": "PLphysics101",
        "subject": None,
        "language": "hinglish",
        "status": "pending",
        "total_videos": 0,
        "processed_videos": 0,
        "created_at": datetime(2024, 3, 1, tzinfo=timezone.utc),
        "completed_at": None,
    }
    row.update(overrides)
    return row


class TestPostgresStore(unittest.TestCase):
    def test_update_playlist_serialises_enums_and_ids(self):
        row = _playlist_row(status="processing", total_videos=2)
        store, cursor = _store([row])

        playlist = store.update_playlist(row["id"], {"status": ProcessingStatus.PROCESSING, "total_videos": 2})

        query, params = cursor.executed[0]
        self.assertTrue(query.startswith("UPDATE playlists SET status = %(status)s, total_videos = %(total_videos)s"))
        self.assertEqual(params, {"status": "processing", "total_videos": 2, "id": str(row["id"])})
        self.assertIs(playlist.status, ProcessingStatus.PROCESSING)

    def test_rejects_columns_outside_update_list(self):
        store, cursor = _store([])

        with self.assertRaises(RepositoryError):
            store.update_playlist(uuid4(), {"user_id": "someone-else"})
        self.assertEqual(cursor.executed, [])

    def test_get_missing_playlist_raises_not_found(self):
        store, _ = _store([])
        missing = uuid4()

        with self.assertRaises(RecordNotFoundError) as raised:
            store.get_playlist(missing)
        self.assertIn(str(missing), str(raised.exception))

    def test_find_progress_returns_none_when_absent(self):
        store, _ = _store([])
        self.assertIsNone(store.find_progress("student-1", uuid4()))

    def test_progress_lists_are_stored_as_json(self):
        short_id = uuid4()
        progress = UserProgress(user_id="student-1", playlist_id=uuid4(), completed_shorts=[short_id])
        row = {**progress.model_dump(), "id": uuid4(), "completed_shorts": [str(short_id)], "bookmarked_shorts": []}
        store, cursor = _store([row])

        stored = store.create_progress(progress)

        query, params = cursor.executed[0]
        self.assertTrue(query.startswith("INSERT INTO user_progress"))
        self.assertIsInstance(params["completed_shorts"], Json)
        self.assertEqual(stored.completed_shorts, [short_id])

    def test_delete_shorts_for_video_filters_by_video(self):
        store, cursor = _store([{}, {}])
        video_id = uuid4()

        self.assertEqual(store.delete_shorts_for_video(video_id), 2)
        self.assertEqual(cursor.executed, [("DELETE FROM study_shorts WHERE video_id = %(video_id)s", {"video_id": str(video_id)})])

    def test_playlist_shorts_join_orders_by_video_position(self):
        store, cursor = _store([])

        self.assertEqual(store.list_shorts_for_playlist(uuid4()), [])
        query, _ = cursor.executed[0]
        self.assertIn("ORDER BY v.order_index ASC, s.order_index ASC", query)


if __name__ == "__main__":
    unittest.main()
