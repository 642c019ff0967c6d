"""CLI tests driving the Typer application with in-process services."""

import json
import unittest
from uuid import uuid4

from typer.testing import CliRunner

from fakes import PLAYLIST_URL, FakeAudioSource, FakeFetcher, make_context, make_source, quiet_console

from stwipe.cli.commands.study import ExitCode
from stwipe.cli.main import create_app
from stwipe.services.playlists import PlaylistService


class TestStudyCommands(unittest.TestCase):
    def setUp(self):
        sources = [make_source(1), make_source(2)]
        context = make_context(audio=FakeAudioSource(failing={sources[1].remote_id}))
        self.service = PlaylistService(context, fetcher=FakeFetcher(sources))
        self.app = create_app(console=quiet_console(), service_factory=lambda: self.service)
        self.runner = CliRunner()

    def _process(self):
        result = self.runner.invoke(self.app, ["process", PLAYLIST_URL, "--quiet", "--user", "student-1"])
        self.assertEqual(result.exit_code, ExitCode.SUCCESS, result.output)
        return json.loads(result.output)

    def test_process_reports_per_video_outcomes(self):
        payload = self._process()

        self.assertEqual(payload["playlist"]["status"], "completed")
        self.assertEqual(payload["playlist"]["processed_videos"], 2)
        self.assertEqual([video["status"] for video in payload["videos"]], ["completed", "failed"])
        self.assertEqual(payload["videos"][0]["shorts"], 3)
        self.assertIn("Audio download failed", payload["videos"][1]["error"])

    def test_process_rejects_invalid_url(self):
        result = self.runner.invoke(self.app, ["process", "https://example.com/list", "--quiet"])
        self.assertEqual(result.exit_code, ExitCode.INVALID_INPUT)

    def test_version_flag_exits_cleanly(self):
        result = self.runner.invoke(self.app, ["--version"])
        self.assertEqual(result.exit_code, ExitCode.SUCCESS, result.output)

    def test_status_for_unknown_playlist(self):
        result = self.runner.invoke(self.app, ["status", str(uuid4())])
        self.assertEqual(result.exit_code, ExitCode.NOT_FOUND)

    def test_shorts_json_in_playlist_order(self):
        playlist_id = self._process()["playlist"]["id"]

        result = self.runner.invoke(self.app, ["shorts", playlist_id, "--ordered", "--json"])

        self.assertEqual(result.exit_code, ExitCode.SUCCESS, result.output)
        shorts = json.loads(result.output)
        self.assertEqual([short["order_index"] for short in shorts], [0, 1, 2])

    def test_study_flow_and_stats(self):
        playlist_id = self._process()["playlist"]["id"]
        shorts = json.loads(self.runner.invoke(self.app, ["shorts", playlist_id, "--ordered", "--json"]).output)
        short_id = shorts[0]["id"]

        missing_progress = self.runner.invoke(self.app, ["bookmark", short_id, "--user", "student-1"])
        self.assertEqual(missing_progress.exit_code, ExitCode.NOT_FOUND)

        for args in (
            ["study", short_id, "--seconds", "1800", "--user", "student-1"],
            ["bookmark", short_id, "--user", "student-1"],
            ["complete", short_id, "--user", "student-1"],
        ):
            result = self.runner.invoke(self.app, args)
            self.assertEqual(result.exit_code, ExitCode.SUCCESS, result.output)

        stats = json.loads(self.runner.invoke(self.app, ["stats", "--user", "student-1", "--json"]).output)
        self.assertEqual(stats, {"total_shorts": 1, "hours_studied": 0.5, "streak": 1})


if __name__ == "__main__":
    unittest.main()
