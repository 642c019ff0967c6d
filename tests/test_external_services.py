"""Tests for the audio, transcription, and rate limiting adapters without network access."""

import tempfile
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

from fakes import make_settings, make_source, quiet_console

from stwipe.config.settings import RateLimitConfig, ServiceRateLimit, Settings
from stwipe.services import AudioExtractionError, TranscriptionError
from stwipe.services.audio import AudioExtractor
from stwipe.services.rate_limit import OPENAI_SERVICE, YOUTUBE_SERVICE, RateLimitRegistry, ServiceThrottle
from stwipe.services.transcription import WhisperTranscriber, whisper_language_code


class _FakeTranscriptions:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def _client(transcriptions):
    return SimpleNamespace(audio=SimpleNamespace(transcriptions=transcriptions))


class TestWhisperTranscriber(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        handle = tempfile.NamedTemporaryFile(suffix=".mp3", delete=False)
        handle.write(b"ID3")
        handle.close()
        self.audio_path = Path(handle.name)
        self.addCleanup(self.audio_path.unlink)

    def test_language_hints(self):
        self.assertEqual(whisper_language_code("hindi"), "hi")
        self.assertEqual(whisper_language_code("English"), "en")
        self.assertIsNone(whisper_language_code("hinglish"))
        self.assertIsNone(whisper_language_code(None))

    async def test_returns_text_and_duration(self):
        transcriptions = _FakeTranscriptions(SimpleNamespace(text=" force equals mass ", duration=61.5, language="hindi"))
        transcriber = WhisperTranscriber(settings=make_settings(), console=quiet_console(), client=_client(transcriptions))

        result = await transcriber.transcribe(self.audio_path, "hindi")

        self.assertEqual(result.text, "force equals mass")
        self.assertEqual(result.duration, 61.5)
        self.assertEqual(transcriptions.requests[0]["language"], "hi")
        self.assertEqual(transcriptions.requests[0]["model"], "whisper-1")
        self.assertEqual(transcriptions.requests[0]["response_format"], "verbose_json")

    async def test_auto_detects_hinglish(self):
        transcriptions = _FakeTranscriptions(SimpleNamespace(text="namaste", duration=1.0, language="hindi"))
        transcriber = WhisperTranscriber(settings=make_settings(), console=quiet_console(), client=_client(transcriptions))

        await transcriber.transcribe(self.audio_path, "hinglish")

        self.assertNotIn("language", transcriptions.requests[0])

    async def test_wraps_service_failures(self):
        transcriptions = _FakeTranscriptions(error=ConnectionError("reset by peer"))
        transcriber = WhisperTranscriber(settings=make_settings(), console=quiet_console(), client=_client(transcriptions))

        with self.assertRaises(TranscriptionError):
            await transcriber.transcribe(self.audio_path)

    def test_requires_credentials(self):
        with self.assertRaises(TranscriptionError):
            WhisperTranscriber(settings=make_settings(), console=quiet_console())


class TestAudioExtractor(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.work_dir = Path(tempfile.mkdtemp())
        self.extractor = AudioExtractor(settings=make_settings(work_dir=self.work_dir), console=quiet_console())

    def _fake_download(self, source, destination):
        path = destination / f"{source.remote_id}.mp3"
        path.write_bytes(b"ID3")
        return path

    async def test_scratch_directory_removed_after_use(self):
        with patch.object(AudioExtractor, "_download_audio", side_effect=self._fake_download):
            async with self.extractor.audio_for(make_source(1)) as audio_path:
                self.assertTrue(audio_path.exists())
                scratch = audio_path.parent

        self.assertFalse(scratch.exists())
        self.assertEqual(list(self.work_dir.iterdir()), [])

    async def test_scratch_directory_removed_when_consumer_fails(self):
        with patch.object(AudioExtractor, "_download_audio", side_effect=self._fake_download):
            with self.assertRaises(RuntimeError):
                async with self.extractor.audio_for(make_source(1)):
                    raise RuntimeError("transcription exploded")

        self.assertEqual(list(self.work_dir.iterdir()), [])

    async def test_scratch_directory_removed_when_download_fails(self):
        failure = AudioExtractionError("Audio download failed")
        with patch.object(AudioExtractor, "_download_audio", side_effect=failure):
            with self.assertRaises(AudioExtractionError):
                async with self.extractor.audio_for(make_source(1)):
                    self.fail("audio should not be yielded")

        self.assertEqual(list(self.work_dir.iterdir()), [])


class _FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.now += seconds


class TestRateLimits(unittest.IsolatedAsyncioTestCase):
    def test_packaged_configuration_covers_external_services(self):
        services = Settings().rate_limits.services
        self.assertIn(YOUTUBE_SERVICE, services)
        self.assertIn(OPENAI_SERVICE, services)

    def test_missing_rate_limit_file_means_no_limits(self):
        settings = Settings(rate_limits_file=Path("/nonexistent/rate_limits.yaml"))
        self.assertEqual(settings.rate_limits.services, {})

    def test_rate_limit_file_override(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "limits.yaml"
            path.write_text("services:\n  youtube:\n    requests_per_minute: 5\n", encoding="utf-8")

            limits = Settings(rate_limits_file=path).rate_limits

        self.assertEqual(limits.services[YOUTUBE_SERVICE].requests_per_minute, 5)
        self.assertIsNone(limits.services[YOUTUBE_SERVICE].burst)

    async def test_unconfigured_service_is_not_limited(self):
        await RateLimitRegistry(RateLimitConfig()).apply("anything")

    async def test_burst_allows_immediate_calls(self):
        configuration = RateLimitConfig(services={"openai_api": ServiceRateLimit(requests_per_minute=60, burst=3)})
        registry = RateLimitRegistry(configuration)
        for _ in range(3):
            self.assertEqual(await registry.apply(OPENAI_SERVICE), 0.0)

    async def test_calls_beyond_burst_are_spaced_at_sustained_rate(self):
        clock = _FakeClock()
        throttle = ServiceThrottle.from_config(
            ServiceRateLimit(requests_per_minute=30, burst=2), clock=clock, sleep=clock.sleep
        )

        waits = [await throttle.wait_turn() for _ in range(4)]

        self.assertEqual(waits, [0.0, 0.0, 2.0, 2.0])
        self.assertEqual(clock.now, 4.0)

    async def test_idle_time_restores_burst(self):
        clock = _FakeClock()
        throttle = ServiceThrottle(interval=1.0, burst=2, clock=clock, sleep=clock.sleep)
        await throttle.wait_turn()
        await throttle.wait_turn()

        clock.now += 10.0

        self.assertEqual(await throttle.wait_turn(), 0.0)
        self.assertEqual(await throttle.wait_turn(), 0.0)

    def test_burst_must_be_positive(self):
        with self.assertRaises(ValueError):
            ServiceThrottle(interval=1.0, burst=0)


if __name__ == "__main__":
    unittest.main()
