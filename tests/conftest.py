"""Pytest configuration and fixtures for Talk2Me tests."""

import pytest
import tempfile
import uuid
import logging
from typing import List, Optional
from unittest.mock import Mock, patch
import numpy as np

from talk2me.audio.capture import AudioCaptureSource
from talk2me.models.audio import AudioFrame
from talk2me.models.settings import TurnTakingSettings
from talk2me.scheduler import ManualScheduler
from talk2me.turn.events import TurnEventListener
from talk2me.turn.playback import PlaybackControl


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SAMPLE_RATE = 16000
BIN_COUNT = 1024  # 16000 / (2 * 1024) = 7.8125 Hz per bin


def make_frame(speech: float = 0.0, noise: float = 0.0, time_level: float = 0.0,
               sample_rate: int = SAMPLE_RATE, bin_count: int = BIN_COUNT) -> AudioFrame:
    """Build a frame whose metrics come out at the requested levels.

    Every in-band bin holds `speech` and every out-of-band bin holds `noise`,
    so speech energy == speech and noise energy == noise. The time-domain
    samples are a constant offset of `time_level`, so time energy == time_level.
    """
    bin_width = sample_rate / (2 * bin_count)
    first = int(np.floor(300.0 / bin_width))
    last = int(np.ceil(3000.0 / bin_width))

    magnitudes = np.full(bin_count, noise, dtype=np.float64)
    magnitudes[first:last + 1] = speech
    samples = np.full(256, time_level, dtype=np.float64)
    return AudioFrame(samples=samples, magnitudes=magnitudes, sample_rate=sample_rate)


def speech_frame(level: float = 0.5) -> AudioFrame:
    """A frame every detector classifies as speech for ambient levels below 0.1."""
    return make_frame(speech=level, noise=level / 10.0, time_level=0.2)


def quiet_frame(level: float = 0.01) -> AudioFrame:
    return make_frame(speech=level, noise=level, time_level=0.0)


class FakeCapture(AudioCaptureSource):
    """Capture source whose current frame and pending chunks are set by the test."""

    def __init__(self, frame: Optional[AudioFrame] = None, fail_on_start: bool = False):
        self.frame = frame if frame is not None else quiet_frame()
        self.fail_on_start = fail_on_start
        self.pending: List[bytes] = []
        self.started = False
        self.start_calls = 0
        self.stop_calls = 0

    def start(self) -> None:
        from talk2me.exceptions import CaptureUnavailableError
        self.start_calls += 1
        if self.fail_on_start:
            raise CaptureUnavailableError("Permission denied")
        self.started = True

    def stop(self) -> None:
        self.stop_calls += 1
        self.started = False

    def read_frame(self) -> Optional[AudioFrame]:
        return self.frame

    def drain_chunks(self) -> List[bytes]:
        chunks, self.pending = self.pending, []
        return chunks

    def push_chunk(self, chunk: bytes = b'\x01\x00' * 160) -> None:
        self.pending.append(chunk)


class RecordingListener(TurnEventListener):
    """Listener that records every event as (name, args) in arrival order."""

    def __init__(self):
        self.events = []

    def _record(self, name, *args):
        self.events.append((name,) + args)

    def on_speech_detected(self):
        self._record("speech_detected")

    def on_recording_start(self, is_interruption):
        self._record("recording_start", is_interruption)

    def on_recording_stop(self, recording, is_interruption):
        self._record("recording_stop", recording, is_interruption)

    def on_silence_detected(self):
        self._record("silence_detected")

    def on_interruption(self):
        self._record("interruption")

    def on_processing_start(self):
        self._record("processing_start")

    def on_processing_complete(self, reply):
        self._record("processing_complete", reply)

    def on_error(self, message):
        self._record("error", message)

    def names(self) -> List[str]:
        return [event[0] for event in self.events]

    def count(self, name: str) -> int:
        return self.names().count(name)


class FakePlayback(PlaybackControl):
    """Playback handle that records pause() calls and optionally reports back."""

    def __init__(self, on_pause=None):
        self.paused = False
        self.pause_calls = 0
        self.on_pause = on_pause

    def pause(self) -> None:
        self.pause_calls += 1
        self.paused = True
        if self.on_pause:
            self.on_pause()

    @property
    def is_paused(self) -> bool:
        return self.paused


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def settings():
    """Default thresholds with a 10ms frame interval so timings land on whole numbers."""
    return TurnTakingSettings(frame_interval_ms=10.0)


@pytest.fixture
def capture():
    return FakeCapture()


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def topic_prefix():
    """Unique pub/sub prefix so topics never leak between tests."""
    return f"test{uuid.uuid4().hex[:8]}"


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # Generate 1024 samples of 16-bit audio (sine wave)
    duration = 1024 / SAMPLE_RATE
    freq = 440  # A4 note

    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * freq * t)

    # Convert to 16-bit integers
    audio_data = (wave_data * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_sample_size.return_value = 2

        # Configure mock PyAudio class
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }
