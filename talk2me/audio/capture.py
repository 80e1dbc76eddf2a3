"""Audio capture sources feeding the turn-taking layer."""

import queue
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from threading import Thread, Event
from typing import List, Optional

import numpy as np
import pyaudio

from .analyser import SpectrumAnalyser
from .filters import DynamicsCompressor, SpeechBandFilter
from ..exceptions import CaptureUnavailableError
from ..models.audio import AudioFrame, AudioStats

logger = logging.getLogger(__name__)


class AudioCaptureSource(ABC):
    """Capture device contract: analysis frames plus raw chunks for recording."""

    content_type: str = "audio/l16"
    sample_rate: int = 16000
    channels: int = 1

    @abstractmethod
    def start(self) -> None:
        """Acquire the device.

        Raises:
            CaptureUnavailableError: If the device cannot be opened
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """Release the device. Safe to call when not started."""
        pass

    @abstractmethod
    def read_frame(self) -> Optional[AudioFrame]:
        """Return the current analysis frame, or None if nothing was captured yet."""
        pass

    @abstractmethod
    def drain_chunks(self) -> List[bytes]:
        """Remove and return raw chunks captured since the last drain, oldest first."""
        pass


class MicrophoneCapture(AudioCaptureSource):
    """Continuous microphone capture on a background thread."""

    def __init__(
        self,
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
        fft_size: int = 2048,
        smoothing: float = 0.5,
        band_filter: bool = True,
        compressor: bool = True,
        max_queued_chunks: int = 1000,
        format: int = pyaudio.paInt16,
    ):
        """Initialize microphone capture.

        Args:
            sample_rate: Audio sample rate in Hz
            chunk_size: Samples per read from the device
            channels: Number of audio channels
            fft_size: Analysis window length (power of two)
            smoothing: Spectrum smoothing between successive frames
            band_filter: Condition analysed samples with the speech-band filter
            compressor: Compress analysed samples after filtering, with make-up gain
            max_queued_chunks: Raw chunks kept between drains before the oldest are dropped
            format: Audio format (16-bit signed int)
        """
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.format = format

        self.analyser = SpectrumAnalyser(sample_rate=sample_rate, fft_size=fft_size, smoothing=smoothing)
        self.band_filter = SpeechBandFilter(sample_rate) if band_filter else None
        self.compressor = DynamicsCompressor(sample_rate) if compressor else None
        self.chunk_queue: "queue.Queue[bytes]" = queue.Queue(maxsize=max_queued_chunks)
        self.analysis_lock = threading.Lock()

        # Capture thread management
        self.capture_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_capturing = False

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_chunks = 0
        self.dropped_chunks = 0

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None

    def start(self) -> None:
        if self.is_capturing:
            logger.warning("Capture already in progress")
            return

        try:
            self.pyaudio_instance = pyaudio.PyAudio()
            self.stream = self.pyaudio_instance.open(
                format=self.format,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                frames_per_buffer=self.chunk_size,
                stream_callback=None
            )
        except Exception as e:
            self._release_device()
            raise CaptureUnavailableError(f"Failed to open microphone: {e}") from e

        logger.info(f"Audio stream opened: {self.sample_rate}Hz, {self.chunk_size} samples/chunk")
        self.stop_event.clear()
        self.start_time = datetime.now()
        self.total_chunks = 0
        self.dropped_chunks = 0

        self.capture_thread = Thread(target=self._capture_continuously, daemon=True)
        self.capture_thread.name = "MicrophoneCaptureThread"
        self.capture_thread.start()
        self.is_capturing = True

    def stop(self) -> None:
        if not self.is_capturing:
            return

        logger.info("Stopping microphone capture")
        self.stop_event.set()

        if self.capture_thread and self.capture_thread.is_alive():
            self.capture_thread.join(timeout=2.0)
            if self.capture_thread.is_alive():
                logger.warning("Capture thread did not stop cleanly")

        self._release_device()
        self.is_capturing = False
        logger.info(f"Capture stopped. Total chunks: {self.total_chunks}, dropped: {self.dropped_chunks}")

    def _release_device(self) -> None:
        if self.stream is not None:
            try:
                self.stream.stop_stream()
                self.stream.close()
            except Exception as e:
                logger.warning(f"Error closing audio stream: {e}")
            self.stream = None
        if self.pyaudio_instance is not None:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None

    def _capture_continuously(self) -> None:
        """Internal method: read loop running on the capture thread."""
        while not self.stop_event.is_set():
            try:
                audio_chunk = self.stream.read(self.chunk_size, exception_on_overflow=False)
            except Exception as e:
                logger.error(f"Error reading audio chunk: {e}")
                break
            self.total_chunks += 1
            self._queue_chunk(audio_chunk)
            self._analyse_chunk(audio_chunk)

    def _queue_chunk(self, audio_chunk: bytes) -> None:
        try:
            self.chunk_queue.put_nowait(audio_chunk)
        except queue.Full:
            # Drop the oldest chunk to make room
            try:
                self.chunk_queue.get_nowait()
            except queue.Empty:
                pass
            self.dropped_chunks += 1
            self.chunk_queue.put_nowait(audio_chunk)

    def _analyse_chunk(self, audio_chunk: bytes) -> None:
        samples = np.frombuffer(audio_chunk, dtype=np.int16).astype(np.float64) / 32768.0
        if self.channels > 1:
            usable = len(samples) - len(samples) % self.channels
            samples = samples[:usable].reshape(-1, self.channels).mean(axis=1)
        if self.band_filter is not None:
            samples = self.band_filter.process(samples)
        if self.compressor is not None:
            samples = self.compressor.process(samples)
        with self.analysis_lock:
            self.analyser.push(samples)

    def read_frame(self) -> Optional[AudioFrame]:
        with self.analysis_lock:
            return self.analyser.frame()

    def drain_chunks(self) -> List[bytes]:
        chunks = []
        while True:
            try:
                chunks.append(self.chunk_queue.get_nowait())
            except queue.Empty:
                return chunks

    def get_capture_stats(self) -> AudioStats:
        """Get current capture statistics."""
        duration = 0.0
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()

        return AudioStats(
            is_capturing=self.is_capturing,
            duration_seconds=duration,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            total_chunks=self.total_chunks,
            queued_chunks=self.chunk_queue.qsize(),
        )
