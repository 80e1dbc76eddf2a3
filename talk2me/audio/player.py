"""Playback of synthesized replies."""

import io
import wave
import logging
from threading import Thread, Event
from typing import Callable, Optional

import pyaudio

from ..models.conversation import SynthesizedSpeech
from ..scheduler import Scheduler
from ..turn.playback import PlaybackControl

logger = logging.getLogger(__name__)


class AudioPlayback(PlaybackControl):
    """Plays one reply on a background thread.

    Completion is reported through the scheduler so the callbacks run on the
    turn-taking thread: on_paused after pause(), on_ended otherwise.
    """

    def __init__(self,
                 speech: SynthesizedSpeech,
                 scheduler: Scheduler,
                 on_paused: Callable[[], None],
                 on_ended: Callable[[], None],
                 chunk_frames: int = 1024):
        self.speech = speech
        self.scheduler = scheduler
        self.on_paused = on_paused
        self.on_ended = on_ended
        self.chunk_frames = chunk_frames

        self.pause_event = Event()
        self.playback_thread: Optional[Thread] = None
        self.is_finished = False

    @property
    def is_paused(self) -> bool:
        return self.pause_event.is_set()

    def _decode(self):
        """Return (pcm_bytes, sample_rate, channels, sample_width)."""
        data = self.speech.audio_data
        if data[:4] == b'RIFF':
            with wave.open(io.BytesIO(data), 'rb') as wf:
                return wf.readframes(wf.getnframes()), wf.getframerate(), wf.getnchannels(), wf.getsampwidth()
        return data, self.speech.sample_rate, 1, 2

    def start(self) -> None:
        if self.playback_thread is not None:
            logger.warning("Playback already started")
            return
        self.playback_thread = Thread(target=self._play, daemon=True)
        self.playback_thread.name = "AudioPlaybackThread"
        self.playback_thread.start()
        logger.info(f"Playback started: {len(self.speech.audio_data)} bytes")

    def pause(self) -> None:
        if not self.pause_event.is_set():
            logger.info("Pausing playback")
            self.pause_event.set()

    def _play(self) -> None:
        pyaudio_instance = None
        stream = None
        try:
            pcm, sample_rate, channels, sample_width = self._decode()
            pyaudio_instance = pyaudio.PyAudio()
            stream = pyaudio_instance.open(
                format=pyaudio_instance.get_format_from_width(sample_width),
                channels=channels,
                rate=sample_rate,
                output=True,
            )
            step = self.chunk_frames * channels * sample_width
            for offset in range(0, len(pcm), step):
                if self.pause_event.is_set():
                    break
                stream.write(pcm[offset:offset + step])
        except Exception as e:
            logger.error(f"Playback failed: {e}")
        finally:
            if stream is not None:
                stream.stop_stream()
                stream.close()
            if pyaudio_instance is not None:
                pyaudio_instance.terminate()
            self.is_finished = True
            callback = self.on_paused if self.pause_event.is_set() else self.on_ended
            self.scheduler.call_soon_threadsafe(callback)
