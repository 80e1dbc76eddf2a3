"""Utterance recording session."""

import logging
from typing import List, Optional

from ..models.audio import RecordedAudio

logger = logging.getLogger(__name__)

BYTES_PER_SAMPLE = 2  # 16-bit PCM


class RecordingSession:
    """Collects raw audio chunks for one utterance."""

    def __init__(self, content_type: str = "audio/l16", sample_rate: int = 16000, channels: int = 1):
        self.content_type = content_type
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunks: List[bytes] = []
        self.is_open = False

    def start(self) -> None:
        """Open the session with an empty chunk sequence."""
        if self.is_open:
            logger.warning("Recording session already open")
            return
        self.chunks = []
        self.is_open = True
        logger.debug("Recording session opened")

    def append(self, chunk: bytes) -> None:
        """Add a chunk in arrival order. Empty chunks and closed sessions are ignored."""
        if not self.is_open or not chunk:
            return
        self.chunks.append(chunk)

    @property
    def size_bytes(self) -> int:
        return sum(len(chunk) for chunk in self.chunks)

    def stop(self) -> Optional[RecordedAudio]:
        """Close the session and return the concatenated audio, or None if not open."""
        if not self.is_open:
            return None

        self.is_open = False
        data = b''.join(self.chunks)
        chunk_count = len(self.chunks)
        self.chunks = []

        duration = None
        if self.content_type == "audio/l16" and self.sample_rate > 0:
            duration = len(data) / (self.sample_rate * self.channels * BYTES_PER_SAMPLE)

        logger.info(f"Recording session closed: {chunk_count} chunks, {len(data)} bytes")
        return RecordedAudio(
            data=data,
            content_type=self.content_type,
            sample_rate=self.sample_rate,
            chunk_count=chunk_count,
            duration_seconds=duration,
        )
