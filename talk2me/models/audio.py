"""Audio-related data models."""

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass
class AudioFrame:
    """One analysis frame: time-domain samples and spectrum captured together."""
    samples: np.ndarray      # Time-domain samples
    magnitudes: np.ndarray   # One magnitude per frequency bin, low to high
    sample_rate: int
    zero_point: float = 0.0        # Sample value representing silence (128 for byte data)
    amplitude_range: float = 1.0   # Distance from zero point to full scale
    magnitude_scale: float = 1.0   # Full-scale magnitude (255 for byte data)

    @property
    def bin_count(self) -> int:
        return len(self.magnitudes)

    @property
    def bin_width(self) -> float:
        """Width of one frequency bin in Hz."""
        if self.bin_count == 0:
            return 0.0
        return self.sample_rate / (2 * self.bin_count)


@dataclass(frozen=True)
class MetricsSnapshot:
    """Scalar features derived from a single AudioFrame."""
    time_energy: float = 0.0
    speech_energy: float = 0.0
    noise_energy: float = 0.0
    snr: float = 0.0


@dataclass(frozen=True)
class VadDecision:
    """Result of classifying one frame."""
    is_speech: bool
    metrics: MetricsSnapshot
    threshold: float


@dataclass
class RecordedAudio:
    """Finalized audio buffer for one utterance."""
    data: bytes
    content_type: str
    sample_rate: int
    chunk_count: int
    duration_seconds: Optional[float] = None

    def __len__(self) -> int:
        return len(self.data)


@dataclass
class AudioStats:
    """Audio capture statistics."""
    is_capturing: bool
    duration_seconds: float
    sample_rate: int
    chunk_size: int
    total_chunks: int
    queued_chunks: int
