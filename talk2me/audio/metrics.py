"""Per-frame signal features used for voice activity detection.

All functions are pure. Empty or missing data measures as zero energy.
"""

import math
import logging
from typing import Optional, Tuple

import numpy as np

from ..models.audio import AudioFrame, MetricsSnapshot

logger = logging.getLogger(__name__)

SPEECH_BAND_LOW_HZ = 300.0
SPEECH_BAND_HIGH_HZ = 3000.0


def speech_bin_range(bin_width: float,
                     low_hz: float = SPEECH_BAND_LOW_HZ,
                     high_hz: float = SPEECH_BAND_HIGH_HZ) -> Tuple[int, int]:
    """Return the inclusive (first, last) bin indices covering the speech band."""
    if bin_width <= 0:
        return 0, -1
    return int(math.floor(low_hz / bin_width)), int(math.ceil(high_hz / bin_width))


def time_energy(samples: np.ndarray, zero_point: float = 0.0, amplitude_range: float = 1.0) -> float:
    """RMS of the time-domain samples recentred on zero_point, in amplitude units."""
    if samples is None or len(samples) == 0 or amplitude_range <= 0:
        return 0.0
    amplitude = (np.asarray(samples, dtype=np.float64) - zero_point) / amplitude_range
    return float(np.sqrt(np.mean(amplitude * amplitude)))


def speech_energy(magnitudes: np.ndarray,
                  bin_width: float,
                  magnitude_scale: float = 1.0,
                  low_hz: float = SPEECH_BAND_LOW_HZ,
                  high_hz: float = SPEECH_BAND_HIGH_HZ) -> float:
    """RMS of the in-band magnitudes, normalized to full scale.

    The mean is taken over the nominal band width even when the spectrum
    is shorter than the band, so a truncated spectrum reads lower.
    """
    if magnitudes is None or len(magnitudes) == 0 or magnitude_scale <= 0:
        return 0.0
    first, last = speech_bin_range(bin_width, low_hz, high_hz)
    if last < first:
        return 0.0
    band = np.asarray(magnitudes[first:last + 1], dtype=np.float64)
    total = float(np.sum(band * band))
    return math.sqrt(total / (last - first + 1)) / magnitude_scale


def noise_energy(magnitudes: np.ndarray,
                 bin_width: float,
                 magnitude_scale: float = 1.0,
                 low_hz: float = SPEECH_BAND_LOW_HZ,
                 high_hz: float = SPEECH_BAND_HIGH_HZ) -> float:
    """RMS of the magnitudes below and above the speech band, normalized."""
    if magnitudes is None or len(magnitudes) == 0 or magnitude_scale <= 0:
        return 0.0
    first, last = speech_bin_range(bin_width, low_hz, high_hz)
    if last < first:
        return 0.0
    values = np.asarray(magnitudes, dtype=np.float64)
    outside = np.concatenate((values[:first], values[last + 1:]))
    if len(outside) == 0:
        return 0.0
    return float(np.sqrt(np.mean(outside * outside))) / magnitude_scale


def signal_to_noise(speech: float, noise: float) -> float:
    """Speech-band to out-of-band ratio; falls back to speech when noise is zero."""
    return speech / noise if noise > 0 else speech


def measure_speech_energy(frame: Optional[AudioFrame],
                          low_hz: float = SPEECH_BAND_LOW_HZ,
                          high_hz: float = SPEECH_BAND_HIGH_HZ) -> float:
    """Speech-band energy of a frame, zero for a missing frame."""
    if frame is None:
        return 0.0
    return speech_energy(frame.magnitudes, frame.bin_width, frame.magnitude_scale, low_hz, high_hz)


def measure_frame(frame: Optional[AudioFrame],
                  low_hz: float = SPEECH_BAND_LOW_HZ,
                  high_hz: float = SPEECH_BAND_HIGH_HZ) -> MetricsSnapshot:
    """Compute every feature of a frame."""
    if frame is None:
        return MetricsSnapshot()

    speech = speech_energy(frame.magnitudes, frame.bin_width, frame.magnitude_scale, low_hz, high_hz)
    noise = noise_energy(frame.magnitudes, frame.bin_width, frame.magnitude_scale, low_hz, high_hz)
    return MetricsSnapshot(
        time_energy=time_energy(frame.samples, frame.zero_point, frame.amplitude_range),
        speech_energy=speech,
        noise_energy=noise,
        snr=signal_to_noise(speech, noise),
    )
