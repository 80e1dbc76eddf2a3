"""Speech-band conditioning of captured samples: band filters and compression."""

import logging

import numpy as np
from scipy import signal

logger = logging.getLogger(__name__)


class SpeechBandFilter:
    """High-pass, mains notch and low-pass chain applied sample by sample.

    Filter state carries over between calls so consecutive chunks are
    filtered as one continuous stream.
    """

    def __init__(self,
                 sample_rate: int,
                 low_cut_hz: float = 300.0,
                 high_cut_hz: float = 3000.0,
                 notch_hz: float = 60.0,
                 notch_q: float = 10.0,
                 order: int = 2):
        self.sample_rate = sample_rate
        nyquist = sample_rate / 2.0

        sections = [signal.butter(order, low_cut_hz, btype='highpass', fs=sample_rate, output='sos')]
        if notch_hz < nyquist:
            b, a = signal.iirnotch(notch_hz, notch_q, fs=sample_rate)
            sections.append(signal.tf2sos(b, a))
        if high_cut_hz < nyquist:
            sections.append(signal.butter(order, high_cut_hz, btype='lowpass', fs=sample_rate, output='sos'))
        else:
            logger.warning(f"Low-pass at {high_cut_hz}Hz skipped: sample rate {sample_rate}Hz too low")

        self.sos = np.vstack(sections)
        self.state = np.zeros((self.sos.shape[0], 2))
        logger.debug(f"SpeechBandFilter ready: {self.sos.shape[0]} sections at {sample_rate}Hz")

    def process(self, samples: np.ndarray) -> np.ndarray:
        if samples is None or len(samples) == 0:
            return np.zeros(0, dtype=np.float64)
        filtered, self.state = signal.sosfilt(self.sos, np.asarray(samples, dtype=np.float64), zi=self.state)
        return filtered

    def reset(self) -> None:
        self.state = np.zeros((self.sos.shape[0], 2))


class DynamicsCompressor:
    """Soft-knee peak compressor with automatic make-up gain.

    Matches a browser DynamicsCompressorNode: the envelope follows peaks
    instantly (zero attack) and falls by 10 dB per release period. Make-up
    gain is the inverse of the full-scale gain raised to 0.6, so quiet
    speech comes out louder than it went in.
    """

    FLOOR_DB = -120.0

    def __init__(self,
                 sample_rate: int,
                 threshold_db: float = -50.0,
                 knee_db: float = 40.0,
                 ratio: float = 12.0,
                 release_seconds: float = 0.25):
        if ratio < 1.0:
            raise ValueError(f"Compression ratio must be >= 1, got {ratio}")
        if knee_db < 0 or release_seconds <= 0:
            raise ValueError("Knee must be >= 0 and release must be positive")

        self.sample_rate = sample_rate
        self.threshold_db = threshold_db
        self.knee_db = knee_db
        self.ratio = ratio
        self.release_seconds = release_seconds
        self.release_db_per_sample = 10.0 / (release_seconds * sample_rate)
        self.makeup_db = -0.6 * float(self.static_curve(np.array([0.0]))[0])
        self.envelope_db = self.FLOOR_DB
        logger.debug(f"DynamicsCompressor ready: threshold {threshold_db}dB, ratio {ratio}, "
                     f"make-up {self.makeup_db:.1f}dB")

    def static_curve(self, level_db: np.ndarray) -> np.ndarray:
        """Output level in dB for a steady input level in dB."""
        level_db = np.asarray(level_db, dtype=np.float64)
        over = level_db - self.threshold_db
        slope = 1.0 / self.ratio - 1.0

        compressed = self.threshold_db + over / self.ratio
        if self.knee_db > 0:
            knee = level_db + slope * (over + self.knee_db / 2.0) ** 2 / (2.0 * self.knee_db)
        else:
            knee = compressed
        return np.where(2.0 * over < -self.knee_db, level_db,
                        np.where(2.0 * over > self.knee_db, compressed, knee))

    def process(self, samples: np.ndarray) -> np.ndarray:
        if samples is None or len(samples) == 0:
            return np.zeros(0, dtype=np.float64)
        samples = np.asarray(samples, dtype=np.float64)

        with np.errstate(divide='ignore'):
            peak_db = np.maximum(20.0 * np.log10(np.abs(samples)), self.FLOOR_DB)

        # Instant attack, linear-in-dB release, as a running max
        decay = np.arange(len(samples)) * self.release_db_per_sample
        running = np.maximum.accumulate(peak_db + decay)
        envelope = np.maximum(running, self.envelope_db - self.release_db_per_sample) - decay
        self.envelope_db = max(float(envelope[-1]), self.FLOOR_DB)

        gain_db = self.static_curve(envelope) - envelope + self.makeup_db
        return samples * np.power(10.0, gain_db / 20.0)

    def reset(self) -> None:
        self.envelope_db = self.FLOOR_DB
