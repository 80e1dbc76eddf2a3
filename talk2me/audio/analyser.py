"""Spectrum analyser producing AudioFrames from a stream of samples."""

import logging
from typing import Optional

import numpy as np

from ..models.audio import AudioFrame

logger = logging.getLogger(__name__)


class SpectrumAnalyser:
    """Rolling FFT analyser in the manner of a browser AnalyserNode.

    Keeps the most recent fft_size samples. Each frame() applies a Blackman
    window, smooths magnitudes over time and maps decibels between min_db
    and max_db onto [0, 1].
    """

    def __init__(self,
                 sample_rate: int = 16000,
                 fft_size: int = 2048,
                 smoothing: float = 0.5,
                 min_db: float = -100.0,
                 max_db: float = -30.0):
        if fft_size < 32 or fft_size & (fft_size - 1):
            raise ValueError("fft_size must be a power of two >= 32")
        if not 0.0 <= smoothing < 1.0:
            raise ValueError("smoothing must be in [0, 1)")
        if max_db <= min_db:
            raise ValueError("max_db must be above min_db")

        self.sample_rate = sample_rate
        self.fft_size = fft_size
        self.smoothing = smoothing
        self.min_db = min_db
        self.max_db = max_db

        self.window = np.blackman(fft_size)
        self.samples = np.zeros(fft_size, dtype=np.float64)
        self.smoothed = np.zeros(fft_size // 2, dtype=np.float64)
        self.total_samples = 0

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2

    def push(self, samples: np.ndarray) -> None:
        """Append float samples in [-1, 1], keeping only the newest fft_size."""
        if samples is None or len(samples) == 0:
            return
        samples = np.asarray(samples, dtype=np.float64)
        if len(samples) >= self.fft_size:
            self.samples = samples[-self.fft_size:].copy()
        else:
            self.samples = np.concatenate((self.samples[len(samples):], samples))
        self.total_samples += len(samples)

    def frame(self) -> Optional[AudioFrame]:
        """Analyse the current window; None until any samples arrived."""
        if self.total_samples == 0:
            return None

        spectrum = np.abs(np.fft.rfft(self.samples * self.window))[:self.bin_count] / self.fft_size
        self.smoothed = self.smoothing * self.smoothed + (1.0 - self.smoothing) * spectrum

        with np.errstate(divide='ignore'):
            decibels = 20.0 * np.log10(self.smoothed)
        scaled = (decibels - self.min_db) / (self.max_db - self.min_db)
        magnitudes = np.clip(np.nan_to_num(scaled, nan=0.0, neginf=0.0), 0.0, 1.0)

        return AudioFrame(
            samples=self.samples.copy(),
            magnitudes=magnitudes,
            sample_rate=self.sample_rate,
        )

    def reset(self) -> None:
        self.samples.fill(0.0)
        self.smoothed.fill(0.0)
        self.total_samples = 0
