"""Rolling-average silence detection."""

import logging

import numpy as np

logger = logging.getLogger(__name__)


class SilenceTracker:
    """Keeps the last N speech-energy samples and reports sustained low energy.

    The window starts zero-filled and the mean is always taken over the full
    window. Debouncing the result in time is left to the caller.
    """

    def __init__(self, ambient_level: float, window_size: int = 30, threshold_factor: float = 1.2):
        if window_size < 1:
            raise ValueError("window_size must be at least 1")
        self.ambient_level = ambient_level
        self.window_size = window_size
        self.threshold_factor = threshold_factor
        self.buffer = np.zeros(window_size, dtype=np.float64)
        self.index = 0

    @property
    def threshold(self) -> float:
        return self.ambient_level * self.threshold_factor

    @property
    def average(self) -> float:
        return float(np.mean(self.buffer))

    def update(self, speech_energy: float) -> bool:
        """Push one sample, overwriting the oldest; return True when silent."""
        self.buffer[self.index] = speech_energy
        self.index = (self.index + 1) % self.window_size
        return self.average < self.threshold

    def reset(self) -> None:
        self.buffer.fill(0.0)
        self.index = 0
