"""Ambient noise calibration."""

import logging
from typing import Callable, List, Optional, Sequence

from .capture import AudioCaptureSource
from .metrics import measure_speech_energy
from ..exceptions import CalibrationError
from ..models.settings import TurnTakingSettings
from ..scheduler import Scheduler, TaskHandle

logger = logging.getLogger(__name__)


def median_level(samples: Sequence[float]) -> float:
    """Upper-middle element of the sorted samples."""
    if not samples:
        raise CalibrationError("Calibration window produced no samples")
    ordered = sorted(samples)
    return ordered[len(ordered) // 2]


class AmbientCalibrator:
    """Samples speech-band energy over a warm-up window and reports its median."""

    def __init__(self, capture: AudioCaptureSource, scheduler: Scheduler, settings: TurnTakingSettings):
        self.capture = capture
        self.scheduler = scheduler
        self.settings = settings
        self.samples: List[float] = []
        self._task: Optional[TaskHandle] = None
        self._start_time = 0.0
        self._on_complete: Optional[Callable[[float], None]] = None
        self._on_error: Optional[Callable[[Exception], None]] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None

    def start(self, on_complete: Callable[[float], None], on_error: Callable[[Exception], None]) -> None:
        """Begin sampling; exactly one of the callbacks fires when the window closes.

        Args:
            on_complete: Receives the ambient level
            on_error: Receives a CalibrationError when no samples were taken
        """
        self.cancel()
        self.samples = []
        self._on_complete = on_complete
        self._on_error = on_error
        self._start_time = self.scheduler.now()
        logger.info(f"Calibrating ambient noise for {self.settings.calibration_duration_ms:.0f}ms")

        self._task = self.scheduler.call_every(self.settings.frame_interval_ms, self._tick)
        self._tick()

    def cancel(self) -> None:
        if self._task:
            self._task.cancel()
            self._task = None

    def _tick(self) -> None:
        if self._task is None:
            return

        if self.scheduler.now() - self._start_time < self.settings.calibration_duration_ms:
            frame = self.capture.read_frame()
            self.samples.append(measure_speech_energy(
                frame, self.settings.speech_band_low_hz, self.settings.speech_band_high_hz))
            return

        self.cancel()
        try:
            level = median_level(self.samples)
        except CalibrationError as e:
            logger.error(f"Ambient calibration failed: {e}")
            self._on_error(e)
            return

        logger.info(f"Ambient noise level calibrated: {level:.4f} ({len(self.samples)} samples)")
        self._on_complete(level)
