"""Adaptive-threshold voice activity detection."""

import logging
from typing import Optional

from .metrics import measure_frame
from ..models.audio import AudioFrame, MetricsSnapshot, VadDecision
from ..models.settings import TurnTakingSettings

logger = logging.getLogger(__name__)


class VoiceActivityDetector:
    """Classifies single frames as speech or non-speech.

    A frame is speech only when all three hold:
    - speech-band energy exceeds ambient x speech factor x multiplier
    - the speech-band to out-of-band ratio exceeds min_snr
    - time-domain energy exceeds min_time_energy
    """

    def __init__(self, settings: Optional[TurnTakingSettings] = None):
        self.settings = settings or TurnTakingSettings()

    def threshold(self, ambient_level: float, multiplier: float = 1.0) -> float:
        return ambient_level * self.settings.speech_threshold_factor * multiplier

    def classify(self, metrics: MetricsSnapshot, ambient_level: float, multiplier: float = 1.0) -> VadDecision:
        dynamic_threshold = self.threshold(ambient_level, multiplier)
        is_speech = (
            metrics.speech_energy > dynamic_threshold
            and metrics.snr > self.settings.min_snr
            and metrics.time_energy > self.settings.min_time_energy
        )
        return VadDecision(is_speech=is_speech, metrics=metrics, threshold=dynamic_threshold)

    def classify_frame(self, frame: Optional[AudioFrame], ambient_level: float,
                       multiplier: float = 1.0) -> VadDecision:
        metrics = measure_frame(frame, self.settings.speech_band_low_hz, self.settings.speech_band_high_hz)
        decision = self.classify(metrics, ambient_level, multiplier)
        logger.debug(f"VAD speech={metrics.speech_energy:.4f} noise={metrics.noise_energy:.4f} "
                     f"snr={metrics.snr:.2f} time={metrics.time_energy:.4f} "
                     f"threshold={decision.threshold:.4f} -> {decision.is_speech}")
        return decision
