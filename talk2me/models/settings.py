"""Tunable constants of the voice activity and turn-taking layer."""

from dataclasses import dataclass, fields, asdict
from typing import Dict, Any

from ..exceptions import ConfigurationError


@dataclass(frozen=True)
class TurnTakingSettings:
    """Thresholds and timings for detection, recording and barge-in.

    Durations are in milliseconds. Factors multiply the calibrated
    ambient level.
    """
    # Signal metrics
    speech_band_low_hz: float = 300.0
    speech_band_high_hz: float = 3000.0

    # Calibration
    calibration_duration_ms: float = 2000.0
    initial_ambient_level: float = 0.02

    # Voice activity detection
    speech_threshold_factor: float = 1.5
    min_snr: float = 1.5
    min_time_energy: float = 0.05
    speech_duration_ms: float = 100.0

    # Silence tracking
    silence_window_size: int = 30
    silence_threshold_factor: float = 1.2
    silence_duration_ms: float = 1500.0

    # Recording lifecycle
    recording_cooldown_ms: float = 1000.0
    resume_delay_ms: float = 500.0

    # Playback and interruption
    playback_threshold_multiplier: float = 3.0
    interruption_threshold_factor: float = 2.0
    interruption_poll_ms: float = 100.0
    interruption_record_delay_ms: float = 100.0
    playback_settle_ms: float = 300.0

    # Scheduling
    frame_interval_ms: float = 1000.0 / 60.0
    automatic_mode: bool = True

    def __post_init__(self):
        if self.silence_window_size < 1:
            raise ConfigurationError("silence_window_size must be at least 1")
        if self.speech_band_low_hz >= self.speech_band_high_hz:
            raise ConfigurationError("speech band low edge must be below high edge")
        for name in ("frame_interval_ms", "interruption_poll_ms"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "TurnTakingSettings":
        """Build settings from a config mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ConfigurationError(f"Unknown turn_taking settings: {', '.join(sorted(unknown))}")
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
