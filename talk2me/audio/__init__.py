"""Audio capture, analysis and voice activity detection."""

from .capture import AudioCaptureSource, MicrophoneCapture
from .calibration import AmbientCalibrator, median_level
from .recording import RecordingSession
from .silence import SilenceTracker
from .vad import VoiceActivityDetector

__all__ = [
    'AudioCaptureSource',
    'MicrophoneCapture',
    'AmbientCalibrator',
    'median_level',
    'RecordingSession',
    'SilenceTracker',
    'VoiceActivityDetector',
]
