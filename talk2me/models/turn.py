"""Turn-taking state models."""

from enum import Enum


class TurnState(Enum):
    """Externally visible state of the turn-taking state machine."""
    MONITORING = "monitoring"
    SPEECH_PENDING = "speech_pending"
    RECORDING = "recording"
    PLAYBACK_SUSPENDED = "playback_suspended"
