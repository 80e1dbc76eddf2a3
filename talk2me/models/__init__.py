"""Data models for the Talk2Me application."""

from .audio import AudioFrame, MetricsSnapshot, VadDecision, RecordedAudio, AudioStats
from .conversation import TranscriptionResult, SynthesizedSpeech, ConversationReply
from .settings import TurnTakingSettings
from .turn import TurnState

__all__ = [
    "AudioFrame",
    "MetricsSnapshot",
    "VadDecision",
    "RecordedAudio",
    "AudioStats",
    "TranscriptionResult",
    "SynthesizedSpeech",
    "ConversationReply",
    "TurnTakingSettings",
    "TurnState",
]
