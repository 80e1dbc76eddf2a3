"""Conversation pipeline data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class TranscriptionResult:
    """Result of a transcription request."""
    text: str
    confidence: float
    processing_time: float
    service: str
    language: str = "en-US"
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def has_speech(self) -> bool:
        return bool(self.text and self.text.strip())


@dataclass
class SynthesizedSpeech:
    """Audio produced by a speech synthesis service."""
    audio_data: bytes
    content_type: str
    sample_rate: int
    text: str


@dataclass
class ConversationReply:
    """Outcome of processing one recorded utterance."""
    transcript: Optional[TranscriptionResult]
    reply_text: str
    speech: SynthesizedSpeech
    processing_time: float
    used_fallback: bool = False
