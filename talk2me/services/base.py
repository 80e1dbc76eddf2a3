"""Abstract base classes for the external conversation services."""

from abc import ABC, abstractmethod

from ..models.audio import RecordedAudio
from ..models.conversation import TranscriptionResult, SynthesizedSpeech


class TranscriptionService(ABC):
    """Speech-to-text backend."""

    def __init__(self, language: str = "en-US"):
        """Initialize backend with language preference."""
        self.language = language

    @abstractmethod
    def initialize(self) -> bool:
        """Initialize backend resources and verify configuration.

        Returns:
            True if initialization successful
        """
        pass

    @abstractmethod
    def transcribe(self, recording: RecordedAudio) -> TranscriptionResult:
        """Transcribe one finalized utterance.

        Args:
            recording: Finalized utterance audio

        Returns:
            TranscriptionResult, with empty text when no speech was recognized

        Raises:
            TranscriptionError: If the service call fails
        """
        pass

    def cleanup(self) -> None:
        """Clean up backend resources."""
        pass


class SpeechSynthesisService(ABC):
    """Text-to-speech backend."""

    @abstractmethod
    def initialize(self) -> bool:
        pass

    @abstractmethod
    def synthesize(self, text: str) -> SynthesizedSpeech:
        """Turn text into audio.

        Raises:
            SynthesisError: If the service call fails or returns no audio
        """
        pass

    def cleanup(self) -> None:
        pass


class LanguageGenerationService(ABC):
    """Reply generator."""

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Generate a reply to the participant's words.

        Raises:
            GenerationError: If the service call fails
        """
        pass
