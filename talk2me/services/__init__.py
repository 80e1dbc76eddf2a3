"""External conversation services and the pipeline that chains them."""

from .base import TranscriptionService, SpeechSynthesisService, LanguageGenerationService
from .conversation_service import ConversationService

__all__ = [
    "TranscriptionService",
    "SpeechSynthesisService",
    "LanguageGenerationService",
    "ConversationService",
]
