"""Google Speech-to-Text transcription backend."""

import time
import logging
from typing import Optional

from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.auth import exceptions as auth_exceptions
from google.oauth2 import service_account

from .base import TranscriptionService
from ..exceptions import TranscriptionError
from ..models.audio import RecordedAudio
from ..models.conversation import TranscriptionResult

logger = logging.getLogger(__name__)


class GoogleSpeechTranscriber(TranscriptionService):
    """Google Speech-to-Text API backend for utterance transcription."""

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 language: str = "en-US",
                 use_enhanced: bool = True,
                 enable_automatic_punctuation: bool = True,
                 timeout: float = 10.0):
        """Initialize Google Speech backend.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            language: Language code (e.g., 'en-US', 'es-ES')
            use_enhanced: Whether to use enhanced model
            enable_automatic_punctuation: Enable automatic punctuation
            timeout: Per-request timeout in seconds
        """
        super().__init__(language)
        self.credentials_path = credentials_path
        if not self.credentials_path:
            raise ValueError("Google credentials path is required - cannot initialize without credentials")
        self.use_enhanced = use_enhanced
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.timeout = timeout
        self.client = None
        self.project_id = None
        self.service_name = "Google Speech-to-Text"

    def initialize(self) -> bool:
        """Initialize Google Speech client and verify credentials."""
        logger.info(f"Loading Google credentials from: {self.credentials_path}")
        credentials = service_account.Credentials.from_service_account_file(self.credentials_path)

        self.client = speech.SpeechClient(credentials=credentials)
        self.project_id = credentials.project_id
        logger.info(f"Using Google Cloud project: {self.project_id}")
        return True

    def _recognition_config(self, sample_rate: int) -> speech.RecognitionConfig:
        return speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=sample_rate,
            language_code=self.language,
            use_enhanced=self.use_enhanced,
            enable_automatic_punctuation=self.enable_automatic_punctuation,
        )

    def transcribe(self, recording: RecordedAudio) -> TranscriptionResult:
        """Transcribe an utterance using Google Speech-to-Text."""
        if self.client is None:
            raise TranscriptionError("Google Speech backend not initialized")

        start_time = time.time()
        logger.debug(f"Transcribing {len(recording)} bytes at {recording.sample_rate}Hz; language: {self.language}")

        audio = speech.RecognitionAudio(content=recording.data)
        try:
            response = self.client.recognize(
                config=self._recognition_config(recording.sample_rate), audio=audio, timeout=self.timeout)
        except gax_exceptions.DeadlineExceeded as e:
            logger.error("Google STT recognize deadline exceeded")
            raise TranscriptionError(f"Google Speech recognize timeout: {e}") from e
        except gax_exceptions.ServiceUnavailable as e:
            logger.error("Google STT service unavailable")
            raise TranscriptionError(f"Google Speech service unavailable: {e}") from e
        except gax_exceptions.GoogleAPICallError as e:
            logger.error(f"Google STT API call error: {e}")
            raise TranscriptionError(f"Google Speech API error: {e}") from e
        except auth_exceptions.GoogleAuthError as e:
            logger.error(f"Google STT authentication error: {e}")
            raise TranscriptionError(f"Google Speech authentication error: {e}") from e
        processing_time = time.time() - start_time

        if not response.results or not response.results[0].alternatives:
            logger.debug("--- NO SPEECH DETECTED ---")
            return TranscriptionResult(
                text="",
                confidence=0.0,
                processing_time=processing_time,
                service=self.service_name,
                language=self.language,
            )

        alternative = response.results[0].alternatives[0]
        logger.info(f"Transcribed text: '{alternative.transcript}' "
                    f"(confidence: {alternative.confidence:.2f}, {processing_time:.3f}s)")
        return TranscriptionResult(
            text=alternative.transcript,
            confidence=alternative.confidence,
            processing_time=processing_time,
            service=self.service_name,
            language=self.language,
        )
