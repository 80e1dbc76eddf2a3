"""Google Text-to-Speech synthesis backend."""

import logging
from typing import Optional

from google.cloud import texttospeech
from google.api_core import exceptions as gax_exceptions
from google.auth import exceptions as auth_exceptions
from google.oauth2 import service_account

from .base import SpeechSynthesisService
from ..exceptions import SynthesisError
from ..models.conversation import SynthesizedSpeech

logger = logging.getLogger(__name__)


class GoogleSpeechSynthesizer(SpeechSynthesisService):
    """Google Text-to-Speech backend producing LINEAR16 audio for local playback."""

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 language: str = "en-US",
                 voice_gender: str = "FEMALE",
                 sample_rate: int = 24000,
                 speaking_rate: float = 1.0,
                 timeout: float = 10.0):
        self.credentials_path = credentials_path
        if not self.credentials_path:
            raise ValueError("Google credentials path is required - cannot initialize without credentials")
        self.language = language
        self.voice_gender = voice_gender.upper()
        self.sample_rate = sample_rate
        self.speaking_rate = speaking_rate
        self.timeout = timeout
        self.client = None

    def initialize(self) -> bool:
        credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
        self.client = texttospeech.TextToSpeechClient(credentials=credentials)
        logger.info(f"Google Text-to-Speech initialized: {self.language}, {self.voice_gender} voice")
        return True

    def synthesize(self, text: str) -> SynthesizedSpeech:
        if self.client is None:
            raise SynthesisError("Google Text-to-Speech backend not initialized")
        if not text or not text.strip():
            raise SynthesisError("Nothing to synthesize")

        voice = texttospeech.VoiceSelectionParams(
            language_code=self.language,
            ssml_gender=texttospeech.SsmlVoiceGender[self.voice_gender],
        )
        audio_config = texttospeech.AudioConfig(
            audio_encoding=texttospeech.AudioEncoding.LINEAR16,
            sample_rate_hertz=self.sample_rate,
            speaking_rate=self.speaking_rate,
        )
        try:
            response = self.client.synthesize_speech(
                input=texttospeech.SynthesisInput(text=text),
                voice=voice,
                audio_config=audio_config,
                timeout=self.timeout,
            )
        except gax_exceptions.GoogleAPICallError as e:
            logger.error(f"Google TTS API call error: {e}")
            raise SynthesisError(f"Google Text-to-Speech error: {e}") from e
        except auth_exceptions.GoogleAuthError as e:
            logger.error(f"Google TTS authentication error: {e}")
            raise SynthesisError(f"Google Text-to-Speech authentication error: {e}") from e

        if not response.audio_content:
            raise SynthesisError("Failed to generate speech audio")

        logger.debug(f"Synthesized {len(response.audio_content)} bytes for {len(text)} characters")
        return SynthesizedSpeech(
            audio_data=response.audio_content,
            content_type="audio/wav",
            sample_rate=self.sample_rate,
            text=text,
        )
