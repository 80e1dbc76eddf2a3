"""Conversation service that turns a recorded utterance into a spoken reply."""

import time
import asyncio
import logging
from typing import Optional

from .base import TranscriptionService, SpeechSynthesisService, LanguageGenerationService
from ..exceptions import ServiceError
from ..models.audio import RecordedAudio
from ..models.conversation import ConversationReply
from ..turn.events import TurnEventListener

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_TEXT = "Sorry, I couldn't understand that. Please try again."


class ConversationService:
    """Runs transcription, reply generation and synthesis for one utterance.

    Failures are reported through the listener's on_error and never raised,
    so the turn-taking layer is unaffected by downstream outcomes.
    """

    def __init__(self,
                 transcriber: TranscriptionService,
                 generator: LanguageGenerationService,
                 synthesizer: SpeechSynthesisService,
                 listener: Optional[TurnEventListener] = None,
                 fallback_text: str = DEFAULT_FALLBACK_TEXT):
        """Initialize conversation service.

        Args:
            transcriber: Speech-to-text backend
            generator: Reply generator
            synthesizer: Text-to-speech backend
            listener: Receiver of processing events
            fallback_text: Spoken when the utterance contained no recognizable speech
        """
        self.transcriber = transcriber
        self.generator = generator
        self.synthesizer = synthesizer
        self.listener = listener or TurnEventListener()
        self.fallback_text = fallback_text

    async def process(self, recording: RecordedAudio) -> Optional[ConversationReply]:
        """Process one utterance end to end.

        Args:
            recording: Finalized utterance from the state machine

        Returns:
            ConversationReply, or None if any service failed
        """
        self.listener.on_processing_start()
        start_time = time.time()

        try:
            transcript = await asyncio.to_thread(self.transcriber.transcribe, recording)

            if transcript.has_speech:
                reply_text = await self.generator.generate(transcript.text)
                used_fallback = False
            else:
                logger.info("No speech recognized, replying with fallback")
                reply_text = self.fallback_text
                used_fallback = True

            speech = await asyncio.to_thread(self.synthesizer.synthesize, reply_text)
        except ServiceError as e:
            logger.error(f"Error processing utterance: {e}")
            self.listener.on_error(f"Error processing request: {e}")
            return None
        except Exception as e:
            logger.exception(f"Unexpected error processing utterance: {e}")
            self.listener.on_error(f"Error processing request: {e}")
            return None

        reply = ConversationReply(
            transcript=transcript,
            reply_text=reply_text,
            speech=speech,
            processing_time=time.time() - start_time,
            used_fallback=used_fallback,
        )
        logger.info(f"Reply ready in {reply.processing_time:.2f}s: '{reply_text[:60]}'")
        self.listener.on_processing_complete(reply)
        return reply
