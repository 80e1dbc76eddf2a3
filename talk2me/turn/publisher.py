"""Turn event publisher for pub/sub event publishing."""

import logging

from pubsub import pub

from .events import TurnEventListener
from ..models.audio import RecordedAudio

logger = logging.getLogger(__name__)

SPEECH_DETECTED = "speech_detected"
RECORDING_START = "recording_start"
RECORDING_STOP = "recording_stop"
SILENCE_DETECTED = "silence_detected"
INTERRUPTION = "interruption"
PROCESSING_START = "processing_start"
PROCESSING_COMPLETE = "processing_complete"
ERROR = "error"


class TurnEventPublisher(TurnEventListener):
    """Publishes turn events using pubsub.pub, one topic per event.

    Topics are named '<prefix>.<event>' so that independent sessions in one
    process can use different prefixes.
    """

    def __init__(self, prefix: str = "talk2me"):
        """Initialize turn event publisher.

        Args:
            prefix: Pub/sub topic prefix for this session
        """
        self.prefix = prefix
        logger.info(f"TurnEventPublisher initialized with prefix: {prefix}")

    def topic(self, event: str) -> str:
        return f"{self.prefix}.{event}"

    def on_speech_detected(self) -> None:
        pub.sendMessage(self.topic(SPEECH_DETECTED))

    def on_recording_start(self, is_interruption: bool) -> None:
        pub.sendMessage(self.topic(RECORDING_START), is_interruption=is_interruption)

    def on_recording_stop(self, recording: RecordedAudio, is_interruption: bool) -> None:
        pub.sendMessage(self.topic(RECORDING_STOP), recording=recording, is_interruption=is_interruption)
        logger.debug(f"Published recording stop: {len(recording)} bytes")

    def on_silence_detected(self) -> None:
        pub.sendMessage(self.topic(SILENCE_DETECTED))

    def on_interruption(self) -> None:
        pub.sendMessage(self.topic(INTERRUPTION))

    def on_processing_start(self) -> None:
        pub.sendMessage(self.topic(PROCESSING_START))

    def on_processing_complete(self, reply) -> None:
        pub.sendMessage(self.topic(PROCESSING_COMPLETE), reply=reply)

    def on_error(self, message: str) -> None:
        pub.sendMessage(self.topic(ERROR), message=message)
