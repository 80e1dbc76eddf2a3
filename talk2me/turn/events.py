"""Lifecycle events emitted by the turn-taking layer."""

from typing import Any

from ..models.audio import RecordedAudio


class TurnEventListener:
    """Receives turn-taking events. Every method defaults to a no-op.

    Events are delivered synchronously on the scheduler thread, in the order
    the triggering transition emits them.
    """

    def on_speech_detected(self) -> None:
        pass

    def on_recording_start(self, is_interruption: bool) -> None:
        pass

    def on_recording_stop(self, recording: RecordedAudio, is_interruption: bool) -> None:
        pass

    def on_silence_detected(self) -> None:
        pass

    def on_interruption(self) -> None:
        pass

    def on_processing_start(self) -> None:
        pass

    def on_processing_complete(self, reply: Any) -> None:
        pass

    def on_error(self, message: str) -> None:
        pass
