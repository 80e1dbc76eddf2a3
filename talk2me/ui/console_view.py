"""Console status view subscribed to turn events."""

import logging
from typing import List, Tuple, Callable

from pubsub import pub
from rich.console import Console

from ..turn import publisher as topics

logger = logging.getLogger(__name__)


class ConsoleTurnView:
    """Prints a status line for every turn event of one session."""

    def __init__(self, prefix: str = "talk2me", console: Console = None):
        """Initialize console view.

        Args:
            prefix: Topic prefix of the session to follow
            console: Rich console to print to
        """
        self.prefix = prefix
        self.console = console or Console()
        self.subscriptions: List[Tuple[Callable, str]] = [
            (self._on_speech_detected, topics.SPEECH_DETECTED),
            (self._on_recording_start, topics.RECORDING_START),
            (self._on_recording_stop, topics.RECORDING_STOP),
            (self._on_interruption, topics.INTERRUPTION),
            (self._on_processing_start, topics.PROCESSING_START),
            (self._on_processing_complete, topics.PROCESSING_COMPLETE),
            (self._on_error, topics.ERROR),
        ]
        for listener, event in self.subscriptions:
            pub.subscribe(listener, f"{prefix}.{event}")
        logger.info(f"ConsoleTurnView subscribed to {prefix}.*")

    def show_banner(self, ambient_level: float) -> None:
        self.console.print("🎙️  Talk2Me", style="bold blue")
        self.console.print("=" * 50)
        self.console.print(f"Ambient noise level: {ambient_level:.4f}")
        self.console.print("Listening... speak any time, interrupt replies by talking over them.")
        self.console.print("=" * 50)

    def _on_speech_detected(self) -> None:
        self.console.print("👂 Speech detected", style="dim")

    def _on_recording_start(self, is_interruption: bool) -> None:
        label = "🔴 RECORDING (interruption)" if is_interruption else "🔴 RECORDING"
        self.console.print(label, style="bold red")

    def _on_recording_stop(self, recording, is_interruption: bool) -> None:
        duration = f"{recording.duration_seconds:.1f}s" if recording.duration_seconds is not None else "?"
        self.console.print(f"⏹️  Recorded {duration} ({len(recording)} bytes)", style="yellow")

    def _on_interruption(self) -> None:
        self.console.print("✋ Interrupted - playback stopped", style="bold magenta")

    def _on_processing_start(self) -> None:
        self.console.print("⏳ Thinking...", style="blue")

    def _on_processing_complete(self, reply) -> None:
        if reply.transcript is not None and reply.transcript.has_speech:
            self.console.print(f"🗣️  You: {reply.transcript.text}")
        self.console.print(f"🤖 {reply.reply_text}", style="green")

    def _on_error(self, message: str) -> None:
        self.console.print(f"❌ {message}", style="bold red")

    def close(self) -> None:
        for listener, event in self.subscriptions:
            try:
                pub.unsubscribe(listener, f"{self.prefix}.{event}")
            except Exception as e:
                logger.warning(f"Error during unsubscribe: {e}")
