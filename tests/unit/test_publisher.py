"""Unit tests for pub/sub turn event publishing and the console view."""

import io
import pytest
from pubsub import pub
from rich.console import Console

from talk2me.models.audio import RecordedAudio
from talk2me.models.conversation import ConversationReply, SynthesizedSpeech, TranscriptionResult
from talk2me.turn import publisher as topics
from talk2me.turn.publisher import TurnEventPublisher
from talk2me.ui.console_view import ConsoleTurnView


def sample_recording():
    return RecordedAudio(data=b'\x00' * 32000, content_type="audio/l16", sample_rate=16000,
                         chunk_count=10, duration_seconds=1.0)


def sample_reply():
    return ConversationReply(
        transcript=TranscriptionResult(text="what's up", confidence=0.8, processing_time=0.2, service="test"),
        reply_text="Not much!",
        speech=SynthesizedSpeech(audio_data=b'', content_type="audio/wav", sample_rate=24000, text="Not much!"),
        processing_time=0.5,
    )


@pytest.mark.unit
class TestTurnEventPublisher:
    """Test cases for publishing turn events."""

    def test_topics_are_prefixed(self, topic_prefix):
        publisher = TurnEventPublisher(topic_prefix)

        assert publisher.topic(topics.RECORDING_START) == f"{topic_prefix}.recording_start"

    def test_events_reach_subscribers(self, topic_prefix):
        """Test each listener method publishes its own topic with its payload."""
        publisher = TurnEventPublisher(topic_prefix)
        received = []

        def on_start(is_interruption):
            received.append(("start", is_interruption))

        def on_stop(recording, is_interruption):
            received.append(("stop", len(recording), is_interruption))

        def on_interruption():
            received.append(("interruption",))

        def on_error(message):
            received.append(("error", message))

        pub.subscribe(on_start, f"{topic_prefix}.{topics.RECORDING_START}")
        pub.subscribe(on_stop, f"{topic_prefix}.{topics.RECORDING_STOP}")
        pub.subscribe(on_interruption, f"{topic_prefix}.{topics.INTERRUPTION}")
        pub.subscribe(on_error, f"{topic_prefix}.{topics.ERROR}")

        publisher.on_interruption()
        publisher.on_recording_start(True)
        publisher.on_recording_stop(sample_recording(), True)
        publisher.on_error("boom")

        assert received == [
            ("interruption",),
            ("start", True),
            ("stop", 32000, True),
            ("error", "boom"),
        ]

    def test_sessions_are_isolated(self, topic_prefix):
        first = TurnEventPublisher(topic_prefix + "a")
        second = TurnEventPublisher(topic_prefix + "b")
        received = []

        def on_speech():
            received.append("speech")

        pub.subscribe(on_speech, f"{topic_prefix}a.{topics.SPEECH_DETECTED}")
        second.on_speech_detected()
        assert received == []

        first.on_speech_detected()
        assert received == ["speech"]


@pytest.mark.unit
class TestConsoleTurnView:
    """Test cases for the rich console view."""

    def _view(self, prefix):
        output = io.StringIO()
        console = Console(file=output, force_terminal=False, width=120)
        return ConsoleTurnView(prefix, console=console), output

    def test_prints_turn_events(self, topic_prefix):
        view, output = self._view(topic_prefix)
        publisher = TurnEventPublisher(topic_prefix)

        publisher.on_recording_start(False)
        publisher.on_recording_stop(sample_recording(), False)
        publisher.on_processing_start()
        publisher.on_processing_complete(sample_reply())
        publisher.on_error("Failed to access microphone: denied")

        text = output.getvalue()
        assert "RECORDING" in text
        assert "Recorded 1.0s (32000 bytes)" in text
        assert "You: what's up" in text
        assert "Not much!" in text
        assert "Failed to access microphone: denied" in text
        view.close()

    def test_interruption_label(self, topic_prefix):
        view, output = self._view(topic_prefix)
        publisher = TurnEventPublisher(topic_prefix)

        publisher.on_interruption()
        publisher.on_recording_start(True)

        assert "Interrupted" in output.getvalue()
        assert "RECORDING (interruption)" in output.getvalue()
        view.close()

    def test_close_unsubscribes(self, topic_prefix):
        view, output = self._view(topic_prefix)
        publisher = TurnEventPublisher(topic_prefix)
        view.close()

        publisher.on_error("after close")

        assert "after close" not in output.getvalue()

    def test_banner_shows_ambient_level(self, topic_prefix):
        view, output = self._view(topic_prefix)

        view.show_banner(0.0123)

        assert "Ambient noise level: 0.0123" in output.getvalue()
        view.close()
