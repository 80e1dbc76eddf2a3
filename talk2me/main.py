"""Main application entry point for Talk2Me."""

import sys
import asyncio
import argparse
import logging
import dataclasses
from pathlib import Path
from typing import Optional

from pubsub import pub

from .audio.capture import MicrophoneCapture
from .audio.player import AudioPlayback
from .config import Talk2MeConfig
from .exceptions import Talk2MeError
from .models.audio import RecordedAudio
from .scheduler import AsyncioScheduler
from .services.conversation_service import ConversationService, DEFAULT_FALLBACK_TEXT
from .services.gemini import GeminiReplyGenerator, DEFAULT_SYSTEM_PROMPT
from .services.google_speech import GoogleSpeechTranscriber
from .services.google_tts import GoogleSpeechSynthesizer
from .turn import publisher as topics
from .turn.publisher import TurnEventPublisher
from .turn.state_machine import TurnTakingStateMachine
from .ui.console_view import ConsoleTurnView
from .ui.keyboard_input import LineInputHandler

logger = logging.getLogger(__name__)


class Server:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None, manual: bool = False):
        # Load configuration
        self.config = Talk2MeConfig(config_path)
        # Set up logging (command line overrides config)
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        self.topic_prefix = 'talk2me'
        self.should_exit = False
        self.manual = manual
        self.startup_failed = False
        self.cleaned_up = False
        self.input_handler: Optional[LineInputHandler] = None
        self.playback: Optional[AudioPlayback] = None
        self.pending_replies = set()

    def init(self):
        logger.info("Initializing services...")
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)
        self.scheduler = AsyncioScheduler(self.loop)

        sample_rate = self.config.get('audio.sample_rate', 16000)
        chunk_size = self.config.get('audio.chunk_size', 1024)
        channels = self.config.get('audio.channels', 1)
        logger.info(f"Audio settings: {sample_rate}Hz, {chunk_size} samples/chunk, {channels} channels")

        self.capture = MicrophoneCapture(
            sample_rate=sample_rate,
            chunk_size=chunk_size,
            channels=channels,
            fft_size=self.config.get('audio.fft_size', 2048),
            smoothing=self.config.get('audio.smoothing', 0.5),
            band_filter=self.config.get('audio.band_filter', True),
            compressor=self.config.get('audio.compressor', True),
        )

        self.publisher = TurnEventPublisher(self.topic_prefix)
        self.view = ConsoleTurnView(self.topic_prefix)

        credentials_path = self.config.get_google_credentials_path()
        language = self.config.get('google_cloud.language', 'en-US')

        self.transcriber = GoogleSpeechTranscriber(
            credentials_path=credentials_path,
            language=language,
            use_enhanced=self.config.get('google_cloud.use_enhanced_model', True),
            enable_automatic_punctuation=self.config.get('google_cloud.enable_automatic_punctuation', True),
        )
        self.synthesizer = GoogleSpeechSynthesizer(
            credentials_path=credentials_path,
            language=language,
            voice_gender=self.config.get('google_cloud.voice_gender', 'FEMALE'),
            speaking_rate=self.config.get('google_cloud.speaking_rate', 1.0),
        )
        if not self.transcriber.initialize() or not self.synthesizer.initialize():
            raise RuntimeError("Google speech services failed to initialize")

        generator = GeminiReplyGenerator(
            api_key=self.config.get_gemini_api_key(),
            model=self.config.get('gemini.model', 'gemini-2.0-flash'),
            system_prompt=self.config.get('gemini.system_prompt', DEFAULT_SYSTEM_PROMPT),
            timeout_seconds=self.config.get('gemini.timeout_seconds', 30.0),
        )

        self.conversation = ConversationService(
            transcriber=self.transcriber,
            generator=generator,
            synthesizer=self.synthesizer,
            listener=self.publisher,
            fallback_text=self.config.get('conversation.fallback_text', DEFAULT_FALLBACK_TEXT),
        )
        settings = self.config.get_turn_taking_settings()
        if self.manual:
            settings = dataclasses.replace(settings, automatic_mode=False)
        self.state_machine = TurnTakingStateMachine(
            capture=self.capture,
            scheduler=self.scheduler,
            listener=self.publisher,
            settings=settings,
        )
        pub.subscribe(self._on_recording_stop, f"{self.topic_prefix}.{topics.RECORDING_STOP}")

    def _on_recording_stop(self, recording: RecordedAudio, is_interruption: bool) -> None:
        task = self.loop.create_task(self._respond(recording))
        self.pending_replies.add(task)
        task.add_done_callback(self.pending_replies.discard)

    async def _respond(self, recording: RecordedAudio) -> None:
        reply = await self.conversation.process(recording)
        if reply is None:
            return

        if self.playback is not None and not self.playback.is_finished:
            self.playback.pause()

        playback = AudioPlayback(
            reply.speech,
            self.scheduler,
            on_paused=lambda: self._on_playback_finished(playback, paused=True),
            on_ended=lambda: self._on_playback_finished(playback, paused=False),
        )
        self.playback = playback
        playback.start()
        self.state_machine.on_playback_started(playback)

    def _on_playback_finished(self, playback: AudioPlayback, paused: bool) -> None:
        # A superseded playback must not end the current one
        if playback is not self.playback:
            return
        self.playback = None
        if paused:
            self.state_machine.on_playback_paused()
        else:
            self.state_machine.on_playback_ended()

    def run(self, duration: int) -> bool:
        if not self.state_machine.initialize(on_ready=self.view.show_banner, on_failed=self._on_startup_failed):
            self.cleanup()
            return False

        if self.manual:
            print("Manual mode: press Enter to start/stop recording, q + Enter to quit")
            self.input_handler = LineInputHandler(self._on_key)
            self.input_handler.start()

        try:
            self.loop.run_until_complete(self._wait(duration))
        except Exception as e:
            logger.error(f"Error in run: {e}")
        finally:
            self.cleanup()
        return not self.startup_failed

    def _on_key(self, key: str) -> bool:
        """Handle a command from the input thread."""
        if key == 'q':
            self.scheduler.call_soon_threadsafe(self._request_exit)
            return False
        self.scheduler.call_soon_threadsafe(self._toggle_recording)
        return True

    def _on_startup_failed(self, message: str) -> None:
        logger.error(f"Startup failed: {message}")
        self.startup_failed = True
        self.should_exit = True

    def _request_exit(self) -> None:
        self.should_exit = True

    def _toggle_recording(self) -> None:
        if self.state_machine.is_recording:
            self.state_machine.stop_recording()
        else:
            self.state_machine.start_recording()

    async def _wait(self, duration: int) -> None:
        deadline = self.loop.time() + duration if duration else None
        while not self.should_exit:
            if deadline is not None and self.loop.time() >= deadline:
                return
            await asyncio.sleep(0.1)

    def cleanup(self):
        if self.cleaned_up:
            return
        self.cleaned_up = True
        if self.input_handler is not None:
            self.input_handler.stop()
        self.state_machine.dispose()
        if self.playback is not None:
            self.playback.pause()
            self.playback = None

        try:
            pub.unsubscribe(self._on_recording_stop, f"{self.topic_prefix}.{topics.RECORDING_STOP}")
        except Exception as e:
            logger.warning(f"Error during unsubscribe: {e}")
        self.view.close()

        for task in list(self.pending_replies):
            task.cancel()
        self.transcriber.cleanup()
        self.synthesizer.cleanup()
        if not self.loop.is_closed():
            self.loop.close()


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/talk2me.log')
    console_output = config.get('logging.console_output', True)

    # Create logs directory if it doesn't exist
    Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger = logging.getLogger(__name__)
    logger.info("=" * 50)
    logger.info("Talk2Me application starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def main() -> None:
    """Main entry point for Talk2Me application."""
    parser = argparse.ArgumentParser(
        description="Talk2Me - hands-free voice conversation with barge-in",
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: talk2me.yaml)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, else INFO)"
    )

    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Stop after this many seconds (default: run until Ctrl+C)"
    )

    parser.add_argument(
        "--manual",
        action="store_true",
        help="Start and stop recordings from the keyboard instead of on detected speech"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="Talk2Me v0.1.0"
    )

    args = parser.parse_args()

    try:
        server = Server(args.config, args.log_level, manual=args.manual)
        server.init()
    except (Talk2MeError, FileNotFoundError, RuntimeError) as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)

    try:
        if not server.run(args.duration):
            sys.exit(1)
    except KeyboardInterrupt:
        server.cleanup()
        print("\n👋 Goodbye!")


if __name__ == "__main__":
    main()
