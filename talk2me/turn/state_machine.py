"""Turn-taking state machine: when to record, when to stop, when to barge in."""

import logging
from typing import Callable, Optional

from .events import TurnEventListener
from .playback import PlaybackControl
from ..audio.calibration import AmbientCalibrator
from ..audio.capture import AudioCaptureSource
from ..audio.metrics import measure_speech_energy
from ..audio.recording import RecordingSession
from ..audio.silence import SilenceTracker
from ..audio.vad import VoiceActivityDetector
from ..exceptions import CaptureUnavailableError, CalibrationError
from ..models.audio import RecordedAudio, VadDecision
from ..models.settings import TurnTakingSettings
from ..models.turn import TurnState
from ..scheduler import Scheduler, TaskHandle

logger = logging.getLogger(__name__)

class TurnTakingStateMachine:
    """Drives recording start/stop and playback interruption from VAD signals.

    All methods must be called from the scheduler's thread. Every transition
    cancels the timers and loops it makes stale before starting new ones, so
    the speech-monitoring loop and the interruption poll never run together.
    """

    def __init__(
        self,
        capture: AudioCaptureSource,
        scheduler: Scheduler,
        listener: Optional[TurnEventListener] = None,
        settings: Optional[TurnTakingSettings] = None,
    ):
        """Initialize the state machine. Nothing runs until initialize().

        Args:
            capture: Source of analysis frames and raw chunks
            scheduler: Clock and task scheduler for every timer and loop
            listener: Receiver of lifecycle events
            settings: Thresholds and timings
        """
        self.capture = capture
        self.scheduler = scheduler
        self.listener = listener or TurnEventListener()
        self.settings = settings or TurnTakingSettings()

        self.vad = VoiceActivityDetector(self.settings)
        self.calibrator = AmbientCalibrator(capture, scheduler, self.settings)
        self.silence_tracker: Optional[SilenceTracker] = None

        self.ambient_level = self.settings.initial_ambient_level
        self.threshold_multiplier = 1.0
        self.is_ready = False
        self.is_disposed = False
        self.last_decision: Optional[VadDecision] = None

        self.playback: Optional[PlaybackControl] = None
        self.recording: Optional[RecordingSession] = None
        self.recording_is_interruption = False
        self.speech_start_time: Optional[float] = None
        self.last_recording_end_time: Optional[float] = None
        self._phase = TurnState.MONITORING
        self._on_ready: Optional[Callable[[float], None]] = None
        self._on_failed: Optional[Callable[[str], None]] = None
        self._disposing = False

        self._monitor_task: Optional[TaskHandle] = None
        self._cooldown_task: Optional[TaskHandle] = None
        self._deferred_start_task: Optional[TaskHandle] = None
        self._silence_task: Optional[TaskHandle] = None
        self._silence_timer: Optional[TaskHandle] = None
        self._resume_task: Optional[TaskHandle] = None
        self._poll_task: Optional[TaskHandle] = None
        self._interrupt_task: Optional[TaskHandle] = None
        self._settle_task: Optional[TaskHandle] = None

    # ------------------------------------------------------------------
    # State inspection

    @property
    def state(self) -> TurnState:
        if self.recording is not None:
            return TurnState.RECORDING
        if self.playback is not None:
            return TurnState.PLAYBACK_SUSPENDED
        return self._phase

    @property
    def is_recording(self) -> bool:
        return self.recording is not None

    @property
    def playback_active(self) -> bool:
        return self.playback is not None

    @property
    def is_monitoring(self) -> bool:
        return self._monitor_task is not None

    @property
    def is_polling_interruptions(self) -> bool:
        return self._poll_task is not None

    # ------------------------------------------------------------------
    # Lifecycle

    def initialize(self,
                   on_ready: Optional[Callable[[float], None]] = None,
                   on_failed: Optional[Callable[[str], None]] = None) -> bool:
        """Acquire the capture source and start ambient calibration.

        Monitoring starts once calibration completes (in automatic mode).

        Args:
            on_ready: Called with the ambient level when calibration completes
            on_failed: Called with the error message if calibration fails

        Returns:
            False if the capture source could not be acquired
        """
        if self.is_disposed:
            raise RuntimeError("State machine has been disposed")
        if self.is_ready or self.calibrator.is_running:
            logger.warning("State machine already initialized")
            return True

        try:
            self.capture.start()
        except CaptureUnavailableError as e:
            logger.error(f"Error initializing voice processor: {e}")
            self._emit("on_error", f"Failed to access microphone: {e}")
            return False

        self._on_ready = on_ready
        self._on_failed = on_failed
        self.calibrator.start(self._on_calibrated, self._on_calibration_failed)
        return True

    def _on_calibrated(self, level: float) -> None:
        self.ambient_level = level
        self.silence_tracker = SilenceTracker(
            level,
            window_size=self.settings.silence_window_size,
            threshold_factor=self.settings.silence_threshold_factor,
        )
        self.is_ready = True
        logger.info(f"Turn-taking ready: ambient={level:.4f}, automatic={self.settings.automatic_mode}")

        if self.settings.automatic_mode:
            self.start_speech_monitoring()
        if self._on_ready:
            self._on_ready(level)

    def _on_calibration_failed(self, error: CalibrationError) -> None:
        self.capture.stop()
        message = f"Ambient calibration failed: {error}"
        self._emit("on_error", message)
        if self._on_failed:
            self._on_failed(message)

    def dispose(self) -> None:
        """Stop any recording, cancel every timer and release the capture source."""
        if self.is_disposed:
            return

        self._disposing = True
        self.calibrator.cancel()
        self.stop_recording()
        self._cancel_listening_timers()
        self._silence_task = self._cancel(self._silence_task)
        self._silence_timer = self._cancel(self._silence_timer)
        self.playback = None
        self.threshold_multiplier = 1.0
        self._phase = TurnState.MONITORING
        self.speech_start_time = None

        self.capture.stop()
        self.is_ready = False
        self.is_disposed = True
        logger.info("Turn-taking state machine disposed")

    # ------------------------------------------------------------------
    # Speech monitoring

    def _cooldown_remaining(self) -> float:
        if self.last_recording_end_time is None:
            return 0.0
        elapsed = self.scheduler.now() - self.last_recording_end_time
        return max(0.0, self.settings.recording_cooldown_ms - elapsed)

    def start_speech_monitoring(self) -> None:
        """Start the speech-monitoring loop, or the interruption poll during playback."""
        if not self.is_ready or self.is_recording:
            return

        if self.playback_active:
            self._start_interruption_poll()
            return

        remaining = self._cooldown_remaining()
        if remaining > 0:
            self._cooldown_task = self._cancel(self._cooldown_task)
            self._cooldown_task = self.scheduler.call_later(remaining, self._retry_after_cooldown)
            logger.debug(f"Monitoring deferred {remaining:.0f}ms for recording cooldown")
            return

        self._cooldown_task = self._cancel(self._cooldown_task)
        self._monitor_task = self._cancel(self._monitor_task)
        self._phase = TurnState.MONITORING
        self.speech_start_time = None

        self._monitor_task = self.scheduler.call_every(self.settings.frame_interval_ms, self._monitor_tick)
        self._monitor_tick()

    def _retry_after_cooldown(self) -> None:
        self._cooldown_task = None
        self.start_speech_monitoring()

    def _monitor_tick(self) -> None:
        if self._monitor_task is None or self.is_recording:
            return

        decision = self.vad.classify_frame(self.capture.read_frame(), self.ambient_level, self.threshold_multiplier)
        self.last_decision = decision
        now = self.scheduler.now()

        if decision.is_speech:
            if self._phase is not TurnState.SPEECH_PENDING:
                self._phase = TurnState.SPEECH_PENDING
                self.speech_start_time = now
                logger.info(f"Speech detected (energy={decision.metrics.speech_energy:.4f})")
                self._emit("on_speech_detected")
            elif (self.settings.automatic_mode
                  and now - self.speech_start_time > self.settings.speech_duration_ms):
                self.start_recording()
        elif self._phase is TurnState.SPEECH_PENDING:
            logger.debug("Speech ended before debounce elapsed")
            self._phase = TurnState.MONITORING
            self.speech_start_time = None

    # ------------------------------------------------------------------
    # Recording

    def start_recording(self, is_interruption: bool = False) -> bool:
        """Open a recording session and start watching for silence.

        A start inside the cooldown window is rescheduled for the moment the
        window closes.

        Returns:
            True if recording started now
        """
        if not self.is_ready or self.is_recording:
            return False

        remaining = self._cooldown_remaining()
        if remaining > 0:
            self._deferred_start_task = self._cancel(self._deferred_start_task)
            self._deferred_start_task = self.scheduler.call_later(
                remaining, lambda: self._deferred_start(is_interruption))
            logger.debug(f"Recording start deferred {remaining:.0f}ms for cooldown")
            return False

        self._cancel_listening_timers()

        # Audio queued before the utterance is not part of it
        self.capture.drain_chunks()
        self.recording = RecordingSession(
            content_type=self.capture.content_type,
            sample_rate=self.capture.sample_rate,
            channels=self.capture.channels,
        )
        self.recording.start()
        self.recording_is_interruption = is_interruption
        self._phase = TurnState.RECORDING
        self.speech_start_time = None

        self._silence_task = self.scheduler.call_every(self.settings.frame_interval_ms, self._silence_tick)
        logger.info(f"Recording started (interruption={is_interruption})")
        self._emit("on_recording_start", is_interruption)
        return True

    def _deferred_start(self, is_interruption: bool) -> None:
        self._deferred_start_task = None
        self.start_recording(is_interruption)

    def _silence_tick(self) -> None:
        if self.recording is None:
            return

        for chunk in self.capture.drain_chunks():
            self.recording.append(chunk)

        energy = measure_speech_energy(
            self.capture.read_frame(), self.settings.speech_band_low_hz, self.settings.speech_band_high_hz)
        if self.silence_tracker.update(energy):
            if self._silence_timer is None:
                self._silence_timer = self.scheduler.call_later(
                    self.settings.silence_duration_ms, self._on_silence_confirmed)
        else:
            self._silence_timer = self._cancel(self._silence_timer)

    def _on_silence_confirmed(self) -> None:
        self._silence_timer = None
        if not self.is_recording:
            return
        logger.info(f"Silence held for {self.settings.silence_duration_ms:.0f}ms, stopping recording")
        self._emit("on_silence_detected")
        self.stop_recording()

    def stop_recording(self) -> Optional[RecordedAudio]:
        """Close the open recording and hand it to the listener. No-op when idle."""
        if self.recording is None:
            return None

        self._silence_task = self._cancel(self._silence_task)
        self._silence_timer = self._cancel(self._silence_timer)
        for chunk in self.capture.drain_chunks():
            self.recording.append(chunk)

        recorded = self.recording.stop()
        is_interruption = self.recording_is_interruption
        self.recording = None
        self.recording_is_interruption = False
        self._phase = TurnState.MONITORING
        self.last_recording_end_time = self.scheduler.now()
        logger.info(f"Recording stopped: {len(recorded)} bytes (interruption={is_interruption})")

        self._emit("on_recording_stop", recorded, is_interruption)

        if not self._disposing:
            self._resume_task = self._cancel(self._resume_task)
            self._resume_task = self.scheduler.call_later(self.settings.resume_delay_ms, self._resume_after_recording)
        return recorded

    def _resume_after_recording(self) -> None:
        self._resume_task = None
        self.start_speech_monitoring()

    # ------------------------------------------------------------------
    # Playback and interruption

    def on_playback_started(self, playback: PlaybackControl) -> None:
        """Playback of a reply began: raise the threshold and watch for barge-in."""
        if self.is_disposed:
            return

        self.playback = playback
        self.threshold_multiplier = self.settings.playback_threshold_multiplier
        self._monitor_task = self._cancel(self._monitor_task)
        self._cooldown_task = self._cancel(self._cooldown_task)
        self._settle_task = self._cancel(self._settle_task)
        if self._phase is TurnState.SPEECH_PENDING:
            self._phase = TurnState.MONITORING
            self.speech_start_time = None

        logger.info("Playback started, watching for interruptions")
        if not self.is_recording:
            self._start_interruption_poll()

    def on_playback_paused(self) -> None:
        """Playback was paused: return to normal monitoring right away."""
        if self.is_disposed:
            return
        self._leave_playback()
        if self._interrupt_task is None and not self.is_recording:
            self.start_speech_monitoring()

    def on_playback_ended(self) -> None:
        """Playback finished: resume monitoring after the settle delay."""
        if self.is_disposed:
            return
        self._leave_playback()
        if self._interrupt_task is None and not self.is_recording:
            self._settle_task = self._cancel(self._settle_task)
            self._settle_task = self.scheduler.call_later(self.settings.playback_settle_ms, self._after_settle)

    def _after_settle(self) -> None:
        self._settle_task = None
        self.start_speech_monitoring()

    def _leave_playback(self) -> None:
        self._poll_task = self._cancel(self._poll_task)
        if self.playback is not None:
            logger.info("Playback stopped")
        self.playback = None
        self.threshold_multiplier = 1.0

    def _start_interruption_poll(self) -> None:
        self._monitor_task = self._cancel(self._monitor_task)
        self._poll_task = self._cancel(self._poll_task)
        if not self.is_ready:
            return
        self._poll_task = self.scheduler.call_every(self.settings.interruption_poll_ms, self._interruption_tick)

    def _interruption_tick(self) -> None:
        playback = self.playback
        if self._poll_task is None or playback is None:
            return

        if playback.is_paused:
            # Paused without notification
            self._leave_playback()
            self.start_speech_monitoring()
            return

        energy = measure_speech_energy(
            self.capture.read_frame(), self.settings.speech_band_low_hz, self.settings.speech_band_high_hz)
        threshold = self.ambient_level * self.settings.interruption_threshold_factor
        logger.debug(f"Interruption check: energy={energy:.4f}, threshold={threshold:.4f}")

        if energy > threshold:
            logger.info("Interruption detected, stopping playback")
            self._interrupt_task = self.scheduler.call_later(
                self.settings.interruption_record_delay_ms, self._start_interruption_recording)
            self._leave_playback()
            playback.pause()
            self._emit("on_interruption")

    def _start_interruption_recording(self) -> None:
        self._interrupt_task = None
        self.start_recording(is_interruption=True)

    # ------------------------------------------------------------------

    def _cancel(self, handle: Optional[TaskHandle]) -> None:
        """Cancel a timer if set; returns None for assigning back to its slot."""
        if handle is not None:
            handle.cancel()
        return None

    def _cancel_listening_timers(self) -> None:
        """Cancel every timer except the silence loop and its debounce."""
        self._monitor_task = self._cancel(self._monitor_task)
        self._cooldown_task = self._cancel(self._cooldown_task)
        self._deferred_start_task = self._cancel(self._deferred_start_task)
        self._resume_task = self._cancel(self._resume_task)
        self._poll_task = self._cancel(self._poll_task)
        self._interrupt_task = self._cancel(self._interrupt_task)
        self._settle_task = self._cancel(self._settle_task)

    def _emit(self, event: str, *args) -> None:
        try:
            getattr(self.listener, event)(*args)
        except Exception as e:
            logger.error(f"Listener {event} failed: {e}", exc_info=True)
