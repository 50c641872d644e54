"""Recorder controller that drives one voice command from microphone to parsed task."""

import asyncio
import logging
from functools import partial
from typing import Callable, Optional, Set

from ..audio.capture import CaptureSession
from ..audio.monitor import AudioEnergyMonitor
from ..audio.scheduler import AsyncioFrameScheduler, FrameScheduler, monotonic_ms
from ..audio.silence import SilenceTerminationPolicy
from ..config import VoiceTaskConfig
from ..exceptions import AudioSetupError, EncodingError, MicrophoneAccessError, ParseError
from ..models.audio import AudioClip
from ..models.recording import RecorderEvent, RecorderState
from ..models.task import ParsedTaskResult
from ..transcription.base import AbstractTaskParser
from .publisher import RecorderEventPublisher
from .recording_session import RecordingSession, new_session_id

logger = logging.getLogger(__name__)


class RecorderController:
    """State machine for silence-terminated voice recording.

    ``IDLE -> RECORDING -> FINALIZING -> IDLE``. While recording, one frame
    callback at a time samples audio energy and feeds the silence policy;
    when the policy fires, or ``stop()`` is called, the clip is finalized,
    every resource is released and the clip is handed to the parser on a
    separate task. All methods must be called from the event loop thread.
    """

    def __init__(
        self,
        parser: AbstractTaskParser,
        on_processing_start: Optional[Callable[[], None]] = None,
        on_processing_complete: Optional[Callable[[ParsedTaskResult], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        capture_factory: Optional[Callable[[], CaptureSession]] = None,
        monitor_factory: Optional[Callable[[], AudioEnergyMonitor]] = None,
        policy_factory: Optional[Callable[[], SilenceTerminationPolicy]] = None,
        scheduler: Optional[FrameScheduler] = None,
        clock: Callable[[], float] = monotonic_ms,
        publisher: Optional[RecorderEventPublisher] = None,
        on_clip_ready: Optional[Callable[[AudioClip], None]] = None,
    ):
        """Initialize recorder controller.

        Args:
            parser: Collaborator that turns a clip into task fields
            on_processing_start: Called when a finished clip is handed to the parser
            on_processing_complete: Called with the parsed result
            on_error: Called with a user-facing message on any failure
            capture_factory: Builds a CaptureSession per recording
            monitor_factory: Builds an AudioEnergyMonitor per recording
            policy_factory: Builds a SilenceTerminationPolicy per recording
            scheduler: Frame scheduler for the energy-sampling loop
            clock: Millisecond clock used for silence timing
            publisher: Optional pub/sub publisher for lifecycle events
            on_clip_ready: Called with each finished clip before parsing
        """
        self.parser = parser
        self.on_processing_start = on_processing_start
        self.on_processing_complete = on_processing_complete
        self.on_error = on_error
        self.on_clip_ready = on_clip_ready

        self._capture_factory = capture_factory or CaptureSession
        self._monitor_factory = monitor_factory or AudioEnergyMonitor
        self._policy_factory = policy_factory or SilenceTerminationPolicy
        self._scheduler = scheduler or AsyncioFrameScheduler()
        self._clock = clock
        self._publisher = publisher

        self._state = RecorderState.IDLE
        self._session: Optional[RecordingSession] = None
        self._start_task: Optional[asyncio.Future] = None
        self._closed = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        # Keeps parse tasks alive until they finish; results are not kept
        self._processing_tasks: Set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, config: VoiceTaskConfig, parser: AbstractTaskParser, **kwargs) -> "RecorderController":
        """Build a controller with audio, analysis and silence settings from config."""
        channels = config.get('audio.channels', 1)
        capture_factory = partial(
            CaptureSession,
            sample_rate=config.get('audio.sample_rate', 16000),
            chunk_size=config.get('audio.chunk_size', 1024),
            channels=channels,
        )
        monitor_factory = partial(
            AudioEnergyMonitor,
            energy_threshold=config.get('silence.energy_threshold', 15),
            fft_size=config.get('analysis.fft_size', 256),
            smoothing=config.get('analysis.smoothing', 0.8),
            channels=channels,
        )
        policy_factory = partial(
            SilenceTerminationPolicy,
            silence_duration_ms=config.get('silence.duration_ms', 2000),
        )
        scheduler = AsyncioFrameScheduler(frame_rate=config.get('silence.frame_rate', 60))
        return cls(
            parser,
            capture_factory=capture_factory,
            monitor_factory=monitor_factory,
            policy_factory=policy_factory,
            scheduler=scheduler,
            **kwargs,
        )

    @property
    def state(self) -> RecorderState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state is RecorderState.RECORDING

    @property
    def session(self) -> Optional[RecordingSession]:
        """The active recording session, if any."""
        return self._session

    async def start(self) -> bool:
        """Open the microphone and begin silence-monitored recording.

        Returns:
            True if recording started, False if the call was a no-op

        Raises:
            PermissionDeniedError: If microphone access is denied
            DeviceUnavailableError: If no input device is available
            AudioSetupError: If the analysis pipeline cannot be built
        """
        if self._closed:
            logger.warning("Recorder has been closed, ignoring start()")
            return False
        if self._state is not RecorderState.IDLE or self._start_task is not None:
            logger.warning("Recording already in progress")
            return False

        self._loop = asyncio.get_running_loop()
        capture = self._capture_factory()

        logger.info("Requesting microphone access")
        self._start_task = asyncio.ensure_future(capture.open())
        try:
            stream = await self._start_task
        except asyncio.CancelledError:
            capture.release()
            if self._closed:
                logger.info("Microphone request cancelled by teardown")
                return False
            raise
        except MicrophoneAccessError as e:
            capture.release()
            logger.error(f"Error accessing microphone: {e}")
            self._report_error(e.user_message)
            raise
        finally:
            self._start_task = None

        if self._closed:
            capture.release()
            return False

        monitor = self._monitor_factory()
        try:
            monitor.attach(stream)
            capture.begin_encoding(stream)
        except AudioSetupError as e:
            monitor.detach()
            capture.release()
            logger.error(f"Error setting up audio analysis: {e}")
            self._report_error(f"Audio analysis setup failed: {e.detail}")
            raise

        policy = self._policy_factory()
        now = self._clock()
        policy.start(now)

        session = RecordingSession(
            session_id=new_session_id(),
            capture=capture,
            monitor=monitor,
            policy=policy,
            started_at=now,
        )
        self._session = session
        self._set_state(RecorderState.RECORDING)
        if self._session is session and self._state is RecorderState.RECORDING:
            session.frame_handle = self._scheduler.request_frame(partial(self._tick, session))

        logger.info(f"Started recording for session: {session.session_id}")
        return True

    def _tick(self, session: RecordingSession) -> None:
        # Canonical check on every tick; a stale session never reschedules
        if session is not self._session or self._state is not RecorderState.RECORDING:
            return
        session.frame_handle = None

        try:
            verdict = session.monitor.sample_once()
        except Exception as e:
            logger.error(f"Energy sampling failed for session {session.session_id}: {e}")
            self._abort(session, "Audio analysis failed during recording.")
            return

        now = self._clock()
        if session.policy.observe(verdict, now):
            logger.info(f"Silence for {session.policy.silence_elapsed_ms(now):.0f}ms, stopping recording")
            self.stop()
            return

        session.frame_handle = self._scheduler.request_frame(partial(self._tick, session))

    def stop(self) -> Optional[asyncio.Task]:
        """Finalize the recording and hand the clip to the parser.

        Safe to call repeatedly; only the first call while recording has
        any effect.

        Returns:
            The parse task, or None if nothing was recording or the clip
            could not be assembled
        """
        session = self._session
        if self._state is not RecorderState.RECORDING or session is None:
            logger.debug(f"stop() ignored in state {self._state.value}")
            return None

        self._set_state(RecorderState.FINALIZING)
        clip: Optional[AudioClip] = None
        error: Optional[Exception] = None
        try:
            session.cancel_frame()
            session.monitor.detach()
            clip = session.capture.finish()
        except Exception as e:
            error = e
        finally:
            session.release_all()
            self._session = None
            self._set_state(RecorderState.IDLE)

        if error is not None:
            detail = error.detail if isinstance(error, EncodingError) else str(error)
            logger.error(f"Failed to finalize clip for session {session.session_id}: {error}")
            self._report_error(f"Failed to encode recording: {detail}", session.session_id)
            return None

        logger.info(f"Recording stopped for session: {session.session_id}")
        return self._hand_off(session.session_id, clip)

    def _hand_off(self, session_id: str, clip: AudioClip) -> asyncio.Task:
        if self.on_clip_ready:
            try:
                self.on_clip_ready(clip)
            except Exception as e:
                logger.error(f"Clip hook failed for session {session_id}: {e}")
        self._publish("processing_started", session_id, {"clip_bytes": len(clip.data)})

        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(self._process_clip(session_id, clip))
        self._processing_tasks.add(task)
        task.add_done_callback(self._processing_tasks.discard)

        if self.on_processing_start:
            try:
                self.on_processing_start()
            except Exception as e:
                logger.error(f"on_processing_start callback failed for session {session_id}: {e}")
        return task

    async def _process_clip(self, session_id: str, clip: AudioClip) -> Optional[ParsedTaskResult]:
        try:
            result = await self.parser.parse(clip.to_base64(), clip.mime_type)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Any collaborator failure is a parse-stage error
            logger.error(f"Failed to parse voice command for session {session_id}: {e}")
            self._report_error(ParseError.user_message, session_id)
            return None

        self._publish("processing_completed", session_id)
        if self.on_processing_complete:
            try:
                self.on_processing_complete(result)
            except Exception as e:
                logger.error(f"on_processing_complete callback failed for session {session_id}: {e}")
        return result

    def _abort(self, session: RecordingSession, message: str) -> None:
        session.release_all()
        if self._session is session:
            self._session = None
            self._set_state(RecorderState.IDLE)
        self._report_error(message, session.session_id)

    def close(self) -> None:
        """Tear down the controller, releasing everything it holds.

        Cancels a pending microphone request and releases the active
        session synchronously. Later ``start()`` calls are ignored.
        """
        self._closed = True
        if self._start_task is not None and not self._start_task.done():
            self._start_task.cancel()

        session = self._session
        if session is not None:
            logger.info(f"Tearing down active session: {session.session_id}")
            session.release_all()
            self._session = None
            self._set_state(RecorderState.IDLE)

    async def __aenter__(self) -> "RecorderController":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _set_state(self, state: RecorderState) -> None:
        if state is self._state:
            return
        logger.debug(f"Recorder state: {self._state.value} -> {state.value}")
        self._state = state
        session_id = self._session.session_id if self._session else None
        self._publish("state_changed", session_id)

    def _report_error(self, message: str, session_id: Optional[str] = None) -> None:
        self._publish("error", session_id, {"message": message})
        if self.on_error:
            self.on_error(message)

    def _publish(self, event_type: str, session_id: Optional[str], metadata: Optional[dict] = None) -> None:
        if self._publisher is None:
            return
        self._publisher.publish(RecorderEvent(
            event_type=event_type,
            state=self._state,
            session_id=session_id,
            metadata=metadata or {},
        ))
