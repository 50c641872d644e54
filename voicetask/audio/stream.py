"""Live microphone stream backed by PyAudio in callback mode."""

import errno
import logging
import threading
from typing import Callable, List, Optional

import pyaudio

from ..exceptions import (
    DeviceUnavailableError,
    MicrophoneAccessError,
    PermissionDeniedError,
)

logger = logging.getLogger(__name__)

AudioSink = Callable[[bytes], None]


def _access_error(error: OSError) -> MicrophoneAccessError:
    """Map a PortAudio/OS failure to the matching microphone error."""
    message = str(error)
    lowered = message.lower()
    if getattr(error, "errno", None) in (errno.EACCES, errno.EPERM) \
            or "permission" in lowered or "denied" in lowered:
        return PermissionDeniedError(f"Microphone permission denied: {message}")
    return DeviceUnavailableError(f"Could not open audio input device: {message}")


class MicrophoneStream:
    """Live input stream that fans each captured PCM block out to sinks.

    PyAudio invokes the stream callback on its own thread; sinks must be
    safe to call from there.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
        format: int = pyaudio.paInt16,
    ):
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.format = format

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self._stream: Optional[pyaudio.Stream] = None
        self._sinks: List[AudioSink] = []
        self._lock = threading.Lock()
        self.total_chunks = 0

    @property
    def is_active(self) -> bool:
        """True while the device track is held."""
        return self._stream is not None

    @property
    def track_count(self) -> int:
        """Number of device tracks currently held (0 or 1)."""
        return 1 if self._stream is not None else 0

    def open(self) -> None:
        """Acquire the default input device and start streaming.

        Blocking; run it off the event loop.

        Raises:
            PermissionDeniedError: If the platform refuses microphone access
            DeviceUnavailableError: If no input device exists or it cannot be opened
        """
        self.pyaudio_instance = pyaudio.PyAudio()
        try:
            if self.pyaudio_instance.get_device_count() == 0:
                raise DeviceUnavailableError("No audio devices found")
            try:
                device_info = self.pyaudio_instance.get_default_input_device_info()
            except OSError as e:
                raise DeviceUnavailableError(f"No default input device available: {e}") from e

            self._stream = self.pyaudio_instance.open(
                format=self.format,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                frames_per_buffer=self.chunk_size,
                stream_callback=self._on_audio,
            )
        except MicrophoneAccessError:
            self.stop()
            raise
        except OSError as e:
            self.stop()
            raise _access_error(e) from e

        logger.info(f"Microphone stream opened on '{device_info.get('name', 'default')}': "
                    f"{self.sample_rate}Hz, {self.chunk_size} samples/chunk")

    def _on_audio(self, in_data, frame_count, time_info, status):
        if status:
            logger.debug(f"Audio callback status: {status}")
        with self._lock:
            sinks = list(self._sinks)
            self.total_chunks += 1
        for sink in sinks:
            sink(in_data)
        return (None, pyaudio.paContinue)

    def add_sink(self, sink: AudioSink) -> None:
        with self._lock:
            if sink not in self._sinks:
                self._sinks.append(sink)

    def remove_sink(self, sink: AudioSink) -> None:
        with self._lock:
            if sink in self._sinks:
                self._sinks.remove(sink)

    def stop(self) -> None:
        """Stop and close the device track and terminate PyAudio.

        Idempotent. Each step is isolated so one failure does not leave the
        others unreleased.
        """
        with self._lock:
            self._sinks.clear()
        stream, self._stream = self._stream, None
        pyaudio_instance, self.pyaudio_instance = self.pyaudio_instance, None

        if stream is not None:
            try:
                stream.stop_stream()
            except Exception as e:
                logger.error(f"Error stopping input stream: {e}")
            try:
                stream.close()
            except Exception as e:
                logger.error(f"Error closing input stream: {e}")
        if pyaudio_instance is not None:
            try:
                pyaudio_instance.terminate()
            except Exception as e:
                logger.error(f"Error terminating PyAudio: {e}")
