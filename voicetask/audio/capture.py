"""Capture session that owns the microphone and encodes the recorded clip."""

import asyncio
import io
import logging
import threading
import wave
from datetime import datetime
from typing import List, Optional

import pyaudio

from .stream import MicrophoneStream
from ..exceptions import DeviceUnavailableError, EncodingError
from ..models.audio import AudioClip, AudioStats

logger = logging.getLogger(__name__)


class CaptureSession:
    """Owns one microphone stream and accumulates its PCM into a WAV clip."""

    MIME_TYPE = "audio/wav"

    def __init__(
        self,
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
        format: int = pyaudio.paInt16,
    ):
        """Initialize capture session with specified parameters.

        Args:
            sample_rate: Audio sample rate in Hz
            chunk_size: Size of each audio chunk in samples
            channels: Number of audio channels (1 for mono)
            format: Audio format (16-bit signed int)
        """
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.format = format

        self.stream: Optional[MicrophoneStream] = None
        self.fragments: List[bytes] = []
        self.is_encoding = False
        self.start_time: Optional[datetime] = None

        self._opened = False
        self._released = False
        self._lock = threading.Lock()
        self._fragment_lock = threading.Lock()

    @property
    def track_count(self) -> int:
        return self.stream.track_count if self.stream else 0

    async def open(self) -> MicrophoneStream:
        """Request microphone access without blocking the event loop.

        Returns:
            The live microphone stream

        Raises:
            PermissionDeniedError: If microphone access is denied
            DeviceUnavailableError: If no input device is available
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._open_device)

    def _open_device(self) -> MicrophoneStream:
        with self._lock:
            if self._released:
                raise DeviceUnavailableError("Capture session was released before the device opened")
            if self.stream is not None:
                return self.stream

        # The lock is not held across the blocking open so release() never waits on it
        stream = MicrophoneStream(
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            channels=self.channels,
            format=self.format,
        )
        stream.open()

        with self._lock:
            if not self._released:
                self.stream = stream
                self._opened = True
                self.start_time = datetime.now()
                return stream

        stream.stop()
        logger.info("Capture session released while the device was opening, device closed")
        raise DeviceUnavailableError("Capture session was released while the device was opening")

    def begin_encoding(self, stream: MicrophoneStream) -> None:
        """Start buffering PCM fragments from ``stream`` in arrival order."""
        if self.is_encoding:
            logger.warning("Encoding already in progress")
            return
        with self._fragment_lock:
            self.fragments = []
        stream.add_sink(self._on_fragment)
        self.is_encoding = True
        logger.debug("Encoding started")

    def _on_fragment(self, data: bytes) -> None:
        if data:
            with self._fragment_lock:
                self.fragments.append(data)

    def finish(self) -> AudioClip:
        """Stop encoding, release the device and assemble the clip.

        The device is released before assembly, so a failed assembly never
        leaves the microphone held.

        Raises:
            EncodingError: If the session was never opened or assembly fails
        """
        if not self._opened:
            raise EncodingError("Cannot assemble a clip from a capture session that was never opened")

        try:
            if self.stream is not None:
                self.stream.remove_sink(self._on_fragment)
            self.is_encoding = False
        finally:
            self.release()

        with self._fragment_lock:
            fragments = list(self.fragments)
        return self._assemble(fragments)

    def _assemble(self, fragments: List[bytes]) -> AudioClip:
        if not fragments:
            logger.warning("No audio fragments captured")

        sample_width = pyaudio.get_sample_size(self.format)
        buffer = io.BytesIO()
        try:
            with wave.open(buffer, 'wb') as wf:
                wf.setnchannels(self.channels)
                wf.setsampwidth(sample_width)
                wf.setframerate(self.sample_rate)
                for chunk in fragments:
                    wf.writeframes(chunk)
        except (wave.Error, ValueError) as e:
            raise EncodingError(f"Failed to assemble WAV clip: {e}") from e

        clip = AudioClip(
            data=buffer.getvalue(),
            mime_type=self.MIME_TYPE,
            sample_rate=self.sample_rate,
            channels=self.channels,
            fragment_count=len(fragments),
            pcm_bytes=sum(len(chunk) for chunk in fragments),
            sample_width=sample_width,
        )
        logger.info(f"Clip assembled: {clip.fragment_count} fragments, "
                    f"{clip.duration_seconds:.2f}s, {len(clip.data)} bytes")
        return clip

    def release(self) -> None:
        """Release the microphone without assembling a clip. Idempotent."""
        with self._lock:
            self._released = True
            stream, self.stream = self.stream, None
        self.is_encoding = False
        if stream is None:
            return
        stream.remove_sink(self._on_fragment)
        stream.stop()
        logger.info("Microphone released")

    def get_recording_stats(self) -> AudioStats:
        """Get current capture statistics."""
        duration = 0.0
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()

        with self._fragment_lock:
            total_chunks = len(self.fragments)

        return AudioStats(
            is_recording=self.is_encoding,
            duration_seconds=duration,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            total_chunks=total_chunks,
        )
