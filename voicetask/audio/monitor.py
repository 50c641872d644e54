"""Frequency-domain energy monitoring of a live audio stream."""

import logging
import threading
from typing import Optional

import numpy as np
from scipy.signal import get_window

from ..exceptions import AudioSetupError
from ..models.audio import EnergyVerdict

logger = logging.getLogger(__name__)


class AnalysisNode:
    """Frequency analyser fed by a live stream.

    Mirrors a browser AnalyserNode: the most recent ``fft_size`` samples are
    Blackman-windowed, transformed, smoothed over time and mapped from
    decibels onto a 0-255 byte scale.
    """

    MIN_DECIBELS = -100.0
    MAX_DECIBELS = -30.0

    def __init__(self, fft_size: int = 256, smoothing: float = 0.8, channels: int = 1):
        if fft_size < 32 or fft_size > 32768 or fft_size & (fft_size - 1):
            raise AudioSetupError(f"FFT size must be a power of two between 32 and 32768, got {fft_size}")
        if not 0.0 <= smoothing <= 1.0:
            raise AudioSetupError(f"Smoothing must be between 0 and 1, got {smoothing}")

        self.fft_size = fft_size
        self.frequency_bin_count = fft_size // 2
        self.smoothing = smoothing
        self.channels = channels

        self._window = get_window("blackman", fft_size)
        self._time_domain = np.zeros(fft_size, dtype=np.float32)
        self._smoothed = np.zeros(self.frequency_bin_count, dtype=np.float64)
        self._lock = threading.Lock()
        self._stream = None

    @property
    def connected(self) -> bool:
        return self._stream is not None

    def connect(self, stream) -> None:
        stream.add_sink(self.write)
        self._stream = stream

    def disconnect(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.remove_sink(self.write)

    def write(self, data: bytes) -> None:
        """Feed raw 16-bit PCM into the rolling analysis window."""
        samples = np.frombuffer(data, dtype=np.int16).astype(np.float32) / 32768.0
        if self.channels > 1:
            samples = samples.reshape(-1, self.channels).mean(axis=1)
        with self._lock:
            self._time_domain = np.concatenate((self._time_domain, samples))[-self.fft_size:]

    def get_byte_frequency_data(self) -> np.ndarray:
        """Return the current spectrum as ``frequency_bin_count`` bytes."""
        with self._lock:
            block = self._time_domain.copy()

        spectrum = np.abs(np.fft.rfft(block * self._window))[:self.frequency_bin_count] / self.fft_size
        self._smoothed = self.smoothing * self._smoothed + (1.0 - self.smoothing) * spectrum

        with np.errstate(divide="ignore"):
            decibels = 20.0 * np.log10(self._smoothed)
        scaled = (decibels - self.MIN_DECIBELS) * (255.0 / (self.MAX_DECIBELS - self.MIN_DECIBELS))
        scaled = np.nan_to_num(scaled, nan=0.0, neginf=0.0, posinf=255.0)
        return np.clip(scaled, 0, 255).astype(np.uint8)


class AudioEnergyMonitor:
    """Turns a live stream into one EnergyVerdict per tick."""

    ENERGY_THRESHOLD = 15  # 0-255, at or below means silence

    def __init__(
        self,
        energy_threshold: float = ENERGY_THRESHOLD,
        fft_size: int = 256,
        smoothing: float = 0.8,
        channels: int = 1,
    ):
        self.energy_threshold = energy_threshold
        self.fft_size = fft_size
        self.smoothing = smoothing
        self.channels = channels
        self.node: Optional[AnalysisNode] = None

    @property
    def is_attached(self) -> bool:
        return self.node is not None

    def attach(self, stream) -> None:
        """Connect a new analysis node to ``stream``.

        Raises:
            AudioSetupError: If the stream cannot feed analysis or the node
                cannot be built
        """
        if self.node is not None:
            raise AudioSetupError("Monitor is already attached to a stream")
        if not hasattr(stream, "add_sink") or not getattr(stream, "is_active", False):
            raise AudioSetupError("Stream does not support audio analysis")

        node = AnalysisNode(fft_size=self.fft_size, smoothing=self.smoothing, channels=self.channels)
        node.connect(stream)
        self.node = node
        logger.debug(f"Energy monitor attached: fft_size={self.fft_size}, threshold={self.energy_threshold}")

    def sample_once(self) -> EnergyVerdict:
        """Read the current spectrum and classify it as sound or silence."""
        if self.node is None:
            raise AudioSetupError("Monitor is not attached to a stream")

        data = self.node.get_byte_frequency_data()
        level = float(data.mean())
        return EnergyVerdict(
            level=level,
            threshold=self.energy_threshold,
            is_silent=level <= self.energy_threshold,
        )

    def detach(self) -> None:
        """Disconnect the analysis node. Safe to call repeatedly."""
        node, self.node = self.node, None
        if node is None:
            return
        node.disconnect()
        logger.debug("Energy monitor detached")
