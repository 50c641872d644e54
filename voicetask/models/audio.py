"""Audio-related data models."""

import base64
from dataclasses import dataclass


@dataclass(frozen=True)
class EnergyVerdict:
    """Sound/silence classification of one monitoring tick."""
    level: float  # Mean frequency-bin magnitude, 0-255
    threshold: float
    is_silent: bool

    @property
    def is_sound(self) -> bool:
        return not self.is_silent


@dataclass
class AudioClip:
    """A finished, encoded recording ready for transcription."""
    data: bytes
    mime_type: str
    sample_rate: int
    channels: int
    fragment_count: int
    pcm_bytes: int = 0  # Raw PCM payload size, excluding container header
    sample_width: int = 2

    @property
    def duration_seconds(self) -> float:
        bytes_per_second = self.sample_rate * self.channels * self.sample_width
        if bytes_per_second == 0:
            return 0.0
        return self.pcm_bytes / bytes_per_second

    def to_base64(self) -> str:
        """Encode the clip payload as base64 text for inline upload."""
        return base64.b64encode(self.data).decode("ascii")


@dataclass
class AudioStats:
    """Capture statistics for a recording session."""
    is_recording: bool
    duration_seconds: float
    sample_rate: int
    chunk_size: int
    total_chunks: int
