"""Services layer for VoiceTask application logic."""

from .recorder_controller import RecorderController
from .recording_session import RecordingSession
from .publisher import RecorderEventPublisher

__all__ = [
    "RecorderController",
    "RecordingSession",
    "RecorderEventPublisher",
]
