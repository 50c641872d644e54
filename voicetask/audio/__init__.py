"""Audio capture, analysis and silence detection."""

from .capture import CaptureSession
from .monitor import AudioEnergyMonitor, AnalysisNode
from .scheduler import FrameScheduler, AsyncioFrameScheduler, monotonic_ms
from .silence import SilenceTerminationPolicy
from .stream import MicrophoneStream

__all__ = [
    'CaptureSession',
    'AudioEnergyMonitor',
    'AnalysisNode',
    'FrameScheduler',
    'AsyncioFrameScheduler',
    'monotonic_ms',
    'SilenceTerminationPolicy',
    'MicrophoneStream',
]
