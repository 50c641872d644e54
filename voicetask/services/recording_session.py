"""The resources owned by one active recording."""

import logging
import random
import string
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..audio.capture import CaptureSession
from ..audio.monitor import AudioEnergyMonitor
from ..audio.silence import SilenceTerminationPolicy

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    """Timestamp-based session ID with a random suffix."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    random_suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=4))
    return f"{timestamp}_{random_suffix}"


@dataclass
class RecordingSession:
    """One recording's microphone, analyser, silence clock and frame handle."""
    session_id: str
    capture: CaptureSession
    monitor: AudioEnergyMonitor
    policy: SilenceTerminationPolicy
    started_at: float  # Clock reading in milliseconds
    frame_handle: Optional[Any] = None
    released: bool = False

    def cancel_frame(self) -> None:
        handle, self.frame_handle = self.frame_handle, None
        if handle is not None:
            handle.cancel()

    def release_all(self) -> bool:
        """Release every owned resource exactly once.

        Each step runs even if an earlier one fails.

        Returns:
            True if this call performed the release, False if already released
        """
        if self.released:
            return False
        self.released = True

        steps = (
            ("frame callback", self.cancel_frame),
            ("energy monitor", self.monitor.detach),
            ("silence clock", self.policy.stop),
            ("microphone", self.capture.release),
        )
        for name, step in steps:
            try:
                step()
            except Exception as e:
                logger.error(f"Error releasing {name} for session {self.session_id}: {e}")

        logger.debug(f"Session {self.session_id} resources released")
        return True
