"""Silence-duration policy that decides when a recording should stop."""

import logging
from typing import Optional

from ..models.audio import EnergyVerdict

logger = logging.getLogger(__name__)


class SilenceTerminationPolicy:
    """Fires a stop decision once silence has lasted longer than the limit.

    The clock starts at ``start()`` rather than at minus infinity, so a
    recording that opens in silence still gets the full grace window.
    """

    SILENCE_DURATION_MS = 2000

    def __init__(self, silence_duration_ms: float = SILENCE_DURATION_MS):
        self.silence_duration_ms = silence_duration_ms
        self.last_sound_ms: Optional[float] = None
        self.active = False

    def start(self, now: float) -> None:
        """Reset the silence clock to ``now`` (milliseconds)."""
        self.last_sound_ms = now
        self.active = True

    def observe(self, verdict: EnergyVerdict, now: float) -> bool:
        """Fold one tick into the clock and return whether to stop."""
        if not self.active:
            return False
        if verdict.is_sound:
            self.last_sound_ms = now
        return (now - self.last_sound_ms) > self.silence_duration_ms

    def silence_elapsed_ms(self, now: float) -> float:
        if self.last_sound_ms is None:
            return 0.0
        return now - self.last_sound_ms

    def stop(self) -> None:
        self.active = False
