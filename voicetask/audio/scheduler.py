"""Frame scheduling primitives for the energy-sampling loop."""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional


def monotonic_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000.0


class FrameScheduler(ABC):
    """Schedules one callback per frame and hands back a cancellable handle."""

    @abstractmethod
    def request_frame(self, callback: Callable[[], None]):
        """Run ``callback`` on the next frame.

        Returns:
            A handle whose ``cancel()`` prevents the callback from running
        """
        pass


class AsyncioFrameScheduler(FrameScheduler):
    """Frame scheduler driven by the asyncio event loop at a fixed rate."""

    def __init__(self, frame_rate: float = 60.0, loop: Optional[asyncio.AbstractEventLoop] = None):
        if frame_rate <= 0:
            raise ValueError("Frame rate must be positive")
        self.frame_rate = frame_rate
        self.frame_interval = 1.0 / frame_rate
        self._loop = loop

    def request_frame(self, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(self.frame_interval, callback)
