"""Recorder lifecycle models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class RecorderState(Enum):
    """Lifecycle state of a RecorderController."""
    IDLE = "idle"
    RECORDING = "recording"
    FINALIZING = "finalizing"


@dataclass
class RecorderEvent:
    """Recorder lifecycle event published to front-ends."""
    event_type: str  # "state_changed", "processing_started", "processing_completed", "error"
    state: RecorderState
    session_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)
