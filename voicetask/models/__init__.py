"""Data models for the VoiceTask application."""

from .audio import EnergyVerdict, AudioClip, AudioStats
from .recording import RecorderState, RecorderEvent
from .task import Task, TaskStatus, TaskPriority, ParsedTaskResult

__all__ = [
    "EnergyVerdict",
    "AudioClip",
    "AudioStats",
    "RecorderState",
    "RecorderEvent",
    # Task models
    "Task",
    "TaskStatus",
    "TaskPriority",
    "ParsedTaskResult",
]
