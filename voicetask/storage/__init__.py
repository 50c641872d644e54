"""Local storage for VoiceTask."""

from .task_store import TaskStore

__all__ = ["TaskStore"]
