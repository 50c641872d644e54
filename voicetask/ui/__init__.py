"""Terminal user interface for VoiceTask."""

from .voice_screen import VoiceTaskScreen

__all__ = ["VoiceTaskScreen"]
