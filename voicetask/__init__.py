"""VoiceTask - voice-driven task capture with silence-terminated recording."""

__version__ = "0.1.0"
