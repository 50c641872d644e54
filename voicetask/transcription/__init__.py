"""Transcription and task parsing for VoiceTask."""

from .base import AbstractTaskParser
from .gemini_parser import GeminiTaskParser
from ..models.task import ParsedTaskResult

__all__ = [
    "AbstractTaskParser",
    "GeminiTaskParser",
    "ParsedTaskResult",
]
