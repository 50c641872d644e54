"""Abstract base class for voice-command parsers."""

from abc import ABC, abstractmethod

from ..models.task import ParsedTaskResult


class AbstractTaskParser(ABC):
    """Turns an encoded audio clip into structured task fields."""

    @abstractmethod
    async def parse(self, audio_base64: str, mime_type: str) -> ParsedTaskResult:
        """Transcribe and parse a spoken task command.

        Args:
            audio_base64: Base64-encoded audio clip
            mime_type: MIME type of the encoded clip (e.g. 'audio/wav')

        Returns:
            ParsedTaskResult with the extracted fields and transcript

        Raises:
            ParseError: If the service fails or returns an unusable response
        """
        pass
