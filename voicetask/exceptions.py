"""Exception hierarchy for VoiceTask.

All application errors inherit from VoiceTaskError so front-ends can
surface ``detail`` without knowing which stage failed.
"""


class VoiceTaskError(Exception):
    """Base exception for all VoiceTask errors."""

    def __init__(self, detail: str = "An unexpected error occurred", code: str = "VOICETASK_ERROR"):
        self.detail = detail
        self.code = code
        super().__init__(detail)


class MicrophoneAccessError(VoiceTaskError):
    """Raised when the microphone cannot be acquired."""

    user_message = "Microphone access denied or not available."


class PermissionDeniedError(MicrophoneAccessError):
    """Raised when the user or platform refuses microphone access."""

    def __init__(self, detail: str = "Microphone permission denied"):
        super().__init__(detail=detail, code="PERMISSION_DENIED")


class DeviceUnavailableError(MicrophoneAccessError):
    """Raised when no usable audio input device exists."""

    def __init__(self, detail: str = "No audio input device available"):
        super().__init__(detail=detail, code="DEVICE_UNAVAILABLE")


class AudioSetupError(VoiceTaskError):
    """Raised when the audio analysis pipeline cannot be built."""

    def __init__(self, detail: str = "Audio analysis is not available"):
        super().__init__(detail=detail, code="AUDIO_SETUP_ERROR")


class EncodingError(VoiceTaskError):
    """Raised when clip assembly is invoked out of sequence."""

    def __init__(self, detail: str = "Clip assembly failed"):
        super().__init__(detail=detail, code="ENCODING_ERROR")


class ParseError(VoiceTaskError):
    """Raised when the transcription/parsing service fails."""

    user_message = "Failed to analyze voice command. Please try again."

    def __init__(self, detail: str = "Failed to parse voice command."):
        super().__init__(detail=detail, code="PARSE_ERROR")
