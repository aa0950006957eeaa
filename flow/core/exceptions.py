"""
Custom exceptions for the Flow ambient audio engine.
"""


class FlowError(Exception):
    """Base exception for all Flow errors."""

    def __init__(self, message: str, code: str = "FLOW_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


class ValidationError(FlowError):
    """Invalid layer configuration or parameter."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="VALIDATION_ERROR")


class SynthesisError(FlowError):
    """Waveform generation failed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="SYNTHESIS_ERROR")


class ClipEncodingError(FlowError):
    """PCM container could not be written or parsed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="ENCODING_ERROR")


class AudioBackendError(FlowError):
    """Audio output device missing or failing."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="BACKEND_UNAVAILABLE")
