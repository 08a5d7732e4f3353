"""
Error Taxonomy

Permission and capture-start failures are the only errors that reach the
caller. Everything raised inside the steady-state recording loop is caught
where it happens and degraded to a safe default.
"""


class CoachingError(Exception):
    """Base class for all engine errors."""


class MicrophonePermissionError(CoachingError):
    """Microphone access was denied. Fatal to initialize(), never retried."""


class CaptureDeviceError(CoachingError):
    """The capture device could not open a segment."""


class TranscriptionError(CoachingError):
    """The speech-to-text service failed (HTTP or network)."""


class AlreadyRunningError(CoachingError):
    """A recording session is already active."""


class InsightParseError(CoachingError):
    """The insight service returned a structure that could not be parsed."""
