"""
Custom exceptions for the Discord Connect Receiver system.

This module defines all custom exceptions used throughout the system,
providing clear error categorization and handling.
"""


class ReceiverError(Exception):
    """Base exception for all Connect Receiver related errors."""

    pass


class ConfigError(ReceiverError):
    """Raised for configuration faults (missing binary, invalid values).

    Never retried; surfaced verbatim to the caller.
    """

    pass


class ResourceError(ReceiverError):
    """Raised when the named pipe cannot be created or repaired."""

    pass


class ProcessExitError(ReceiverError):
    """Raised when a supervised process fails to spawn or exits unexpectedly."""

    def __init__(self, message: str, returncode=None):
        super().__init__(message)
        self.returncode = returncode


class PipelineError(ReceiverError):
    """Raised when the audio pipeline cannot be built."""

    pass


class TransportError(ReceiverError):
    """Raised for voice transport failures."""

    pass


class JoinError(TransportError):
    """Raised when joining a voice channel fails."""

    pass


class JoinTimeoutError(JoinError):
    """Raised when the voice connection does not become ready in time."""

    pass


class NotConnectedError(TransportError):
    """Raised when playback is requested without a ready voice connection."""

    pass
