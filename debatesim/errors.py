"""Exceptions raised outside the provider layer."""


class DebateSimError(Exception):
    """Base exception for debatesim errors"""


class ValidationError(DebateSimError):
    """Raised when a topic, side, or message is missing or invalid.

    Always raised before any provider call is made.
    """


class MalformedTranscript(DebateSimError):
    """Raised when a persisted transcript cannot be decoded"""


class PersistenceFailure(DebateSimError):
    """Raised when the transcript store cannot read or write"""

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key
