"""
Exception classes for the vocabulary review client.

All exceptions inherit from VocabReviewError and provide structured
error information with codes, messages, and optional details.
"""

from typing import Optional


class VocabReviewError(Exception):
    """Base exception for all vocabulary review errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(VocabReviewError):
    """Raised when an intent is rejected before any network call."""

    pass


class LoginRequiredError(VocabReviewError):
    """Base for errors that require the user to log in again."""

    pass


class Unauthenticated(LoginRequiredError):
    """Raised when an operation needs a session and none is held."""

    pass


class Unauthorized(LoginRequiredError):
    """Raised when the server rejects the session token (HTTP 401)."""

    pass


class ApplicationError(VocabReviewError):
    """Raised when the server answers with a non-zero envelope code."""

    pass


class TransportError(VocabReviewError):
    """Raised when a request fails at the network level (no structured message)."""

    pass


class PersistenceError(VocabReviewError):
    """Raised when session persistence fails (file I/O, malformed content)."""

    pass


class TamperingError(PersistenceError):
    """Raised when HMAC validation of the session file fails."""

    pass
