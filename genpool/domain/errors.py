"""Error taxonomy for the resilient call layer.

Per-attempt credential faults are absorbed into pool state; only the
TerminalError subclasses below ever reach the caller of a logical call.
"""

import enum
from typing import Optional


class ErrorClass(str, enum.Enum):
    """Classification of a single failed provider call."""
    HARD_INVALID = "hard_invalid"                    # Credential expired/revoked/rejected
    TRANSIENT_UNAVAILABLE = "transient_unavailable"  # Service-wide outage or throttling
    UNCLASSIFIED = "unclassified"


class TerminalError(Exception):
    """Raised when a logical call could not be completed."""

    kind = "terminal_error"

    def __init__(self, message: str, attempts: int = 0, credentials_tried: int = 0,
                 last_exception: Optional[BaseException] = None):
        self.attempts = attempts
        self.credentials_tried = credentials_tried
        self.last_exception = last_exception
        super().__init__(message)


class CredentialsExhaustedError(TerminalError):
    """Every usable credential was tried (or rejected) and none succeeded."""

    kind = "credentials_exhausted"


class NoneAvailableError(CredentialsExhaustedError):
    """The pool had no usable credential at selection time."""

    kind = "none_available"


class ServiceUnavailableError(TerminalError):
    """The service kept signalling a transient outage until attempts ran out."""

    kind = "service_unavailable"


class MaxRetryError(TerminalError):
    """Exception raised when max attempts are exceeded on unclassified errors."""

    kind = "max_retries"

    def __init__(self, original_exception: BaseException, attempts: int, credentials_tried: int = 0):
        self.original_exception = original_exception
        super().__init__(
            f"Max attempts ({attempts}) exceeded. Last error: {original_exception}",
            attempts=attempts,
            credentials_tried=credentials_tried,
            last_exception=original_exception,
        )


class InvalidCredentialError(ValueError):
    """A secret failed validation against the live service."""

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason
        super().__init__(f"Invalid API key: {reason or 'Unknown error'}")
