"""Classification of provider errors.

The single place that decides whether a failed call means "this credential
is dead" or "the service is briefly down". Both the credential pool (health
tracking) and the call executor (retry policy) ask this module, so they
cannot disagree.
"""

import logging
from typing import Any, Iterable, Optional

from genpool.domain.errors import ErrorClass

logger = logging.getLogger(__name__)

# Substrings in an error message that mean the credential itself is rejected.
HARD_INVALID_MARKERS = (
    "api key expired",
    "invalid_argument",
    "api_key_invalid",
    "invalid api key",
    "invalid_api_key",
    "incorrect api key",
    "invalid key",
)
# Status codes that always mean the credential was rejected. A 400 counts
# only together with one of the markers above; on its own it is a payload fault.
HARD_INVALID_STATUS = (401,)
# SDK error codes (OpenAI/Groq `error.code`) for a rejected key.
HARD_INVALID_CODES = ("invalid_api_key", "api_key_invalid")

TRANSIENT_MARKERS = (
    "503",
    "service unavailable",
    "unavailable",
    "overloaded",
    "rate limit",
    "rate_limit",
    "too many requests",
)
TRANSIENT_STATUS = (429, 503)


def _status_of(error: Any) -> Optional[int]:
    """Best-effort extraction of an HTTP-ish status from an SDK error."""
    for attr in ("status_code", "status", "code"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str) and value.isdigit():
            return int(value)
    response = getattr(error, "response", None)
    status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


def _message_of(error: Any) -> str:
    parts = [str(error)]
    message = getattr(error, "message", None)
    if isinstance(message, str) and message not in parts:
        parts.append(message)
    return " ".join(parts).lower()


def _error_code(error: Any) -> str:
    code = getattr(error, "code", None)
    return code.lower() if isinstance(code, str) else ""


def _detail_reasons(error: Any) -> Iterable[str]:
    """Yields `reason` fields from Google-style error details, if any."""
    details = getattr(error, "details", None)
    body = getattr(error, "body", None)
    if details is None and isinstance(body, dict):
        inner = body.get("error", body)
        details = inner.get("details") if isinstance(inner, dict) else None
    if not isinstance(details, list):
        return ()
    return [str(d.get("reason", "")) for d in details if isinstance(d, dict)]


def classify_error(error: Any) -> ErrorClass:
    """Classifies a failed provider call.

    Args:
        error: The exception (or error-like object) raised by the provider.

    Returns:
        HARD_INVALID when the credential was rejected as expired/invalid,
        TRANSIENT_UNAVAILABLE for temporary service-wide conditions,
        UNCLASSIFIED otherwise.
    """
    if error is None:
        return ErrorClass.UNCLASSIFIED

    status = _status_of(error)
    message = _message_of(error)

    # Credential rejection wins over everything else.
    if status in HARD_INVALID_STATUS:
        return ErrorClass.HARD_INVALID
    if any(marker in message for marker in HARD_INVALID_MARKERS):
        return ErrorClass.HARD_INVALID
    if _error_code(error) in HARD_INVALID_CODES:
        return ErrorClass.HARD_INVALID
    if any(reason == "API_KEY_INVALID" for reason in _detail_reasons(error)):
        return ErrorClass.HARD_INVALID

    if status in TRANSIENT_STATUS:
        return ErrorClass.TRANSIENT_UNAVAILABLE
    if any(marker in message for marker in TRANSIENT_MARKERS):
        return ErrorClass.TRANSIENT_UNAVAILABLE

    return ErrorClass.UNCLASSIFIED


def is_hard_invalid(error: Any) -> bool:
    return classify_error(error) is ErrorClass.HARD_INVALID
