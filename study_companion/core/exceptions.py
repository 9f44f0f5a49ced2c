"""Core exception types shared across layers."""

from __future__ import annotations

from typing import Optional

QUOTA_ERROR_CODES = frozenset({"insufficient_quota", "rate_limit_exceeded", "RESOURCE_EXHAUSTED"})
HTTP_TOO_MANY_REQUESTS = 429


class StudyCompanionError(Exception):
    """Base class for errors raised by the study companion core."""


class ProfileQueryError(StudyCompanionError):
    """Raised when the profile backend rejects a query for a reason other than "not found"."""

    def __init__(self, message: str, *, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code


class ProfileConflictError(ProfileQueryError):
    """Raised when a profile insert violates a uniqueness constraint."""

    def __init__(self, message: str, *, constraint: Optional[str] = None) -> None:
        super().__init__(message, code="23505")
        self.constraint = constraint


class ProfileFetchError(StudyCompanionError):
    """Raised when a resilient profile fetch hits a hard error or a timeout."""


class AuthError(StudyCompanionError):
    """Raised when the authentication backend rejects a request."""


class ScriptureApiError(StudyCompanionError):
    """Raised when the scripture text API answers with an error or a malformed payload."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PassageNotFoundError(ScriptureApiError):
    """Raised when the scripture text API cannot resolve a reference."""


class QuotaExceededError(StudyCompanionError):
    """Raised when an upstream service declines because of rate or usage limits."""


class EnrichmentError(StudyCompanionError):
    """Raised when the AI service fails to produce study content."""


def is_quota_error(exc: BaseException) -> bool:
    """Return True when ``exc`` signals exhausted quota or rate limits.

    Structured signals are preferred: our own ``QuotaExceededError``, an SDK
    error ``code`` in ``QUOTA_ERROR_CODES`` or an HTTP 429 status. Message
    inspection is the last resort for collaborators that expose neither.
    """
    if isinstance(exc, QuotaExceededError):
        return True
    code = getattr(exc, "code", None)
    if isinstance(code, str) and code in QUOTA_ERROR_CODES:
        return True
    status = getattr(exc, "status_code", None)
    if isinstance(status, int) and status == HTTP_TOO_MANY_REQUESTS:
        return True
    if code is None and status is None:
        return "quota" in str(exc).lower()
    return False


__all__ = [
    "StudyCompanionError",
    "ProfileQueryError",
    "ProfileConflictError",
    "ProfileFetchError",
    "AuthError",
    "ScriptureApiError",
    "PassageNotFoundError",
    "QuotaExceededError",
    "EnrichmentError",
    "is_quota_error",
    "QUOTA_ERROR_CODES",
]
