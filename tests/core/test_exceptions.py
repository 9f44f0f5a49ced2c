"""Tests for quota classification of upstream errors."""

from __future__ import annotations

from types import SimpleNamespace

from study_companion.core.exceptions import (
    EnrichmentError,
    ProfileConflictError,
    QuotaExceededError,
    ScriptureApiError,
    is_quota_error,
)

# pylint: disable=missing-function-docstring


class _CodedError(Exception):
    def __init__(self, message: str, code: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.code = code
        self.status_code = status_code


def test_quota_exceeded_error_is_quota() -> None:
    assert is_quota_error(QuotaExceededError("slow down"))


def test_structured_code_and_status_are_preferred() -> None:
    assert is_quota_error(_CodedError("whatever", code="insufficient_quota"))
    assert is_quota_error(ScriptureApiError("busy", status_code=429))
    # A structured non-quota signal wins over a misleading message.
    assert not is_quota_error(_CodedError("quota talk", code="server_error", status_code=500))


def test_message_fallback_only_without_structure() -> None:
    assert is_quota_error(EnrichmentError("Daily QUOTA reached"))
    assert not is_quota_error(EnrichmentError("model overloaded"))


def test_attribute_duck_typing() -> None:
    fake = SimpleNamespace(code="RESOURCE_EXHAUSTED", status_code=None)
    assert is_quota_error(fake)  # type: ignore[arg-type]


def test_conflict_error_carries_constraint() -> None:
    exc = ProfileConflictError("duplicate", constraint="profiles_username_key")
    assert exc.code == "23505"
    assert exc.constraint == "profiles_username_key"
