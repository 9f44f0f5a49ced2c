"""Identifier helpers for producing log-safe user tokens."""

from __future__ import annotations

import base64
import hashlib
import hmac
import os
from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator, Optional

from study_companion.core.config import settings
from study_companion.core.logging import log_user_id_context


def _encode_digest(digest: bytes) -> str:
    """URL-safe base64 encoding without padding."""
    token = base64.urlsafe_b64encode(digest).decode("ascii")
    return token.rstrip("=")


def _pseudonymize(value: str, secret: str, length: int = 16) -> str:
    digest = hmac.new(secret.encode("utf-8"), value.encode("utf-8"), hashlib.sha256).digest()
    return _encode_digest(digest)[:length]


def _resolve_secret(secret: Optional[str]) -> str:
    """Return the pseudonym secret: explicit value, then env, then settings."""
    if secret:
        return secret
    resolved = os.environ.get("LOG_PSEUDONYM_SECRET") or settings.LOG_PSEUDONYM_SECRET
    if not resolved:
        raise RuntimeError("LOG_PSEUDONYM_SECRET must be configured.")
    return resolved


@lru_cache(maxsize=4096)
def _pseudonym_cache(user_id: str, secret: str) -> str:
    return _pseudonymize(user_id, secret)


def get_log_safe_user_id(user_id: str, *, secret: Optional[str] = None) -> str:
    """Return a deterministic, non-reversible account token suitable for logs."""
    return _pseudonym_cache(user_id, _resolve_secret(secret))


def clear_log_safe_user_cache() -> None:
    """Clear cached pseudonyms (used by tests and after secret rotation)."""
    _pseudonym_cache.cache_clear()


@contextmanager
def log_safe_user_context(user_id: Optional[str]) -> Iterator[None]:
    """Bind the pseudonym of ``user_id`` to log records for the block."""
    token = get_log_safe_user_id(user_id) if user_id else None
    with log_user_id_context(token):
        yield


__all__ = ["get_log_safe_user_id", "clear_log_safe_user_cache", "log_safe_user_context"]
