"""Tests for log-safe identifier helper functions."""

from __future__ import annotations

from study_companion.core.identifiers import (
    clear_log_safe_user_cache,
    get_log_safe_user_id,
    log_safe_user_context,
)
from study_companion.core.logging import get_log_user_id

PSEUDONYM_LENGTH = 16


def test_get_log_safe_user_id_is_deterministic(monkeypatch) -> None:
    """Same user id + secret should always yield the same pseudonym."""
    monkeypatch.setenv("LOG_PSEUDONYM_SECRET", "deterministic-secret")
    clear_log_safe_user_cache()

    token_first = get_log_safe_user_id("0b6f2c1e-user")
    token_second = get_log_safe_user_id("0b6f2c1e-user")

    assert token_first == token_second
    assert len(token_first) == PSEUDONYM_LENGTH
    assert "0b6f2c1e" not in token_first
    clear_log_safe_user_cache()


def test_get_log_safe_user_id_varies_by_input_and_secret(monkeypatch) -> None:
    """Changing the user id or secret should change the pseudonym output."""
    monkeypatch.setenv("LOG_PSEUDONYM_SECRET", "deterministic-secret")
    clear_log_safe_user_cache()
    base_token = get_log_safe_user_id("user-a")

    clear_log_safe_user_cache()
    monkeypatch.setenv("LOG_PSEUDONYM_SECRET", "alternate-secret")
    different_secret_token = get_log_safe_user_id("user-a")

    clear_log_safe_user_cache()
    monkeypatch.setenv("LOG_PSEUDONYM_SECRET", "deterministic-secret")
    different_user_token = get_log_safe_user_id("user-b")

    assert base_token != different_secret_token
    assert base_token != different_user_token
    assert get_log_safe_user_id("user-a", secret="explicit") != base_token
    clear_log_safe_user_cache()


def test_log_safe_user_context_binds_pseudonym() -> None:
    """The context binds the pseudonym, never the raw id."""
    with log_safe_user_context("raw-user-id"):
        bound = get_log_user_id()
        assert bound == get_log_safe_user_id("raw-user-id")
        assert bound != "raw-user-id"
    assert get_log_user_id() is None
