"""Tests for the logging helpers with correlation ids."""

from __future__ import annotations

import logging
import pathlib
from logging.handlers import RotatingFileHandler
from types import SimpleNamespace
from typing import Any, cast

import pytest

from study_companion.core import logging as core_logging
from study_companion.core.logging import (
    CorrelationIdFilter,
    bind_correlation_id,
    bind_log_user_id,
    correlation_id_context,
    get_correlation_id,
    get_log_user_id,
    get_logger,
    log_user_id_context,
    reset_correlation_id,
    reset_log_user_id,
)

# pylint: disable=missing-function-docstring


def test_correlation_filter_attaches_context() -> None:
    cid_token = bind_correlation_id("abc123")
    user_token = bind_log_user_id("safe-user")
    try:
        record = logging.LogRecord(
            name="test",
            level=logging.INFO,
            pathname=__file__,
            lineno=10,
            msg="hello",
            args=None,
            exc_info=None,
        )
        assert CorrelationIdFilter().filter(record) is True
        record_any = cast(Any, record)
        assert record_any.correlation_id == "abc123"
        assert record_any.log_user_id == "safe-user"
    finally:
        reset_log_user_id(user_token)
        reset_correlation_id(cid_token)


def test_filter_uses_placeholder_without_context() -> None:
    record = logging.LogRecord("test", logging.INFO, __file__, 1, "hi", None, None)
    CorrelationIdFilter().filter(record)
    assert cast(Any, record).correlation_id == "-"
    assert cast(Any, record).log_user_id == "-"


def test_context_managers_restore_state() -> None:
    with correlation_id_context("ctx"), correlation_id_context("nested"), log_user_id_context("u"):
        assert get_correlation_id() == "nested"
        assert get_log_user_id() == "u"
    assert get_correlation_id() is None
    assert get_log_user_id() is None


def test_get_logger_installs_stream_and_rotating_handlers() -> None:
    logger = get_logger("study_companion.tests.logging")
    kinds = {type(handler) for handler in logger.handlers}
    assert RotatingFileHandler in kinds
    assert logging.StreamHandler in kinds
    # A second call must not stack duplicate handlers.
    assert len(get_logger("study_companion.tests.logging").handlers) == len(logger.handlers)


def _make_settings(log_dir: pathlib.Path | None, data_dir: pathlib.Path) -> SimpleNamespace:
    return SimpleNamespace(
        STUDY_COMPANION_LOG_LEVEL="info",
        STUDY_COMPANION_LOG_DIR=log_dir,
        DATA_DIR=data_dir,
    )


def test_resolve_logs_dir_prefers_override(
    tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    override = tmp_path / "custom-logs"
    monkeypatch.setattr(core_logging, "settings", _make_settings(override, tmp_path / "data"))
    monkeypatch.setattr(core_logging, "ROOT_DIR", tmp_path / "app")
    monkeypatch.setattr(core_logging, "BASE_DIR", tmp_path / "app" / "pkg")

    resolved = core_logging._resolve_logs_dir()  # pylint: disable=protected-access
    assert resolved == override
    assert resolved.exists()


def test_resolve_logs_dir_skips_unwritable_paths(
    tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    override = tmp_path / "override"
    root_dir = tmp_path / "root"
    monkeypatch.setattr(core_logging, "settings", _make_settings(override, tmp_path / "data"))
    monkeypatch.setattr(core_logging, "ROOT_DIR", root_dir)
    monkeypatch.setattr(core_logging, "BASE_DIR", root_dir / "pkg")

    original_mkdir = pathlib.Path.mkdir

    def guarded_mkdir(path_obj: pathlib.Path, *args, **kwargs):
        if path_obj == override:
            raise PermissionError("unwritable")
        return original_mkdir(path_obj, *args, **kwargs)

    monkeypatch.setattr(pathlib.Path, "mkdir", guarded_mkdir)

    resolved = core_logging._resolve_logs_dir()  # pylint: disable=protected-access
    assert resolved == root_dir / "logs"
