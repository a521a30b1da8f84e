"""Tests for cortex configuration and the exception hierarchy."""

import logging
from pathlib import Path

from cortex.config.settings import (
    get_log_level,
    get_prefs_path,
    get_undo_window,
    validate_all_env_vars,
    validate_env_var,
)
from cortex.exceptions import PreferenceWriteError, RemoteMutationError, ValidationError


def test_prefs_path_respects_env(isolated_config):
    assert get_prefs_path() == isolated_config


def test_prefs_path_default(monkeypatch, tmp_path):
    monkeypatch.delenv("CORTEX_PREFS_FILE")
    monkeypatch.setattr("cortex.config.settings.CORTEX_CONFIG_DIR", tmp_path / "cfg")
    path = get_prefs_path()
    assert path == tmp_path / "cfg" / "preferences.json"
    assert path.parent.is_dir()


def test_undo_window_default():
    assert get_undo_window() == 6.0


def test_undo_window_from_env(monkeypatch):
    monkeypatch.setenv("CORTEX_UNDO_WINDOW", "2.5")
    assert get_undo_window() == 2.5


def test_invalid_undo_window_falls_back(monkeypatch):
    monkeypatch.setenv("CORTEX_UNDO_WINDOW", "-1")
    assert get_undo_window() == 6.0
    assert validate_all_env_vars()


def test_log_level(monkeypatch):
    assert get_log_level() == logging.INFO
    monkeypatch.setenv("CORTEX_LOG_LEVEL", "debug")
    assert get_log_level() == logging.DEBUG


def test_validate_env_var():
    assert validate_env_var("CORTEX_LOG_LEVEL", "LOUD")[0] is False
    assert validate_env_var("CORTEX_PREFS_FILE", "/anywhere") == (True, None)
    assert validate_env_var("UNRELATED", "x") == (True, None)


class TestExceptions:
    def test_context_in_message(self):
        error = ValidationError("Bad input", field="name")
        assert str(error) == "Bad input (field='name')"
        assert error.retryable is False

    def test_write_errors_are_retryable(self):
        assert PreferenceWriteError(path=str(Path("/tmp/x"))).retryable is True

    def test_remote_mutation_error_aggregates(self):
        error = RemoteMutationError("delete", {"4": RuntimeError("a"), "2": RuntimeError("b")})
        assert error.message == "Failed to delete 2 items"
        assert error.context["ids"] == ["2", "4"]
        assert set(error.failures) == {"2", "4"}


def test_cli_logging_writes_to_rotating_file(tmp_path):
    from logging.handlers import RotatingFileHandler

    from cortex.utils.logging_utils import setup_cli_logging

    cortex_logger = setup_cli_logging(verbose=False, quiet=True)
    assert cortex_logger.level == logging.ERROR
    assert any(isinstance(h, RotatingFileHandler) for h in cortex_logger.handlers)
