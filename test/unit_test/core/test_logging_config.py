"""Unit tests for logging configuration module.

Tests verify that setup_logging works with different log levels, formats and
file logging options, and that it honors the configured default level.
"""

import logging
from pathlib import Path

import pytest

from prompt_engine.core.logging_config import (
    DETAILED_FORMAT,
    JSON_FORMAT,
    MODULE_LOG_LEVELS,
    SIMPLE_FORMAT,
    get_logger,
    resolve_format,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level
    module_levels = {name: logging.getLogger(name).level for name in MODULE_LOG_LEVELS}
    yield
    for name, module_level in module_levels.items():
        logging.getLogger(name).setLevel(module_level)
    for handler in root_logger.handlers[:]:
        if handler not in handlers:
            root_logger.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root_logger.handlers:
            root_logger.addHandler(handler)
    root_logger.setLevel(level)


def _console_handler() -> logging.Handler:
    root_logger = logging.getLogger()
    return next(
        h
        for h in root_logger.handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    )


def _file_handler():
    root_logger = logging.getLogger()
    return next((h for h in root_logger.handlers if isinstance(h, logging.FileHandler)), None)


class TestSetupLoggingLogLevels:
    """Test setup_logging with different log levels."""

    @pytest.mark.parametrize(
        "log_level,expected_level",
        [
            ("DEBUG", logging.DEBUG),
            ("INFO", logging.INFO),
            ("WARNING", logging.WARNING),
            ("ERROR", logging.ERROR),
            ("critical", logging.CRITICAL),
        ],
    )
    def test_setup_logging_with_different_levels(self, log_level, expected_level):
        setup_logging(log_level=log_level)

        assert _console_handler().level == expected_level

    def test_setup_logging_default_level(self):
        """Without arguments the level comes from settings (INFO)."""
        setup_logging()

        assert _console_handler().level == logging.INFO

    def test_setup_logging_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("PROMPT_ENGINE_LOG_LEVEL", "warning")
        setup_logging()

        assert _console_handler().level == logging.WARNING


class TestSetupLoggingFormats:
    """Test setup_logging with different log formats."""

    @pytest.mark.parametrize(
        "log_format,expected_format",
        [
            ("simple", SIMPLE_FORMAT),
            ("detailed", DETAILED_FORMAT),
            ("JSON", JSON_FORMAT),
        ],
    )
    def test_setup_logging_with_different_formats(self, log_format, expected_format):
        setup_logging(log_format=log_format)

        assert _console_handler().formatter._fmt == expected_format

    def test_setup_logging_default_format(self):
        setup_logging()

        formatter = _console_handler().formatter
        assert formatter._fmt == DETAILED_FORMAT
        assert formatter.datefmt == "%Y-%m-%d %H:%M:%S"

    def test_unknown_format_falls_back_to_detailed(self):
        assert resolve_format("fancy") == DETAILED_FORMAT
        assert resolve_format(None) == DETAILED_FORMAT


class TestSetupLoggingFileHandling:
    """Test setup_logging file logging functionality."""

    def test_no_file_handler_by_default(self):
        setup_logging()

        assert _file_handler() is None

    def test_file_handler_always_debug(self, tmp_path):
        setup_logging(log_level="ERROR", log_file=tmp_path / "engine.log")

        file_handler = _file_handler()
        assert file_handler is not None
        assert file_handler.level == logging.DEBUG

    def test_creates_missing_log_directory(self, tmp_path):
        log_file = tmp_path / "new_logs" / "engine.log"
        setup_logging(log_file=str(log_file))

        assert log_file.parent.exists()
        get_logger("prompt_engine.test").info("written to file")
        _file_handler().flush()
        assert "written to file" in Path(log_file).read_text()


class TestSetupLoggingHandlerManagement:
    """Test setup_logging handler management."""

    def test_repeated_setup_does_not_duplicate_handlers(self):
        setup_logging()
        count = len(logging.getLogger().handlers)
        setup_logging()

        assert len(logging.getLogger().handlers) == count

    def test_module_levels_applied(self):
        setup_logging(log_level="DEBUG")

        for module_name, module_level in MODULE_LOG_LEVELS.items():
            assert logging.getLogger(module_name).level == logging.getLevelName(module_level)
        assert logging.getLogger("httpx").level == logging.WARNING


class TestGetLogger:
    """Test get_logger function."""

    def test_get_logger_returns_named_logger(self):
        logger = get_logger("prompt_engine.prompt.manager")

        assert isinstance(logger, logging.Logger)
        assert logger.name == "prompt_engine.prompt.manager"
        assert logger is logging.getLogger("prompt_engine.prompt.manager")
