"""
Unit tests for sublingo/log_setup.py.
"""

import io
import logging
import os

import pytest

from sublingo.log_setup import NOISY_LOGGERS, parse_log_level, setup_logging

pytestmark = pytest.mark.usefixtures("isolated_logging")


class TestParseLogLevel:
    """Test level name parsing."""

    @pytest.mark.parametrize("name, expected", [
        ("DEBUG", logging.DEBUG),
        ("warning", logging.WARNING),
        (" error ", logging.ERROR),
        ("nonsense", logging.INFO),
        (None, logging.INFO),
    ])
    def test_parse(self, name, expected):
        assert parse_log_level(name) == expected


class TestSetupLogging:
    """Test handler installation."""

    def test_console_and_file(self, tmp_path):
        console = io.StringIO()
        setup_logging(logging.INFO, str(tmp_path / "logs"), "test.log", console_stream=console)
        logging.getLogger("sublingo.test").info("hello there")

        assert "hello there" in console.getvalue()
        log_path = tmp_path / "logs" / "test.log"
        assert os.path.exists(log_path)
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "hello there" in log_path.read_text(encoding="utf-8")

    def test_reconfigure_replaces_handlers(self, tmp_path):
        setup_logging(logging.INFO, str(tmp_path / "a"), "a.log", console_stream=io.StringIO())
        setup_logging(logging.DEBUG, str(tmp_path / "b"), "b.log", console_stream=io.StringIO())
        root = logging.getLogger()
        assert len(root.handlers) == 2
        assert root.level == logging.DEBUG

    def test_level_filters_console(self, tmp_path):
        console = io.StringIO()
        setup_logging(logging.WARNING, str(tmp_path), "w.log", console_stream=console)
        logging.getLogger("sublingo.test").info("quiet")
        logging.getLogger("sublingo.test").warning("loud")
        assert "quiet" not in console.getvalue()
        assert "loud" in console.getvalue()

    def test_noisy_loggers_clamped(self, tmp_path):
        setup_logging(logging.DEBUG, str(tmp_path), "n.log", console_stream=io.StringIO())
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_unusable_log_dir_keeps_console(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        console = io.StringIO()
        setup_logging(logging.INFO, str(blocker), "x.log", console_stream=console)
        assert len(logging.getLogger().handlers) == 1
        assert "Failed to set up file logging" in console.getvalue()
