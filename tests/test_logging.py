"""Tests for logging module."""

import logging
import re

from proxylens.config import Config
from proxylens.logging import setup_logging


class TestSetupLogging:
    """Test logging setup."""

    def test_setup_logging_returns_logger(self):
        """Setup returns the package logger."""
        logger = setup_logging(Config())

        assert isinstance(logger, logging.Logger)
        assert logger.name == "proxylens"

    def test_setup_logging_is_idempotent(self):
        """Second call returns the same logger without adding handlers."""
        first = setup_logging(Config())
        handlers = len(first.handlers)
        second = setup_logging(Config(log_level="DEBUG"))

        assert second is first
        assert len(second.handlers) == handlers

    def test_setup_logging_creates_log_file(self, tmp_path):
        """Log file and its directory are created."""
        log_file = tmp_path / "subdir" / "test.log"
        logger = setup_logging(Config(log_file=str(log_file)))
        logger.info("test message")

        assert "test message" in log_file.read_text()

    def test_log_levels_respected(self, tmp_path):
        """Only logs at configured level and above."""
        log_file = tmp_path / "test.log"
        logger = setup_logging(Config(log_file=str(log_file), log_level="WARNING"))
        logger.info("info message")
        logger.warning("warning message")

        content = log_file.read_text()
        assert "info message" not in content
        assert "warning message" in content

    def test_verbose_forces_debug(self, tmp_path):
        """verbose=True logs DEBUG even if config says WARNING."""
        log_file = tmp_path / "test.log"
        logger = setup_logging(
            Config(log_file=str(log_file), log_level="WARNING"), verbose=True
        )
        logger.debug("debug message")

        assert "debug message" in log_file.read_text()

    def test_module_loggers_propagate_to_package_logger(self, tmp_path):
        """Loggers of submodules write to the configured file."""
        log_file = tmp_path / "test.log"
        setup_logging(Config(log_file=str(log_file)))
        logging.getLogger("proxylens.rendezvous.client").info("from client")

        assert "from client" in log_file.read_text()

    def test_log_format_includes_timestamp(self, tmp_path):
        """Log entries have timestamp, level, message."""
        log_file = tmp_path / "test.log"
        logger = setup_logging(Config(log_file=str(log_file)))
        logger.info("test message")

        line = log_file.read_text().strip()
        assert re.match(
            r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} \[INFO\] test message$", line
        )
