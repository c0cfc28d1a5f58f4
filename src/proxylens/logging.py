"""Logging configuration for proxylens.

Key material, plaintext payloads and cookies are never logged by any
module; channel addresses are logged at INFO.
"""

import logging
from pathlib import Path

from proxylens.config import Config

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_logger: logging.Logger | None = None


def _resolve_level(name: str, verbose: bool) -> int:
    if verbose:
        return logging.DEBUG
    return getattr(logging, name.upper(), logging.INFO)


def setup_logging(config: Config, verbose: bool = False) -> logging.Logger:
    """Set up the ``proxylens`` logger from configuration.

    Idempotent: later calls return the logger configured by the first.

    Args:
        config: Configuration object with log settings.
        verbose: Force DEBUG regardless of ``config.log_level``.

    Returns:
        Configured logger instance.
    """
    global _logger

    if _logger is not None:
        return _logger

    level = _resolve_level(config.log_level, verbose)
    logger = logging.getLogger("proxylens")
    logger.setLevel(level)
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if config.log_file:
        log_path = Path(config.log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    logger.propagate = False

    # aiohttp client internals are noisy below WARNING
    if level > logging.DEBUG:
        logging.getLogger("aiohttp.client").setLevel(logging.WARNING)

    _logger = logger
    return logger


def reset_logging() -> None:
    """Reset logging state. Used for testing."""
    global _logger
    if _logger is not None:
        _logger.handlers.clear()
        _logger = None
