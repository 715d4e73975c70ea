"""Logging setup shared by every module of the service."""

import logging
import sys
from typing import Optional

BASE_LOGGER = "modelhub"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Configure the service logger to write to stdout.

    Safe to call more than once; handlers are only attached the first time.

    Args:
        level: Log level name. Defaults to ``config.LOG_LEVEL``.

    Returns:
        The base service logger
    """
    if level is None:
        from ..config import config

        level = config.LOG_LEVEL

    logger = logging.getLogger(BASE_LOGGER)
    logger.setLevel(level.upper())

    # Avoid duplicate handlers if setup_logging is called multiple times
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(handler)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger under the service namespace."""
    if not name:
        return logging.getLogger(BASE_LOGGER)
    if name == BASE_LOGGER or name.startswith(BASE_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{BASE_LOGGER}.{name}")
