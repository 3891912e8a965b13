"""Logging configuration for the relay.

This module provides centralized logging configuration using Loguru.
By default it logs to the console only; debug mode adds a rotating file
sink in the user's home directory.
"""

import sys
from pathlib import Path

from loguru import logger

LOG_DIR = Path.home() / ".throttle-relay" / "logs"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | "
    "{level: <8} | "
    "{name}:{function}:{line} - "
    "{message}"
)


def configure_logging(*, debug: bool = False, log_dir: Path | None = None) -> None:
    """Install the console sink and, in debug mode, the file sink.

    Args:
        debug: Log at DEBUG level and also write to ``relay.log``
        log_dir: Directory for the log file (default: ``LOG_DIR``)
    """
    logger.remove()

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level="DEBUG" if debug else "INFO",
        backtrace=True,
        diagnose=debug,
    )

    if debug:
        target = log_dir or LOG_DIR
        target.mkdir(parents=True, exist_ok=True)
        logger.add(
            target / "relay.log",
            rotation="10 MB",
            retention="1 week",
            compression="zip",
            format=FILE_FORMAT,
            level="DEBUG",
            backtrace=True,
            diagnose=True,
            enqueue=True,
        )


__all__ = ["logger", "LOG_DIR", "configure_logging"]
