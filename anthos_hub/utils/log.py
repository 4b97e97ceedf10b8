"""Loguru sink setup for the CLI."""

import sys
from pathlib import Path

from loguru import logger


def setup_logging(debug: bool = False, log_file: Path | None = None) -> None:
    """
    Install the stderr sink and, in debug mode, a DEBUG file sink.

    Args:
        debug: Lower the console level to DEBUG and enable the file sink.
        log_file: Where debug logs are appended.
    """
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if debug else "INFO")
    if debug and log_file:
        logger.add(log_file, level="DEBUG")
        logger.debug(f"Debug log file: {log_file}")
