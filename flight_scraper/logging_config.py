"""Logging configuration using loguru"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[route]: <8}</cyan> | <level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[route]} | "
    "{name}:{function}:{line} | {message}"
)


def setup_logging(
    verbose: bool = False,
    log_file: Optional[Path] = None,
    serialize: bool = False,
) -> None:
    """
    Configure loguru sinks for a scraping run.

    Args:
        verbose: Enable debug-level console output
        log_file: Optional file path for log output (rotated and compressed)
        serialize: Write the file sink as JSON lines instead of text
    """
    logger.remove()
    # Messages outside a route search carry a dash in the route column
    logger.configure(extra={"route": "-"})

    logger.add(
        sys.stdout,
        format=CONSOLE_FORMAT,
        level="DEBUG" if verbose else "INFO",
        colorize=True,
    )

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=FILE_FORMAT,
            level="DEBUG",
            rotation="50 MB",
            retention="14 days",
            compression="zip",
            serialize=serialize,
            enqueue=True,
        )
        logger.info(f"Logging to file: {log_file}")
