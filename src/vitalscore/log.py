"""Loguru configuration for the vitalscore CLI.

Library code only ever does ``from loguru import logger``; sinks are
configured here, once, by the command-line entry point.
"""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logger(
    level: str = "WARNING",
    log_file: str | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """Send log records to stderr and, optionally, a rotating file.

    Args:
        level: Minimum level (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional log file path; parent directories are created.
        rotation: When to rotate the file (e.g. "10 MB", "1 day").
        retention: How long rotated files are kept (e.g. "7 days").
    """
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level.upper(), colorize=True)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            path,
            format=FILE_FORMAT,
            level=level.upper(),
            rotation=rotation,
            retention=retention,
        )

    logger.debug(f"Logging at {level.upper()}" + (f" to {log_file}" if log_file else ""))
