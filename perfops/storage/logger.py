"""
Logging configuration using loguru.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"


def setup_logging(debug: bool = False, log_file: Optional[Path] = None) -> logger:
    """
    Route log records to stderr and, optionally, a rotating log file.

    Only warnings reach the console unless `debug` is set, so log lines do
    not interleave with live test output. Safe to call more than once; each
    call replaces the previous sinks.

    Args:
        debug: Show debug records on the console
        log_file: Also write every record to this file

    Returns:
        Configured logger instance
    """
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if debug else "WARNING", format=CONSOLE_FORMAT)

    if log_file is None:
        return logger

    log_file.parent.mkdir(parents=True, exist_ok=True)
    logger.add(log_file, rotation="10 MB", retention="30 days", level="DEBUG", format=FILE_FORMAT)
    logger.debug(f"Logging to {log_file}")
    return logger
