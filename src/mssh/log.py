"""Logging setup for mssh."""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = "<level>{level: <8}</level> <level>{message}</level>"
VERBOSE_FORMAT = (
    "{time:HH:mm:ss.SSS} [{name}:{line}] <level>{level: <8}</level> <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} [{name}:{line}] {level: <8} {message}"


def _console(message: str) -> None:
    # Resolved per call so prompt_toolkit's patched stdout is picked up.
    sys.stdout.write(message)
    sys.stdout.flush()


def logger_setup(log_file: Path | None, verbosity: int = 0) -> None:
    """Set up logging for this process - console output and optional log file"""
    logger.remove()

    logger.add(
        _console,
        format=CONSOLE_FORMAT if verbosity == 0 else VERBOSE_FORMAT,
        level="INFO" if verbosity == 0 else "DEBUG",
        colorize=True,
    )
    if log_file:
        add_log_file(log_file)


def add_log_file(log_file: Path) -> int:
    """Also write every log record to ``log_file``. Returns the sink id."""
    log_file.parent.mkdir(parents=True, exist_ok=True)
    return logger.add(
        log_file,
        format=FILE_FORMAT,
        level="DEBUG",
        colorize=False,
        enqueue=True,
    )


def logger_cleanup() -> None:
    """Flush queued records before shutting down"""
    logger.complete()
