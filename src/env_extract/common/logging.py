"""CLI logging with optional color output."""

from __future__ import annotations

import io
import logging
import os
import sys
from datetime import datetime, timezone

# ANSI color codes, only emitted when stderr is a tty.
_RED = "\033[0;31m"
_YELLOW = "\033[0;33m"
_BLUE = "\033[0;34m"
_DIM = "\033[2m"
_RESET = "\033[0m"


def _use_color() -> bool:
    try:
        return os.isatty(sys.stderr.fileno())
    except (OSError, ValueError, io.UnsupportedOperation):
        return False


def _timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.strftime("[%Y-%m-%dT%H:%M:%SZ]")


def _emit(color: str, label: str, message: str) -> None:
    ts = _timestamp()
    if _use_color():
        line = f"{color}{ts} [{label}]{_RESET} {message}"
    else:
        line = f"{ts} [{label}] {message}"
    print(line, file=sys.stderr, flush=True)


def log_info(message: str) -> None:
    """Log an informational message to stderr."""
    _emit(_BLUE, "INFO", message)


def log_warning(message: str) -> None:
    """Log a warning message to stderr."""
    _emit(_YELLOW, "WARN", message)


def log_error(message: str) -> None:
    """Log an error message to stderr."""
    _emit(_RED, "ERROR", message)


class StderrHandler(logging.Handler):
    """Route library ``logging`` records through the CLI line format."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
        except Exception:
            self.handleError(record)
            return
        if record.levelno >= logging.ERROR:
            log_error(message)
        elif record.levelno >= logging.WARNING:
            log_warning(message)
        elif record.levelno >= logging.INFO:
            log_info(message)
        else:
            _emit(_DIM, "DEBUG", message)


def enable_debug_logging() -> None:
    """Show the package's debug records (which variant matched, which fallback applied)."""
    logger = logging.getLogger("env_extract")
    if not any(isinstance(h, StderrHandler) for h in logger.handlers):
        logger.addHandler(StderrHandler())
    logger.setLevel(logging.DEBUG)
