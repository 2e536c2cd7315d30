"""
Logging - Package logger with per-session context.

Every record carries a `session_id` (the four-letter game code, or "-")
and a `component` name. Terminal output is colored by level when stderr
is a TTY.
"""

from __future__ import annotations

import logging
import os
import sys

LOGGER_NAME = "gridrace"

_FORMAT = "%(asctime)s | %(levelname)s | session=%(session_id)s | %(component)s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


class PlainFormatter(logging.Formatter):
    """Formatter that tolerates records logged without adapter context."""

    def __init__(self) -> None:
        super().__init__(fmt=_FORMAT, datefmt=_DATEFMT)

    def format(self, record: logging.LogRecord) -> str:
        record.session_id = getattr(record, "session_id", "-")
        record.component = getattr(record, "component", "-")
        return super().format(record)


class ColoredFormatter(PlainFormatter):
    """ANSI color per level."""

    COLORS = {
        logging.DEBUG: "\033[36m",    # cyan
        logging.INFO: "\033[32m",     # green
        logging.WARNING: "\033[33m",  # yellow
        logging.ERROR: "\033[31m",    # red
        logging.CRITICAL: "\033[31m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        color = self.COLORS.get(record.levelno, self.RESET)
        return f"{color}{base}{self.RESET}"


def setup_logging(level: str | None = None) -> logging.Logger:
    """
    Attach a single stderr handler to the package logger.

    Level comes from the argument, else GRIDRACE_LOG_LEVEL, else INFO.
    Calling it again replaces the handler rather than stacking a second.
    """
    level_name = (level or os.getenv("GRIDRACE_LOG_LEVEL", "INFO")).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(ColoredFormatter() if sys.stderr.isatty() else PlainFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(component: str, session_id: str | None = None) -> logging.LoggerAdapter:
    """Child logger for a component, tagged with the session it works for."""
    base = logging.getLogger(f"{LOGGER_NAME}.{component}")
    return logging.LoggerAdapter(base, {"session_id": session_id or "-", "component": component})
