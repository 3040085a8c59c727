"""
Logging Handlers.

This module provides custom logging handlers for stickpilot.
"""

from __future__ import annotations

import logging
import sys

from stickpilot.logs.buffer import DebugLogBuffer, DebugLogEntry


class ErrprinterHandler(logging.Handler):
    """
    A logging handler that prints to stderr.

    This handler is used for autopilot status messages and
    error reporting.
    """

    def __init__(self) -> None:
        super().__init__()
        self.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        """Emit a log record to stderr."""
        try:
            msg = self.format(record)
            print(msg, file=sys.stderr)
        except Exception:
            self.handleError(record)


class DebugLogHandler(logging.Handler):
    """
    A logging handler that feeds a :py:class:`DebugLogBuffer`.

    Library log records become operator-visible debug entries, so the
    buffer and the regular log share one path.

    Args:
        buffer: Destination buffer
        level: Minimum level recorded
    """

    def __init__(self, buffer: DebugLogBuffer, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.buffer = buffer
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        """Append the record to the buffer."""
        try:
            self.buffer.append(
                DebugLogEntry(
                    message=self.format(record),
                    level=record.levelname,
                    timestamp=record.created,
                )
            )
        except Exception:
            self.handleError(record)


def setup_stickpilot_logging(
    level: int = logging.INFO,
    autopilot_level: int = logging.WARNING,
    buffer: DebugLogBuffer | None = None,
) -> DebugLogHandler | None:
    """
    Set up stickpilot logging.

    Args:
        level: Log level for stickpilot logger
        autopilot_level: Log level for autopilot logger
        buffer: Optional debug buffer to mirror stickpilot records into

    Returns:
        The installed DebugLogHandler, if a buffer was given
    """
    # stickpilot logger
    stickpilot_logger = logging.getLogger("stickpilot")
    stickpilot_logger.setLevel(level)

    # Autopilot logger
    autopilot_logger = logging.getLogger("autopilot")
    autopilot_logger.setLevel(autopilot_level)
    if not any(isinstance(h, ErrprinterHandler) for h in autopilot_logger.handlers):
        autopilot_logger.addHandler(ErrprinterHandler())

    if buffer is None:
        return None
    handler = DebugLogHandler(buffer, level)
    stickpilot_logger.addHandler(handler)
    autopilot_logger.addHandler(handler)
    return handler


def get_stickpilot_logger() -> logging.Logger:
    """Get the main stickpilot logger."""
    return logging.getLogger("stickpilot")


def get_autopilot_logger() -> logging.Logger:
    """Get the autopilot message logger."""
    return logging.getLogger("autopilot")
