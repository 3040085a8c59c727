"""
Logs Module.

This module provides the debug log buffer and logging handlers.
"""

from stickpilot.logs.buffer import DebugLogBuffer, DebugLogEntry
from stickpilot.logs.handlers import (
    DebugLogHandler,
    ErrprinterHandler,
    get_autopilot_logger,
    get_stickpilot_logger,
    setup_stickpilot_logging,
)

__all__ = [
    "DebugLogBuffer",
    "DebugLogEntry",
    "DebugLogHandler",
    "ErrprinterHandler",
    "get_autopilot_logger",
    "get_stickpilot_logger",
    "setup_stickpilot_logging",
]
