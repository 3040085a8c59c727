"""
Command Result Model.

Every command-style call into the flight controller service or the
mission planner returns a :py:class:`CommandResult`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from stickpilot.core.exceptions import ServiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """
    Outcome of a command.

    Attributes:
        success: Whether the collaborator accepted the command
        message: Informational text on success
        error: Human readable failure reason
    """

    success: bool
    message: str = ""
    error: str | None = None

    @classmethod
    def ok(cls, message: str = "") -> "CommandResult":
        return cls(success=True, message=message)

    @classmethod
    def failed(cls, error: str) -> "CommandResult":
        return cls(success=False, error=error)

    @property
    def reason(self) -> str:
        """The failure reason, or the message on success."""
        if self.success:
            return self.message
        return self.error or "unknown error"

    def raise_for_failure(self) -> "CommandResult":
        """Raise :py:class:`ServiceError` if the command failed."""
        if not self.success:
            raise ServiceError(self.reason)
        return self

    def __str__(self) -> str:
        if self.success:
            return f"CommandResult:ok ({self.message})"
        return f"CommandResult:failed ({self.reason})"


# Payloads of onTakeoffResult / onLandingResult
TakeoffResult = CommandResult
LandingResult = CommandResult


def call_service(fn: Callable[..., Any], *args: Any) -> CommandResult:
    """
    Invoke a command-style collaborator method.

    Exceptions are converted to a failed result so callers only have
    one failure shape to handle. A ``None`` return counts as success.
    """
    try:
        result = fn(*args)
    except ServiceError as e:
        return CommandResult.failed(e.reason)
    except Exception as e:
        logger.debug("Service call %s raised", getattr(fn, "__name__", fn), exc_info=True)
        return CommandResult.failed(str(e) or type(e).__name__)

    if result is None:
        return CommandResult.ok()
    if isinstance(result, CommandResult):
        return result
    return CommandResult(success=bool(result))
