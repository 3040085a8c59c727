"""
Exception Classes.

This module defines the exception hierarchy used throughout stickpilot.
"""

from __future__ import annotations


class APIException(Exception):
    """
    Base class for stickpilot related exceptions.

    :param message: Message string describing the exception
    """

    pass


class TimeoutError(APIException):
    """
    Raised by operations that have timeouts.

    This exception is raised when waiting on the vehicle link exceeds
    its configured timeout period, such as:
    - Waiting for the first heartbeat
    - Waiting for a command acknowledgement
    """

    pass


class ServiceError(APIException):
    """
    Raised when a call into the flight controller service or the
    mission planner fails.

    Service errors are always recoverable locally. The ``reason`` is
    the human readable text reported by the collaborator.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ConfigurationError(APIException):
    """
    Raised for invalid setup: a non-positive joystick radius, a bad
    buffer capacity, or a failed virtual stick control mode setup.
    """

    pass


class MissionError(APIException):
    """Raised when a mission lifecycle operation is rejected."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class InvalidStateError(MissionError):
    """
    Raised when a mission operation is not allowed in the current state.

    The state machine is left untouched.
    """

    pass
