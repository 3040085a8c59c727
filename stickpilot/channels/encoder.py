"""
Command Encoder.

This module converts raw joystick gestures into normalized stick axes.
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass

from stickpilot.core.exceptions import ConfigurationError
from stickpilot.models.sticks import GestureVector, StickAssignment, StickAxes


@dataclass(frozen=True)
class JoystickGeometry:
    """
    On-screen joystick dimensions.

    Attributes:
        size: Diameter of the joystick area
        knob_size: Diameter of the knob
    """

    size: float = 120.0
    knob_size: float = 50.0

    @property
    def max_radius(self) -> float:
        """Travel radius of the knob center."""
        return (self.size - self.knob_size) / 2


def encode_gesture(vector: GestureVector, max_radius: float) -> tuple[float, float]:
    """
    Normalize a gesture to a (x, y) pair in [-1, 1].

    Gestures beyond ``max_radius`` are clamped to the circle, keeping
    their angle, so diagonals never exceed a magnitude of 1. The
    vertical axis is inverted: an upward gesture gives a positive y.

    Args:
        vector: Raw knob displacement
        max_radius: Joystick travel radius (must be > 0)

    Returns:
        (x, y) normalized pair

    Example:
        >>> encode_gesture(GestureVector(30, -30), 60)
        (0.5, 0.5)
    """
    if not max_radius > 0:
        raise ConfigurationError(f"Joystick radius must be positive, got {max_radius}")

    dx, dy = vector.dx, vector.dy
    distance = math.hypot(dx, dy)
    if distance > max_radius:
        ratio = max_radius / distance
        dx *= ratio
        dy *= ratio

    return dx / max_radius, -dy / max_radius


class CommandEncoder:
    """
    Combines the two independent sticks into one :py:class:`StickAxes`.

    Each stick only updates its own channel pair; the other pair keeps
    the last value received from its stick.

    Args:
        max_radius: Joystick travel radius (joystick radius minus knob radius)

    Raises:
        ConfigurationError: If ``max_radius`` is not positive
    """

    __slots__ = ("_max_radius", "_axes", "_lock")

    def __init__(self, max_radius: float) -> None:
        if not max_radius > 0:
            raise ConfigurationError(f"Joystick radius must be positive, got {max_radius}")
        self._max_radius = float(max_radius)
        self._axes = StickAxes.zero()
        self._lock = threading.Lock()

    @classmethod
    def from_geometry(cls, geometry: JoystickGeometry) -> "CommandEncoder":
        return cls(geometry.max_radius)

    @property
    def max_radius(self) -> float:
        return self._max_radius

    @property
    def axes(self) -> StickAxes:
        """Most recent merged command."""
        with self._lock:
            return self._axes

    def update(self, assignment: StickAssignment, vector: GestureVector) -> StickAxes:
        """
        Apply a gesture from one stick.

        Args:
            assignment: Which stick moved
            vector: Its raw displacement

        Returns:
            The merged command for both sticks
        """
        x, y = encode_gesture(vector, self._max_radius)
        with self._lock:
            self._axes = self._axes.with_pair(assignment, x, y)
            return self._axes

    def release(self, assignment: StickAssignment) -> StickAxes:
        """Center one stick and return the merged command."""
        with self._lock:
            self._axes = self._axes.with_pair(assignment, 0.0, 0.0)
            return self._axes

    def reset(self) -> None:
        """Center both sticks."""
        with self._lock:
            self._axes = StickAxes.zero()
