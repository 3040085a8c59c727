"""
Stick Data Models.

This module provides the value types flowing from the gesture surfaces
to the flight controller service.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum

AXIS_MIN = -1.0
AXIS_MAX = 1.0

# DJI Stick.MAX_STICK_POSITION_ABS
MAX_STICK_POSITION = 660


def clamp_axis(value: float) -> float:
    """Clamp a value to the [-1.0, 1.0] axis range."""
    if math.isnan(value):
        raise ValueError("Stick axis value cannot be NaN")
    return max(AXIS_MIN, min(AXIS_MAX, value))


class StickAssignment(Enum):
    """
    Which physical stick drives which pair of logical channels.

    - LEFT: horizontal is yaw, vertical is throttle
    - RIGHT: horizontal is roll, vertical is pitch
    """

    LEFT = ("yaw", "throttle")
    RIGHT = ("roll", "pitch")

    @property
    def horizontal(self) -> str:
        return self.value[0]

    @property
    def vertical(self) -> str:
        return self.value[1]


@dataclass(frozen=True)
class GestureVector:
    """
    Raw displacement of a joystick knob from its center.

    Screen coordinates: ``dy`` grows downward.

    Attributes:
        dx: Horizontal displacement
        dy: Vertical displacement
    """

    dx: float
    dy: float

    @property
    def distance(self) -> float:
        return math.hypot(self.dx, self.dy)


@dataclass(frozen=True)
class StickAxes:
    """
    The four logical control channels sent with each command.

    Values are clamped to [-1.0, 1.0] on construction, so an instance
    can never carry an out-of-range command.

    Attributes:
        yaw: Left stick horizontal
        throttle: Left stick vertical
        roll: Right stick horizontal
        pitch: Right stick vertical
    """

    yaw: float = 0.0
    throttle: float = 0.0
    roll: float = 0.0
    pitch: float = 0.0

    def __post_init__(self) -> None:
        for axis in ("yaw", "throttle", "roll", "pitch"):
            object.__setattr__(self, axis, clamp_axis(float(getattr(self, axis))))

    def __str__(self) -> str:
        return (
            f"StickAxes:yaw={self.yaw:.3f},throttle={self.throttle:.3f},"
            f"roll={self.roll:.3f},pitch={self.pitch:.3f}"
        )

    @classmethod
    def zero(cls) -> "StickAxes":
        """The centered, all-stop command."""
        return cls(0.0, 0.0, 0.0, 0.0)

    @property
    def is_zero(self) -> bool:
        return self.yaw == 0 and self.throttle == 0 and self.roll == 0 and self.pitch == 0

    def with_pair(self, assignment: StickAssignment, x: float, y: float) -> "StickAxes":
        """Return a copy with the channel pair of ``assignment`` replaced."""
        return replace(self, **{assignment.horizontal: x, assignment.vertical: y})

    def pair(self, assignment: StickAssignment) -> tuple[float, float]:
        """Return the (horizontal, vertical) values of one stick."""
        return getattr(self, assignment.horizontal), getattr(self, assignment.vertical)

    def with_deadzone(self, deviation: float) -> "StickAxes":
        """
        Zero every axis whose magnitude is below ``deviation``.

        Args:
            deviation: Deadzone threshold (the DJI sample uses 0.02)
        """

        def adjust(v: float) -> float:
            return v if abs(v) >= deviation else 0.0

        return StickAxes(
            yaw=adjust(self.yaw),
            throttle=adjust(self.throttle),
            roll=adjust(self.roll),
            pitch=adjust(self.pitch),
        )

    def to_stick_positions(
        self,
        max_position: int = MAX_STICK_POSITION,
    ) -> tuple[int, int, int, int]:
        """
        Convert to integer stick positions.

        Returns:
            (left horizontal, left vertical, right horizontal, right vertical)
        """
        return (
            int(self.yaw * max_position),
            int(self.throttle * max_position),
            int(self.roll * max_position),
            int(self.pitch * max_position),
        )
