"""
Virtual Stick Control Mode.

The control mode tells the flight controller how to interpret stick
values. It must be sent before virtual stick is first enabled.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Type, TypeVar

E = TypeVar("E", bound=Enum)


class RollPitchMode(Enum):
    VELOCITY = "VELOCITY"
    ANGLE = "ANGLE"


class YawMode(Enum):
    ANGLE = "ANGLE"
    ANGULAR_VELOCITY = "ANGULAR_VELOCITY"


class VerticalMode(Enum):
    VELOCITY = "VELOCITY"
    POSITION = "POSITION"


class CoordinateSystem(Enum):
    GROUND = "GROUND"
    BODY = "BODY"


def _lookup(enum_cls: Type[E], name: str | None, default: E) -> E:
    if not name:
        return default
    try:
        return enum_cls[name.upper()]
    except KeyError:
        return default


@dataclass(frozen=True)
class VirtualStickControlMode:
    """
    Interpretation of virtual stick values.

    Attributes:
        roll_pitch: Roll/pitch as velocity or angle
        yaw: Yaw as angle or angular velocity
        vertical: Throttle as velocity or position
        coordinate_system: Roll/pitch frame
    """

    roll_pitch: RollPitchMode = RollPitchMode.VELOCITY
    yaw: YawMode = YawMode.ANGULAR_VELOCITY
    vertical: VerticalMode = VerticalMode.VELOCITY
    coordinate_system: CoordinateSystem = CoordinateSystem.GROUND

    @classmethod
    def from_names(
        cls,
        roll_pitch: str | None = None,
        yaw: str | None = None,
        vertical: str | None = None,
        coordinate_system: str | None = None,
    ) -> "VirtualStickControlMode":
        """
        Build from mode names.

        Names are matched case-insensitively; unknown names fall back
        to the default for that field.

        Example:
            >>> VirtualStickControlMode.from_names("velocity", "angular_velocity",
            ...                                    "velocity", "ground")
        """
        return cls(
            roll_pitch=_lookup(RollPitchMode, roll_pitch, RollPitchMode.VELOCITY),
            yaw=_lookup(YawMode, yaw, YawMode.ANGULAR_VELOCITY),
            vertical=_lookup(VerticalMode, vertical, VerticalMode.VELOCITY),
            coordinate_system=_lookup(
                CoordinateSystem, coordinate_system, CoordinateSystem.GROUND
            ),
        )

    def __str__(self) -> str:
        return (
            f"VirtualStickControlMode:{self.roll_pitch.value}/{self.yaw.value}/"
            f"{self.vertical.value}/{self.coordinate_system.value}"
        )
