"""
Data Models.

This module provides immutable dataclasses for stick commands, flight
status, mission progress and command results.
"""

from stickpilot.models.sticks import GestureVector, StickAssignment, StickAxes
from stickpilot.models.status import (
    AltitudeInfo,
    FlightStatus,
    ReadinessCheck,
    ReadinessLevel,
    VirtualStickState,
)
from stickpilot.models.mission import (
    MissionEvent,
    MissionEventType,
    MissionOutcome,
    MissionProgress,
    MissionState,
)
from stickpilot.models.result import CommandResult, LandingResult, TakeoffResult
from stickpilot.models.control_mode import (
    CoordinateSystem,
    RollPitchMode,
    VerticalMode,
    VirtualStickControlMode,
    YawMode,
)

__all__ = [
    # Sticks
    "GestureVector",
    "StickAssignment",
    "StickAxes",
    # Status
    "AltitudeInfo",
    "FlightStatus",
    "ReadinessCheck",
    "ReadinessLevel",
    "VirtualStickState",
    # Mission
    "MissionEvent",
    "MissionEventType",
    "MissionOutcome",
    "MissionProgress",
    "MissionState",
    # Results
    "CommandResult",
    "LandingResult",
    "TakeoffResult",
    # Control mode
    "CoordinateSystem",
    "RollPitchMode",
    "VerticalMode",
    "VirtualStickControlMode",
    "YawMode",
]
