"""
stickpilot API.

stickpilot is the flight-command control core of a ground station. It
turns on-screen joystick gestures into rate limited virtual stick
commands and runs the mission lifecycle on top of a flight controller
service.

The main API is the :py:class:`ControlSession` class:

.. code:: python

    from stickpilot import ControlSession, StickAssignment

    with ControlSession.with_mavlink(planner) as session:
        session.takeoff()
        session.enable_virtual_stick()
        session.on_gesture(StickAssignment.RIGHT, 20, -35)
        session.on_release(StickAssignment.RIGHT)

State is exposed through observable owners (e.g.
:py:attr:`ControlSession.flight_status`,
:py:attr:`ControlSession.mission_state`); register callbacks with
``on_change`` and keep the returned :py:class:`Subscription` to revoke
them.

All the logging is handled through the builtin Python `logging` module.
"""

from __future__ import annotations

# Core infrastructure
from stickpilot.core.exceptions import (
    APIException,
    ConfigurationError,
    InvalidStateError,
    MissionError,
    ServiceError,
    TimeoutError,
)
from stickpilot.core.observer import ObservableValue, Subscription
from stickpilot.core.events import EventBus, EventCategory, EventPriority
from stickpilot.core.types import FlightControllerService, MissionPlanner

# Data models
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
from stickpilot.models.result import CommandResult
from stickpilot.models.control_mode import VirtualStickControlMode

# Components
from stickpilot.channels.encoder import CommandEncoder, JoystickGeometry
from stickpilot.channels.dispatch import DispatchLimiter
from stickpilot.health.poller import TelemetryPoller
from stickpilot.mission.lifecycle import MissionLifecycleController
from stickpilot.datalink.relay import EventRelay
from stickpilot.datalink.mavlink_service import MavlinkFlightService
from stickpilot.logs.buffer import DebugLogBuffer, DebugLogEntry
from stickpilot.logs.handlers import ErrprinterHandler, setup_stickpilot_logging

# Configuration and session
from stickpilot.config import ControlConfig, load_config
from stickpilot.session import ControlSession

__all__ = [
    # Main API
    "ControlSession",
    "ControlConfig",
    "load_config",
    # Exceptions
    "APIException",
    "ConfigurationError",
    "InvalidStateError",
    "MissionError",
    "ServiceError",
    "TimeoutError",
    # Observer
    "ObservableValue",
    "Subscription",
    # Event system
    "EventBus",
    "EventCategory",
    "EventPriority",
    # Types
    "FlightControllerService",
    "MissionPlanner",
    # Data models
    "GestureVector",
    "StickAssignment",
    "StickAxes",
    "AltitudeInfo",
    "FlightStatus",
    "ReadinessCheck",
    "ReadinessLevel",
    "VirtualStickState",
    "MissionEvent",
    "MissionEventType",
    "MissionOutcome",
    "MissionProgress",
    "MissionState",
    "CommandResult",
    "VirtualStickControlMode",
    # Components
    "CommandEncoder",
    "JoystickGeometry",
    "DispatchLimiter",
    "TelemetryPoller",
    "MissionLifecycleController",
    "EventRelay",
    "MavlinkFlightService",
    # Logging
    "DebugLogBuffer",
    "DebugLogEntry",
    "ErrprinterHandler",
    "setup_stickpilot_logging",
]

# Version info
__version__ = "0.1.0"
