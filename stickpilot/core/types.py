"""
Protocol and Type Definitions.

This module defines the contracts of the external collaborators the
control core talks to. Implementations may raise from any method;
the core converts exceptions into failed results or log entries.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Protocol, runtime_checkable

if TYPE_CHECKING:
    from stickpilot.core.events import EventCategory
    from stickpilot.core.observer import Subscription
    from stickpilot.models.control_mode import VirtualStickControlMode
    from stickpilot.models.result import CommandResult
    from stickpilot.models.status import AltitudeInfo, FlightStatus, ReadinessCheck
    from stickpilot.models.sticks import StickAxes


@runtime_checkable
class FlightControllerService(Protocol):
    """
    Protocol for the flight controller service.

    Accepts normalized stick commands, readiness queries and
    takeoff/landing requests, and reports telemetry and events.
    """

    def is_ready_for_takeoff(self) -> "ReadinessCheck":
        """Evaluate pre-takeoff readiness."""
        ...

    def request_takeoff(self) -> "CommandResult":
        """Start an automatic takeoff."""
        ...

    def request_landing(self) -> "CommandResult":
        """Start an automatic landing."""
        ...

    def cancel_landing(self) -> "CommandResult":
        """Abort an automatic landing in progress."""
        ...

    def set_virtual_stick_enabled(self, enabled: bool) -> "CommandResult":
        """Enable or disable virtual stick control."""
        ...

    def set_virtual_stick_control_mode(
        self,
        mode: "VirtualStickControlMode",
    ) -> "CommandResult":
        """Configure how stick values are interpreted. Must precede the first enable."""
        ...

    def send_stick_command(self, axes: "StickAxes") -> "CommandResult":
        """
        Send one virtual stick command.

        A stop command while virtual stick is disabled succeeds without
        sending anything; any other command then fails.
        """
        ...

    def get_flight_status(self) -> "FlightStatus":
        """Return the current flight status."""
        ...

    def get_altitude(self) -> "AltitudeInfo":
        """Return the current altitude."""
        ...

    def subscribe(
        self,
        category: "EventCategory",
        handler: Callable[[Any], None],
    ) -> "Subscription":
        """Register for one category of asynchronous notifications."""
        ...


@runtime_checkable
class MissionPlanner(Protocol):
    """
    Protocol for the mission planner.

    The planner owns mission files and waypoint optimization; the core
    only starts, pauses, resumes and stops missions by handle.
    """

    def start_mission(self, handle: str) -> "CommandResult":
        """Start executing the mission identified by ``handle``."""
        ...

    def pause_mission(self) -> "CommandResult":
        """Pause the running mission."""
        ...

    def resume_mission(self) -> "CommandResult":
        """Resume a paused mission."""
        ...

    def stop_mission(self) -> "CommandResult":
        """Stop the mission."""
        ...


@runtime_checkable
class VirtualStickGate(Protocol):
    """Anything that can tell whether virtual stick commands may be sent."""

    @property
    def virtual_stick_enabled(self) -> bool:
        ...


# Type aliases for common callback signatures
EventHandler = Callable[[Any], None]
