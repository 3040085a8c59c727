"""
Mission Data Models.

This module provides the mission state enum and the progress and event
payloads delivered while a mission executes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

# Wire value of distanceToTarget while the aircraft waits for a GPS fix
UNKNOWN_DISTANCE = -1.0


class MissionState(Enum):
    """Mission execution states."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


class MissionEventType(Enum):
    """Mission lifecycle notifications from the planner."""

    PREPARED = "missionPrepared"
    STARTED = "missionStarted"
    PROGRESS = "missionProgress"
    COMPLETED = "missionCompleted"
    FAILED = "missionFailed"
    PAUSED = "missionPaused"
    RESUMED = "missionResumed"


@dataclass(frozen=True)
class MissionProgress:
    """
    Waypoint execution progress.

    ``distance_to_target`` is None while the aircraft holds position
    waiting for a GPS fix. That is not the same as having reached the
    target, which is a distance of 0.0.

    Attributes:
        current_waypoint: Index of the waypoint being flown to
        total_waypoints: Number of waypoints in the mission
        progress: Fraction complete, 0.0 to 1.0
        distance_to_target: Metres to the current waypoint, or None
    """

    current_waypoint: int = 0
    total_waypoints: int = 0
    progress: float = 0.0
    distance_to_target: float | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.progress <= 1.0:
            object.__setattr__(self, "progress", max(0.0, min(1.0, self.progress)))

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "MissionProgress":
        """
        Create from a ``missionProgress`` mapping.

        A missing distance or the ``-1`` sentinel both mean unknown.
        """
        raw_distance = payload.get("distanceToTarget")
        distance: float | None
        if raw_distance is None or float(raw_distance) == UNKNOWN_DISTANCE:
            distance = None
        else:
            distance = float(raw_distance)

        return cls(
            current_waypoint=int(payload.get("currentWaypoint", 0)),
            total_waypoints=int(payload.get("totalWaypoints", 0)),
            progress=float(payload.get("progress", 0.0)),
            distance_to_target=distance,
        )

    @property
    def awaiting_gps_lock(self) -> bool:
        """True while the aircraft holds position without a valid GPS fix."""
        return self.distance_to_target is None

    @property
    def is_complete(self) -> bool:
        return self.total_waypoints > 0 and self.progress >= 1.0

    def describe(self) -> str:
        """Human readable one-line summary."""
        if self.awaiting_gps_lock:
            target = "waiting for GPS lock"
        else:
            target = f"{self.distance_to_target:.1f} m to target"
        return (
            f"waypoint {self.current_waypoint}/{self.total_waypoints} "
            f"({self.progress * 100:.0f}%), {target}"
        )


@dataclass(frozen=True)
class MissionEvent:
    """
    A mission lifecycle notification.

    Attributes:
        type: What happened
        progress: Progress payload for PROGRESS events
        error: Failure reason for FAILED events
        mission_type: Execution mode reported by the planner
    """

    type: MissionEventType
    progress: MissionProgress | None = None
    error: str | None = None
    mission_type: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "MissionEvent":
        """Create from an ``onKMLMissionEvent`` style mapping."""
        event_type = MissionEventType(payload["type"])
        progress = None
        data = payload.get("data")
        if event_type is MissionEventType.PROGRESS and data is not None:
            progress = MissionProgress.from_payload(data)
        return cls(
            type=event_type,
            progress=progress,
            error=payload.get("error"),
            mission_type=payload.get("missionType"),
        )


@dataclass(frozen=True)
class MissionOutcome:
    """
    How a mission ended.

    Attributes:
        completed: True when every waypoint was flown
        reason: Failure reason, None on completion
    """

    completed: bool
    reason: str | None = None

    def __str__(self) -> str:
        if self.completed:
            return "mission complete"
        return f"mission failed: {self.reason}"
