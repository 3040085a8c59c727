"""
Status Data Models.

This module provides dataclasses for flight status, takeoff readiness,
altitude and virtual stick state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

# Substrings (case-sensitive) that downgrade a failed readiness check
# from NOT_READY to CAUTION.
CAUTION_KEYWORDS = ("light", "caution", "GPS")


class ReadinessLevel(Enum):
    """Operator-facing classification of a readiness check."""

    READY = "Ready"
    CAUTION = "Caution"
    NOT_READY = "Not Ready"


@dataclass(frozen=True)
class FlightStatus:
    """
    Flight status reported by the flight controller service.

    Attributes:
        is_connected: Flight controller link is up
        are_motors_on: Motors are spinning
        is_flying: Aircraft is airborne
        flight_mode: Flight mode name reported by the autopilot
    """

    is_connected: bool = False
    are_motors_on: bool = False
    is_flying: bool = False
    flight_mode: str = "UNKNOWN"

    def __str__(self) -> str:
        return (
            f"FlightStatus:connected={self.is_connected},motors={self.are_motors_on},"
            f"flying={self.is_flying},mode={self.flight_mode}"
        )

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "FlightStatus":
        """Create from an ``onFlightStatusChange`` style mapping."""
        return cls(
            is_connected=bool(payload.get("isConnected", False)),
            are_motors_on=bool(payload.get("areMotorsOn", False)),
            is_flying=bool(payload.get("isFlying", False)),
            flight_mode=str(payload.get("flightMode", "UNKNOWN")),
        )


@dataclass(frozen=True)
class ReadinessCheck:
    """
    Result of a pre-takeoff readiness query.

    Attributes:
        ready: True when takeoff may proceed
        reason: Free-text explanation from the flight controller
    """

    ready: bool
    reason: str

    def __str__(self) -> str:
        return f"ReadinessCheck:{self.level.value} ({self.reason})"

    @property
    def level(self) -> ReadinessLevel:
        """
        Classify the check.

        The flight controller only reports free text, so a failed check
        is downgraded to CAUTION when its reason mentions one of
        :py:data:`CAUTION_KEYWORDS`. Matching is case-sensitive, which
        means "Flight controller not connected" also counts as CAUTION.
        """
        if self.ready:
            return ReadinessLevel.READY
        if any(keyword in self.reason for keyword in CAUTION_KEYWORDS):
            return ReadinessLevel.CAUTION
        return ReadinessLevel.NOT_READY


@dataclass(frozen=True)
class AltitudeInfo:
    """
    Altitude reading, polled only while flying.

    Attributes:
        altitude: Altitude above takeoff point
        unit: Unit of ``altitude``
    """

    altitude: float
    unit: str = "m"

    def __str__(self) -> str:
        return f"AltitudeInfo:{self.altitude:.1f}{self.unit}"


@dataclass(frozen=True)
class VirtualStickState:
    """
    Virtual stick state reported by the flight controller service.

    Attributes:
        enabled: Virtual stick commands are being accepted
        authority_owner: Current flight control authority owner
        advanced_mode: Advanced parameter mode is enabled
        reason: Reason for an authority change, if any
    """

    enabled: bool
    authority_owner: str = "UNKNOWN"
    advanced_mode: bool = False
    reason: str | None = None
