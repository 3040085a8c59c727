"""
Data Link Layer.

This module provides the event relay and the MAVLink flight controller
service.
"""

from stickpilot.datalink.relay import EventRelay
from stickpilot.datalink.mavlink_service import MavlinkFlightService

__all__ = [
    "EventRelay",
    "MavlinkFlightService",
]
