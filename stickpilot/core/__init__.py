"""
Core Infrastructure.

This module provides the foundational components used throughout stickpilot:
- Exception classes
- Observable state owners and subscriptions
- Event bus for flight controller notifications
- Protocol definitions for the external collaborators
"""

from stickpilot.core.exceptions import (
    APIException,
    ConfigurationError,
    InvalidStateError,
    MissionError,
    ServiceError,
    TimeoutError,
)
from stickpilot.core.observer import ObservableValue, Observers, Subscription
from stickpilot.core.events import EventBus, EventCategory, EventPriority
from stickpilot.core.types import FlightControllerService, MissionPlanner, VirtualStickGate

__all__ = [
    # Exceptions
    "APIException",
    "ConfigurationError",
    "InvalidStateError",
    "MissionError",
    "ServiceError",
    "TimeoutError",
    # Observer
    "ObservableValue",
    "Observers",
    "Subscription",
    # Events
    "EventBus",
    "EventCategory",
    "EventPriority",
    # Types
    "FlightControllerService",
    "MissionPlanner",
    "VirtualStickGate",
]
