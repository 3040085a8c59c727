"""
Event Bus Implementation.

This module provides an event bus for decoupled delivery of flight
controller notifications. Service implementations publish typed events
by category; the event relay subscribes to them without knowing how
the service talks to the aircraft.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Callable

from stickpilot.core.observer import Subscription

logger = logging.getLogger(__name__)


class EventCategory(Enum):
    """Upstream notification categories."""

    TAKEOFF_RESULT = "onTakeoffResult"
    LANDING_RESULT = "onLandingResult"
    FLIGHT_STATUS = "onFlightStatusChange"
    VIRTUAL_STICK_STATE = "onVirtualStickStateChange"
    MISSION = "onMissionEvent"


class EventPriority(IntEnum):
    """Priority levels for event handlers."""

    HIGH = 0  # Processed first (e.g., critical state updates)
    NORMAL = 50  # Default priority
    LOW = 100  # Processed last (e.g., logging)


@dataclass
class _Handler:
    """Internal class representing a registered handler."""

    handler: Callable[[Any], None]
    priority: EventPriority = EventPriority.NORMAL


class EventBus:
    """
    Central event bus for flight controller notifications.

    Features:
    - Priority-based handler execution
    - Thread-safe subscription management
    - Handler exceptions are logged, never propagated to the publisher

    Example:
        >>> bus = EventBus()
        >>> sub = bus.subscribe(EventCategory.FLIGHT_STATUS, print)
        >>> bus.publish(EventCategory.FLIGHT_STATUS, status)
        >>> sub.revoke()
    """

    __slots__ = ("_handlers", "_lock")

    def __init__(self) -> None:
        self._lock = threading.RLock()
        # Map from category to list of handlers
        self._handlers: dict[EventCategory, list[_Handler]] = {}

    def subscribe(
        self,
        category: EventCategory,
        handler: Callable[[Any], None],
        priority: EventPriority = EventPriority.NORMAL,
    ) -> Subscription:
        """
        Subscribe to an event category.

        Args:
            category: The category to subscribe to
            handler: Callback receiving the event payload
            priority: Handler priority (lower values = higher priority)

        Returns:
            Subscription - revoke it to remove the handler
        """
        entry = _Handler(handler=handler, priority=priority)

        with self._lock:
            handlers = self._handlers.setdefault(category, [])
            handlers.append(entry)
            handlers.sort(key=lambda h: h.priority)

        def unsubscribe() -> None:
            with self._lock:
                handlers = self._handlers.get(category)
                if handlers is None:
                    return
                try:
                    handlers.remove(entry)
                except ValueError:
                    pass  # Already removed
                if not handlers:
                    del self._handlers[category]

        return Subscription(unsubscribe, category.value)

    def publish(self, category: EventCategory, payload: Any) -> None:
        """
        Deliver a payload to every handler of ``category``.

        Args:
            category: Event category
            payload: The event payload
        """
        with self._lock:
            handlers = list(self._handlers.get(category, []))

        # Invoke handlers outside the lock
        for entry in handlers:
            try:
                entry.handler(payload)
            except Exception:
                logger.exception("Exception in event handler for %s", category.value)

    def handler_count(self, category: EventCategory) -> int:
        """Return the number of handlers registered for ``category``."""
        with self._lock:
            return len(self._handlers.get(category, []))

    def clear(self) -> None:
        """Remove all subscriptions."""
        with self._lock:
            self._handlers.clear()
