"""
Event Relay.

This module subscribes to the flight controller's asynchronous
notifications and hands each one to the single component that owns the
corresponding state.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable

from stickpilot.core.events import EventCategory
from stickpilot.core.observer import ObservableValue, Subscription
from stickpilot.models.mission import MissionEvent
from stickpilot.models.result import CommandResult, LandingResult, TakeoffResult
from stickpilot.models.status import FlightStatus, VirtualStickState

if TYPE_CHECKING:
    from stickpilot.core.types import FlightControllerService
    from stickpilot.health.poller import TelemetryPoller
    from stickpilot.mission.lifecycle import MissionLifecycleController

logger = logging.getLogger(__name__)


def _to_result(payload: Any) -> CommandResult:
    if isinstance(payload, Mapping):
        return CommandResult(
            success=bool(payload.get("success", False)),
            message=payload.get("message") or "",
            error=payload.get("error"),
        )
    return payload


def _to_virtual_stick_state(payload: Any) -> VirtualStickState:
    if isinstance(payload, Mapping):
        state = payload.get("state") or {}
        return VirtualStickState(
            enabled=bool(state.get("isVirtualStickEnabled", False)),
            authority_owner=str(state.get("currentFlightControlAuthorityOwner", "UNKNOWN")),
            advanced_mode=bool(state.get("isVirtualStickAdvancedModeEnabled", False)),
            reason=payload.get("reason"),
        )
    return payload


def _to_flight_status(payload: Any) -> FlightStatus:
    if isinstance(payload, Mapping):
        return FlightStatus.from_payload(payload)
    return payload


def _to_mission_event(payload: Any) -> MissionEvent:
    if isinstance(payload, Mapping):
        return MissionEvent.from_payload(payload)
    return payload


class EventRelay:
    """
    Routes flight controller events to their state owners.

    ===================  ==========================================
    Category             Owner
    ===================  ==========================================
    takeoff result       :py:attr:`last_takeoff`
    landing result       :py:attr:`last_landing`
    flight status        :py:attr:`flight_status` (feeds the poller)
    virtual stick state  mission lifecycle controller
    mission events       mission lifecycle controller
    ===================  ==========================================

    Each category has one subscription and one owner. Payloads may be
    model objects or the equivalent mappings.

    Args:
        service: Flight controller service to subscribe to
        lifecycle: Mission lifecycle controller
        poller: Readiness and telemetry poller
    """

    __slots__ = (
        "_service",
        "_lifecycle",
        "_poller",
        "_lock",
        "_subscriptions",
        "flight_status",
        "last_takeoff",
        "last_landing",
    )

    def __init__(
        self,
        service: "FlightControllerService",
        lifecycle: "MissionLifecycleController",
        poller: "TelemetryPoller",
    ) -> None:
        self._service = service
        self._lifecycle = lifecycle
        self._poller = poller
        self._lock = threading.Lock()
        self._subscriptions: dict[EventCategory, Subscription] = {}
        self.flight_status: ObservableValue[FlightStatus] = ObservableValue(
            "flight_status", FlightStatus()
        )
        self.last_takeoff: ObservableValue[TakeoffResult | None] = ObservableValue(
            "takeoff_result", None
        )
        self.last_landing: ObservableValue[LandingResult | None] = ObservableValue(
            "landing_result", None
        )

    @property
    def name(self) -> str:
        """Module name."""
        return "relay"

    @property
    def subscriptions(self) -> dict[EventCategory, Subscription]:
        """Snapshot of the held subscriptions."""
        with self._lock:
            return dict(self._subscriptions)

    def start(self) -> None:
        """
        Subscribe to every upstream category.

        Categories already subscribed are skipped. If the service fails
        part way, the subscriptions made so far are kept so that
        :py:meth:`stop` can revoke them.
        """
        routes: list[tuple[EventCategory, Callable[[Any], None]]] = [
            (EventCategory.TAKEOFF_RESULT, self._handle_takeoff_result),
            (EventCategory.LANDING_RESULT, self._handle_landing_result),
            (EventCategory.FLIGHT_STATUS, self._handle_flight_status),
            (EventCategory.VIRTUAL_STICK_STATE, self._handle_virtual_stick_state),
            (EventCategory.MISSION, self._handle_mission_event),
        ]

        for category, handler in routes:
            with self._lock:
                if category in self._subscriptions:
                    continue
            subscription = self._service.subscribe(category, handler)
            with self._lock:
                self._subscriptions[category] = subscription

        logger.debug("EventRelay subscribed to %d categories", len(routes))

    def stop(self) -> None:
        """Revoke every held subscription exactly once. Idempotent."""
        with self._lock:
            subscriptions = list(self._subscriptions.values())
            self._subscriptions.clear()

        for subscription in subscriptions:
            try:
                subscription.revoke()
            except Exception:
                logger.exception("Error revoking %s", subscription)

        if subscriptions:
            logger.debug("EventRelay revoked %d subscriptions", len(subscriptions))

    def _handle_takeoff_result(self, payload: Any) -> None:
        result: TakeoffResult = _to_result(payload)
        self.last_takeoff.set(result)
        if result.success:
            logger.info("Takeoff: %s", result.message or "started")
        else:
            logger.error("Takeoff failed: %s", result.reason)

    def _handle_landing_result(self, payload: Any) -> None:
        result: LandingResult = _to_result(payload)
        self.last_landing.set(result)
        if result.success:
            logger.info("Landing: %s", result.message or "started")
        else:
            logger.error("Landing failed: %s", result.reason)

    def _handle_flight_status(self, payload: Any) -> None:
        status = _to_flight_status(payload)
        previous = self.flight_status.get()
        self.flight_status.set(status)
        if previous.is_flying != status.is_flying:
            logger.info("Aircraft %s", "flying" if status.is_flying else "on the ground")
        self._poller.on_flight_status(status)

    def _handle_virtual_stick_state(self, payload: Any) -> None:
        self._lifecycle.on_virtual_stick_state(_to_virtual_stick_state(payload))

    def _handle_mission_event(self, payload: Any) -> None:
        self._lifecycle.on_mission_event(_to_mission_event(payload))
