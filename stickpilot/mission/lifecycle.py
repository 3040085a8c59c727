"""
Mission Lifecycle Controller.

This module owns the mission state machine and the virtual stick enable
flag. Every mission state change and every automatic virtual stick
toggle goes through :py:class:`MissionLifecycleController`.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Callable

from stickpilot.core.exceptions import ConfigurationError, InvalidStateError, MissionError, ServiceError
from stickpilot.core.observer import ObservableValue, Observers, Subscription
from stickpilot.models.control_mode import VirtualStickControlMode
from stickpilot.models.mission import (
    MissionEvent,
    MissionEventType,
    MissionOutcome,
    MissionProgress,
    MissionState,
)
from stickpilot.models.result import CommandResult, call_service
from stickpilot.models.status import VirtualStickState

if TYPE_CHECKING:
    from stickpilot.core.types import FlightControllerService, MissionPlanner

logger = logging.getLogger(__name__)

_KEEP = object()

# Valid state transitions
TRANSITIONS: dict[MissionState, frozenset[MissionState]] = {
    MissionState.IDLE: frozenset({MissionState.RUNNING}),
    MissionState.RUNNING: frozenset(
        {MissionState.PAUSED, MissionState.STOPPED, MissionState.IDLE}
    ),
    MissionState.PAUSED: frozenset({MissionState.RUNNING, MissionState.STOPPED}),
    MissionState.STOPPED: frozenset({MissionState.IDLE}),
}


class MissionLifecycleController:
    """
    State machine for mission execution.

    ========  =================  ========  ==========================
    State     Trigger            New       Virtual stick
    ========  =================  ========  ==========================
    IDLE      start() ok         RUNNING   enabled
    RUNNING   pause() ok         PAUSED    disabled
    PAUSED    resume() ok        RUNNING   re-enabled
    RUNNING   stop() ok          IDLE      disabled (via STOPPED)
    PAUSED    stop() ok          IDLE      disabled (via STOPPED)
    RUNNING   completed event    IDLE      disabled
    RUNNING   failed event       IDLE      disabled
    ========  =================  ========  ==========================

    Lifecycle operations raise :py:class:`MissionError` when the planner
    or the flight controller rejects them, and
    :py:class:`InvalidStateError` when called from a state the table
    does not allow; in both cases the state is unchanged.

    Outside a mission, manual flight may toggle virtual stick with
    :py:meth:`set_manual_virtual_stick`.

    Args:
        service: Flight controller service
        planner: Mission planner
        control_mode: Control mode sent before virtual stick is first enabled
    """

    __slots__ = (
        "_service",
        "_planner",
        "_control_mode",
        "_control_mode_configured",
        "_op_lock",
        "_state_lock",
        "_virtual_stick_enabled",
        "_handle",
        "_finished",
        "state",
        "progress",
        "reported_virtual_stick",
    )

    def __init__(
        self,
        service: "FlightControllerService",
        planner: "MissionPlanner",
        control_mode: VirtualStickControlMode | None = None,
    ) -> None:
        self._service = service
        self._planner = planner
        self._control_mode = control_mode or VirtualStickControlMode()
        self._control_mode_configured = False
        # Serializes lifecycle operations and events
        self._op_lock = threading.RLock()
        # Guards the (state, virtual stick) pair; reentrant so state
        # observers may read the flag
        self._state_lock = threading.RLock()
        self._virtual_stick_enabled = False
        self._handle: str | None = None
        self._finished: Observers[MissionOutcome] = Observers("mission_finished")
        self.state: ObservableValue[MissionState] = ObservableValue(
            "mission_state", MissionState.IDLE, cache=True
        )
        self.progress: ObservableValue[MissionProgress | None] = ObservableValue(
            "mission_progress", None
        )
        self.reported_virtual_stick: ObservableValue[VirtualStickState | None] = (
            ObservableValue("virtual_stick_state", None)
        )

    @property
    def name(self) -> str:
        """Module name."""
        return "mission"

    @property
    def mission_state(self) -> MissionState:
        return self.state.get()

    @property
    def virtual_stick_enabled(self) -> bool:
        """Whether virtual stick commands may be sent right now."""
        with self._state_lock:
            return self._virtual_stick_enabled

    @property
    def handle(self) -> str | None:
        """Handle of the active mission."""
        with self._state_lock:
            return self._handle

    def on_finished(self, callback: Callable[[MissionOutcome], None]) -> Subscription:
        """Register a callback for mission completion or failure."""
        return self._finished.add(callback)

    # Lifecycle operations

    def start(self, handle: str) -> None:
        """
        Start a mission.

        Raises:
            InvalidStateError: If a mission is already active
            ConfigurationError: If the control mode cannot be configured
            MissionError: If the planner or the flight controller rejects it
        """
        with self._op_lock:
            self._require("start", MissionState.IDLE)
            self._ensure_control_mode()

            result = call_service(self._planner.start_mission, handle)
            if not result.success:
                logger.error("Failed to start mission %s: %s", handle, result.reason)
                raise MissionError(f"Failed to start mission: {result.reason}")

            enabled = self._set_virtual_stick(True)
            if not enabled.success:
                logger.error("Failed to enable virtual stick: %s", enabled.reason)
                stopped = call_service(self._planner.stop_mission)
                if not stopped.success:
                    logger.error("Failed to stop mission after enable failure: %s", stopped.reason)
                raise MissionError(f"Failed to enable virtual stick: {enabled.reason}")

            self.progress.set(None)
            self._commit(MissionState.RUNNING, True, handle=handle)
            logger.info("Mission %s started", handle)

    def pause(self) -> None:
        """
        Pause the running mission and hand control back to the remote.

        Raises:
            InvalidStateError: If no mission is running
            MissionError: If the planner rejects the pause, or if virtual
                stick cannot be disabled (the mission is paused regardless)
        """
        with self._op_lock:
            self._require("pause", MissionState.RUNNING)

            result = call_service(self._planner.pause_mission)
            if not result.success:
                logger.error("Failed to pause mission: %s", result.reason)
                raise MissionError(f"Failed to pause mission: {result.reason}")

            disabled = self._set_virtual_stick(False)
            self._commit(MissionState.PAUSED, False)
            if not disabled.success:
                logger.error("Mission paused but virtual stick disable failed: %s", disabled.reason)
                raise MissionError(
                    f"Mission paused but virtual stick disable failed: {disabled.reason}"
                )
            logger.info("Mission paused")

    def resume(self) -> None:
        """
        Resume a paused mission.

        Raises:
            InvalidStateError: If the mission is not paused
            MissionError: If the planner or the flight controller rejects it
        """
        with self._op_lock:
            self._require("resume", MissionState.PAUSED)

            result = call_service(self._planner.resume_mission)
            if not result.success:
                logger.error("Failed to resume mission: %s", result.reason)
                raise MissionError(f"Failed to resume mission: {result.reason}")

            enabled = self._set_virtual_stick(True)
            if not enabled.success:
                logger.error("Failed to re-enable virtual stick: %s", enabled.reason)
                repaused = call_service(self._planner.pause_mission)
                if not repaused.success:
                    logger.error("Failed to pause mission again: %s", repaused.reason)
                raise MissionError(f"Failed to resume virtual stick mode: {enabled.reason}")

            self._commit(MissionState.RUNNING, True)
            logger.info("Mission resumed")

    def stop(self) -> None:
        """
        Stop the active mission.

        Raises:
            InvalidStateError: If no mission is active
            MissionError: If the planner rejects the stop, or if virtual
                stick cannot be disabled (the mission is stopped regardless)
        """
        with self._op_lock:
            self._require("stop", MissionState.RUNNING, MissionState.PAUSED)

            result = call_service(self._planner.stop_mission)
            if not result.success:
                logger.error("Failed to stop mission: %s", result.reason)
                raise MissionError(f"Failed to stop mission: {result.reason}")

            released = self._release_virtual_stick()
            self._commit(MissionState.STOPPED, False)
            self._commit(MissionState.IDLE, False, handle=None)
            self.progress.set(None)
            if not released.success:
                raise MissionError(
                    f"Mission stopped but virtual stick disable failed: {released.reason}"
                )
            logger.info("Mission stopped")

    def set_manual_virtual_stick(self, enabled: bool) -> None:
        """
        Enable or disable virtual stick for manual flight.

        Only allowed while no mission is active.

        Raises:
            InvalidStateError: If a mission is active
            ConfigurationError: If the control mode cannot be configured
            ServiceError: If the flight controller rejects the change
        """
        with self._op_lock:
            self._require(
                "enable virtual stick" if enabled else "disable virtual stick",
                MissionState.IDLE,
            )
            if enabled:
                self._ensure_control_mode()
            result = self._set_virtual_stick(enabled)
            if not result.success:
                action = "enable" if enabled else "disable"
                raise ServiceError(f"Failed to {action} virtual stick: {result.reason}")
            with self._state_lock:
                self._virtual_stick_enabled = enabled
            logger.info("Virtual stick %s", "enabled" if enabled else "disabled")

    # Upstream events

    def on_mission_event(self, event: MissionEvent) -> None:
        """Handle a mission notification from the planner."""
        with self._op_lock:
            state = self.state.get()

            if event.type is MissionEventType.PROGRESS and event.progress is not None:
                if state not in (MissionState.RUNNING, MissionState.PAUSED):
                    logger.debug("Ignoring progress while %s", state.value)
                    return
                self._update_progress(event.progress)
                if state is MissionState.RUNNING and event.progress.is_complete:
                    self._finish(MissionOutcome(completed=True))

            elif event.type is MissionEventType.COMPLETED:
                if state is MissionState.RUNNING:
                    self._finish(MissionOutcome(completed=True))
                else:
                    logger.warning("Ignoring completion while %s", state.value)

            elif event.type is MissionEventType.FAILED:
                if state is MissionState.RUNNING:
                    reason = event.error or "The mission failed for an unknown reason."
                    self._finish(MissionOutcome(completed=False, reason=reason))
                else:
                    logger.warning("Ignoring failure while %s: %s", state.value, event.error)

            else:
                logger.debug("Mission event %s while %s", event.type.value, state.value)

    def on_virtual_stick_state(self, state: VirtualStickState) -> None:
        """Handle a virtual stick state report from the flight controller."""
        self.reported_virtual_stick.set(state)
        if not state.enabled and self.mission_state is MissionState.RUNNING:
            logger.warning(
                "Virtual stick reported disabled during mission (authority: %s, reason: %s)",
                state.authority_owner,
                state.reason,
            )

    # Internals

    def _require(self, operation: str, *allowed: MissionState) -> None:
        state = self.state.get()
        if state not in allowed:
            raise InvalidStateError(f"Cannot {operation} while mission is {state.value}")

    def _commit(
        self,
        new_state: MissionState,
        virtual_stick: bool,
        handle: object = _KEEP,
    ) -> None:
        # The (state, flag) pair changes under one lock
        with self._state_lock:
            current = self.state.get()
            if new_state not in TRANSITIONS[current]:
                raise InvalidStateError(
                    f"Invalid transition {current.value} -> {new_state.value}"
                )
            self._virtual_stick_enabled = virtual_stick
            if handle is not _KEEP:
                self._handle = handle
            logger.debug("Mission state %s -> %s", current.value, new_state.value)
            self.state.set(new_state)

    def _ensure_control_mode(self) -> None:
        if self._control_mode_configured:
            return
        result = call_service(self._service.set_virtual_stick_control_mode, self._control_mode)
        if not result.success:
            raise ConfigurationError(
                f"Failed to set virtual stick control mode: {result.reason}"
            )
        self._control_mode_configured = True
        logger.debug("Configured %s", self._control_mode)

    def _set_virtual_stick(self, enabled: bool) -> CommandResult:
        return call_service(self._service.set_virtual_stick_enabled, enabled)

    def _release_virtual_stick(self) -> CommandResult:
        if not self.virtual_stick_enabled:
            return CommandResult.ok()
        result = self._set_virtual_stick(False)
        if not result.success:
            logger.error("Failed to disable virtual stick: %s", result.reason)
        return result

    def _update_progress(self, progress: MissionProgress) -> None:
        previous = self.progress.get()
        self.progress.set(progress)
        was_waiting = previous is not None and previous.awaiting_gps_lock
        if progress.awaiting_gps_lock and not was_waiting:
            logger.info("Holding position, waiting for GPS lock")
        elif was_waiting and not progress.awaiting_gps_lock:
            logger.info("GPS lock acquired, navigating")

    def _finish(self, outcome: MissionOutcome) -> None:
        self._release_virtual_stick()
        self._commit(MissionState.IDLE, False, handle=None)
        if outcome.completed:
            logger.info("Mission complete")
        else:
            logger.error("Mission failed: %s", outcome.reason)
        self._finished.notify(outcome)
