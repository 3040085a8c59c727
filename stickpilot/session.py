"""
Control Session.

This module wires the control core together: gesture encoding, command
dispatch, telemetry polling, the mission lifecycle and event relaying,
behind one object the operator surface talks to.

Example:
    >>> with ControlSession(service, planner) as session:
    ...     session.takeoff()
    ...     session.enable_virtual_stick()
    ...     session.on_gesture(StickAssignment.RIGHT, 20, -35)
    ...     session.on_release(StickAssignment.RIGHT)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from pymavlink import mavutil

from stickpilot.channels.dispatch import DispatchLimiter
from stickpilot.channels.encoder import CommandEncoder, JoystickGeometry
from stickpilot.config import ControlConfig
from stickpilot.core.exceptions import ServiceError
from stickpilot.core.observer import ObservableValue
from stickpilot.datalink.relay import EventRelay
from stickpilot.health.poller import TelemetryPoller
from stickpilot.logs.buffer import DebugLogBuffer
from stickpilot.logs.handlers import setup_stickpilot_logging
from stickpilot.mission.lifecycle import MissionLifecycleController
from stickpilot.models.mission import MissionProgress, MissionState
from stickpilot.models.result import CommandResult, call_service
from stickpilot.models.status import AltitudeInfo, FlightStatus, ReadinessCheck
from stickpilot.models.sticks import GestureVector, StickAssignment, StickAxes

if TYPE_CHECKING:
    from stickpilot.core.types import FlightControllerService, MissionPlanner

logger = logging.getLogger(__name__)


def _level(name: str) -> int:
    return logging.getLevelName(name.upper())


class ControlSession:
    """
    Facade over the control core.

    Args:
        service: Flight controller service
        planner: Mission planner
        config: Session configuration (defaults if omitted)
        log_buffer: Debug buffer to mirror log records into (a new one if omitted)
    """

    def __init__(
        self,
        service: "FlightControllerService",
        planner: "MissionPlanner",
        config: ControlConfig | None = None,
        log_buffer: DebugLogBuffer | None = None,
    ) -> None:
        self._config = config or ControlConfig()
        self._service = service
        self._owned_service: Any = None
        self._opened = False
        self._log_handler: logging.Handler | None = None

        self._logs = log_buffer or DebugLogBuffer(self._config.logs.capacity)
        geometry = JoystickGeometry(self._config.joystick.size, self._config.joystick.knob_size)
        self._encoder = CommandEncoder.from_geometry(geometry)
        self._lifecycle = MissionLifecycleController(
            service, planner, self._config.control_mode.to_mode()
        )
        self._dispatcher = DispatchLimiter(
            service, self._lifecycle, self._config.dispatch.min_interval
        )
        self._poller = TelemetryPoller(
            service,
            self._config.polling.readiness_interval,
            self._config.polling.altitude_interval,
        )
        self._relay = EventRelay(service, self._lifecycle, self._poller)

    @classmethod
    def with_mavlink(
        cls,
        planner: "MissionPlanner",
        config: ControlConfig | None = None,
        connect: Callable[..., Any] = mavutil.mavlink_connection,
    ) -> "ControlSession":
        """
        Create a session driving a MAVLink vehicle.

        The connection is opened here and closed with the session.

        Raises:
            TimeoutError: If the vehicle sends no heartbeat
        """
        from stickpilot.datalink.mavlink_service import MavlinkFlightService

        config = config or ControlConfig()
        conn = config.connection
        service = MavlinkFlightService(
            conn.connection_string,
            baud=conn.baud,
            source_system=conn.source_system,
            heartbeat_timeout=conn.heartbeat_timeout,
            takeoff_altitude=conn.takeoff_altitude,
            deadzone=config.dispatch.deadzone,
            keepalive_interval=conn.keepalive_interval,
            connect=connect,
        )
        service.start()
        session = cls(service, planner, config)
        session._owned_service = service
        return session

    # Lifecycle

    def open(self) -> "ControlSession":
        """
        Start logging, event relaying, polling and dispatching.

        If a step fails, whatever was started is torn down again before
        the exception propagates.
        """
        if self._opened:
            return self
        self._opened = True
        try:
            self._log_handler = setup_stickpilot_logging(
                _level(self._config.logs.level),
                _level(self._config.logs.autopilot_level),
                self._logs,
            )
            self._relay.start()
            self._seed_flight_status()
            self._poller.start()
            self._dispatcher.start()
        except Exception:
            logger.exception("Failed to open control session")
            self.close()
            raise
        logger.info("Control session opened")
        return self

    def close(self) -> None:
        """Stop dispatching and polling, and drop every subscription. Idempotent."""
        if not self._opened:
            return
        self._opened = False
        self._dispatcher.stop()
        self._poller.stop()
        self._relay.stop()
        if self._owned_service is not None:
            try:
                self._owned_service.close()
            except Exception:
                logger.exception("Error closing flight controller connection")
            self._owned_service = None
        logger.info("Control session closed")
        if self._log_handler is not None:
            for name in ("stickpilot", "autopilot"):
                logging.getLogger(name).removeHandler(self._log_handler)
            self._log_handler = None

    def __enter__(self) -> "ControlSession":
        return self.open()

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def _seed_flight_status(self) -> None:
        try:
            status = self._service.get_flight_status()
        except Exception as e:
            logger.warning("Initial flight status unavailable: %s", e)
            return
        self._relay.flight_status.set(status)
        self._poller.on_flight_status(status)

    # Observable state

    @property
    def is_open(self) -> bool:
        return self._opened

    @property
    def flight_status(self) -> ObservableValue[FlightStatus]:
        return self._relay.flight_status

    @property
    def readiness(self) -> ObservableValue[ReadinessCheck | None]:
        return self._poller.readiness

    @property
    def altitude(self) -> ObservableValue[AltitudeInfo | None]:
        return self._poller.altitude

    @property
    def mission_state(self) -> ObservableValue[MissionState]:
        return self._lifecycle.state

    @property
    def mission_progress(self) -> ObservableValue[MissionProgress | None]:
        return self._lifecycle.progress

    @property
    def logs(self) -> DebugLogBuffer:
        return self._logs

    @property
    def lifecycle(self) -> MissionLifecycleController:
        return self._lifecycle

    @property
    def relay(self) -> EventRelay:
        return self._relay

    @property
    def poller(self) -> TelemetryPoller:
        return self._poller

    @property
    def dispatcher(self) -> DispatchLimiter:
        return self._dispatcher

    # Gestures

    def on_gesture(self, assignment: StickAssignment, dx: float, dy: float) -> StickAxes:
        """Encode a knob displacement and queue the merged command."""
        axes = self._encoder.update(assignment, GestureVector(dx, dy))
        self._dispatcher.on_input_change(axes)
        return axes

    def on_release(self, assignment: StickAssignment) -> CommandResult:
        """
        A stick was let go: center both sticks and send the stop command.

        Letting go of either stick stops the aircraft.
        """
        self._encoder.reset()
        return self._dispatcher.on_input_release()

    # Flight commands

    def check_readiness(self) -> ReadinessCheck:
        """Run a readiness check now and publish it."""
        check = self._service.is_ready_for_takeoff()
        self._poller.readiness.set(check)
        return check

    def takeoff(self) -> CommandResult:
        """
        Check readiness, then request takeoff.

        Raises:
            ServiceError: If the aircraft is not ready or the request fails
        """
        try:
            check = self.check_readiness()
        except Exception as e:
            raise ServiceError(f"Readiness check failed: {e}") from e
        if not check.ready:
            logger.warning("Takeoff refused: %s", check.reason)
            raise ServiceError(check.reason)
        logger.info("Requesting takeoff")
        return call_service(self._service.request_takeoff).raise_for_failure()

    def land(self) -> CommandResult:
        """
        Request landing.

        Raises:
            ServiceError: If the request fails
        """
        logger.info("Requesting landing")
        return call_service(self._service.request_landing).raise_for_failure()

    def cancel_landing(self) -> CommandResult:
        logger.info("Cancelling landing")
        return call_service(self._service.cancel_landing).raise_for_failure()

    def enable_virtual_stick(self) -> None:
        """Take stick control for manual flight (no mission active)."""
        self._lifecycle.set_manual_virtual_stick(True)

    def disable_virtual_stick(self) -> None:
        self._lifecycle.set_manual_virtual_stick(False)

    # Missions

    def start_mission(self, handle: str) -> None:
        self._lifecycle.start(handle)

    def pause_mission(self) -> None:
        self._lifecycle.pause()

    def resume_mission(self) -> None:
        self._lifecycle.resume()

    def stop_mission(self) -> None:
        self._lifecycle.stop()
