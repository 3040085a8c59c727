"""
MAVLink Flight Controller Service.

This module implements the flight controller service contract on top of
a pymavlink connection. A reader thread turns incoming telemetry into
flight status, altitude and command results, and publishes them on an
:py:class:`~stickpilot.core.events.EventBus`. Virtual stick commands
are sent as RC channel overrides.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

import monotonic
from pymavlink import mavutil

from stickpilot.channels.override import StickOverride
from stickpilot.core.events import EventBus, EventCategory
from stickpilot.core.exceptions import APIException, ServiceError, TimeoutError
from stickpilot.core.observer import Subscription
from stickpilot.models.control_mode import VerticalMode, VirtualStickControlMode
from stickpilot.models.result import CommandResult
from stickpilot.models.status import (
    AltitudeInfo,
    FlightStatus,
    ReadinessCheck,
    VirtualStickState,
)
from stickpilot.models.sticks import StickAxes

logger = logging.getLogger(__name__)
autopilot_logger = logging.getLogger("autopilot")

# Heartbeats from these are not the vehicle
_NON_VEHICLE_TYPES = (
    mavutil.mavlink.MAV_TYPE_GCS,
    mavutil.mavlink.MAV_TYPE_GIMBAL,
    mavutil.mavlink.MAV_TYPE_ADSB,
    mavutil.mavlink.MAV_TYPE_ONBOARD_CONTROLLER,
)

_AIRBORNE_STATES = (
    mavutil.mavlink.MAV_LANDED_STATE_IN_AIR,
    mavutil.mavlink.MAV_LANDED_STATE_TAKEOFF,
    mavutil.mavlink.MAV_LANDED_STATE_LANDING,
)

_ACCEPTED_RESULTS = (
    mavutil.mavlink.MAV_RESULT_ACCEPTED,
    mavutil.mavlink.MAV_RESULT_IN_PROGRESS,
)

GPS_FIX_3D = 3

# Used when the vehicle does not report EXTENDED_SYS_STATE
_AIRBORNE_ALTITUDE = 0.5


def _severity_to_level(severity: int) -> int:
    if severity <= mavutil.mavlink.MAV_SEVERITY_ERROR:
        return logging.ERROR
    if severity == mavutil.mavlink.MAV_SEVERITY_WARNING:
        return logging.WARNING
    if severity <= mavutil.mavlink.MAV_SEVERITY_INFO:
        return logging.INFO
    return logging.DEBUG


class MavlinkFlightService:
    """
    Flight controller service over MAVLink.

    Readiness follows the checks of the flight controller: no link,
    motors already running, already flying, no 3D GPS fix.

    Takeoff switches to GUIDED, arms and sends ``MAV_CMD_NAV_TAKEOFF``;
    landing sends ``MAV_CMD_NAV_LAND``; cancelling a landing switches to
    LOITER. Their COMMAND_ACKs are published as takeoff/landing results.

    Enabling virtual stick takes over the RC channels with centered
    sticks, which position-hold modes treat as hover. Disabling hands
    the channels back to the transmitter. While enabled, the last override is repeated every
    ``keepalive_interval`` so the flight controller does not time it out.

    Args:
        connection_string: pymavlink connection string (e.g. "udpin:0.0.0.0:14550")
        baud: Baud rate for serial connections
        source_system: Our MAVLink system ID
        source_component: Our MAVLink component ID
        heartbeat_timeout: Seconds without heartbeat before the link is down
        takeoff_altitude: Takeoff target altitude in metres
        deadzone: Stick deadzone applied before sending overrides
        keepalive_interval: Seconds between repeats of the active override
        event_bus: Bus to publish on (a new one if omitted)
        connect: Connection factory, defaults to ``mavutil.mavlink_connection``
    """

    def __init__(
        self,
        connection_string: str,
        baud: int = 57600,
        source_system: int = 255,
        source_component: int = 0,
        heartbeat_timeout: float = 5.0,
        takeoff_altitude: float = 5.0,
        deadzone: float = 0.02,
        keepalive_interval: float = 0.2,
        event_bus: EventBus | None = None,
        connect: Callable[..., Any] = mavutil.mavlink_connection,
    ) -> None:
        self._connection_string = connection_string
        self._baud = baud
        self._source_system = source_system
        self._source_component = source_component
        self._heartbeat_timeout = heartbeat_timeout
        self._takeoff_altitude = takeoff_altitude
        self._connect = connect
        self._bus = event_bus or EventBus()
        self._override = StickOverride(deadzone=deadzone)
        self._keepalive_interval = keepalive_interval

        self.master: Any = None
        self._write_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._alive = False
        self._reader: threading.Thread | None = None
        self._keepalive_stop = threading.Event()
        self._keepalive: threading.Thread | None = None

        self._target_system = 0
        self._target_component = 0
        self._last_heartbeat: float | None = None
        self._armed = False
        self._mode = "UNKNOWN"
        self._landed_state: int | None = None
        self._relative_alt: float | None = None
        self._gps_fix: int | None = None
        self._control_mode: VirtualStickControlMode | None = None
        self._virtual_stick_enabled = False
        self._published_status: FlightStatus | None = None
        # MAV_CMD id -> category its COMMAND_ACK is published on
        self._pending_acks: dict[int, EventCategory] = {}

        self._handlers: dict[str, Callable[[Any], None]] = {
            "HEARTBEAT": self._handle_heartbeat,
            "EXTENDED_SYS_STATE": self._handle_extended_sys_state,
            "GLOBAL_POSITION_INT": self._handle_global_position,
            "GPS_RAW_INT": self._handle_gps_raw,
            "COMMAND_ACK": self._handle_command_ack,
            "STATUSTEXT": self._handle_statustext,
        }

    @property
    def name(self) -> str:
        """Module name."""
        return "mavlink"

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    # Connection management

    def start(self, wait_heartbeat: bool = True, timeout: float = 30.0) -> None:
        """
        Open the connection and start the reader thread.

        Raises:
            TimeoutError: If no heartbeat arrives within ``timeout``
        """
        self.master = self._connect(
            self._connection_string,
            baud=self._baud,
            source_system=self._source_system,
            source_component=self._source_component,
        )
        self._override.set_connection(self.master)

        if wait_heartbeat:
            msg = self.master.wait_heartbeat(timeout=timeout)
            if msg is None:
                self.master.close()
                raise TimeoutError(f"No heartbeat from {self._connection_string}")
            self.process_message(msg)

        self._alive = True
        t = threading.Thread(target=self._reader_loop, name="stickpilot-mavlink-in")
        t.daemon = True
        self._reader = t
        t.start()

        self._keepalive_stop.clear()
        k = threading.Thread(target=self._keepalive_loop, name="stickpilot-mavlink-keepalive")
        k.daemon = True
        self._keepalive = k
        k.start()
        logger.info("Connected to %s", self._connection_string)

    def close(self) -> None:
        """Release overrides, stop the reader and keepalive threads and close the link."""
        if self.master is None:
            return
        self._keepalive_stop.set()
        keepalive = self._keepalive
        self._keepalive = None
        if keepalive is not None and keepalive is not threading.current_thread():
            keepalive.join(timeout=2.0)
        if self._virtual_stick_enabled:
            try:
                self._override.release()
            except Exception:
                logger.exception("Failed to release stick override on close")
        self._alive = False
        reader = self._reader
        self._reader = None
        if reader is not None and reader is not threading.current_thread():
            reader.join(timeout=2.0)
        self.master.close()
        self.master = None

    def _reader_loop(self) -> None:
        """Input thread - receives and dispatches messages."""
        while self._alive:
            try:
                msg = self.master.recv_match(blocking=True, timeout=0.5)
            except mavutil.mavlink.MAVError as e:
                logger.debug("mav recv error: %s", e)
                msg = None
            except Exception:
                if self._alive:
                    logger.exception("Exception in MAVLink input loop")
                    self._alive = False
                break

            if msg is None:
                self._publish_status()
                continue
            self.process_message(msg)

    def _keepalive_loop(self) -> None:
        """Keepalive thread - repeats the active override until released."""
        while not self._keepalive_stop.wait(self._keepalive_interval):
            if not self._virtual_stick_enabled:
                continue
            try:
                self._override.resend()
            except Exception:
                logger.exception("Failed to repeat stick override")

    def process_message(self, msg: Any) -> None:
        """Route one received MAVLink message to its handler."""
        handler = self._handlers.get(msg.get_type())
        if handler is None:
            return
        try:
            handler(msg)
        except Exception:
            logger.exception("Exception in message handler for %s", msg.get_type())

    @property
    def is_connected(self) -> bool:
        """Heartbeat received within the timeout."""
        if self._last_heartbeat is None:
            return False
        return (monotonic.monotonic() - self._last_heartbeat) < self._heartbeat_timeout

    # Message handlers

    def _handle_heartbeat(self, msg: Any) -> None:
        if msg.type in _NON_VEHICLE_TYPES:
            return
        with self._state_lock:
            self._last_heartbeat = monotonic.monotonic()
            self._target_system = msg.get_srcSystem()
            self._target_component = msg.get_srcComponent()
            self._armed = bool(msg.base_mode & mavutil.mavlink.MAV_MODE_FLAG_SAFETY_ARMED)
            self._mode = mavutil.mode_string_v10(msg)
        self._override.set_target(self._target_system, self._target_component)
        self._publish_status()

    def _handle_extended_sys_state(self, msg: Any) -> None:
        with self._state_lock:
            self._landed_state = msg.landed_state
        self._publish_status()

    def _handle_global_position(self, msg: Any) -> None:
        with self._state_lock:
            self._relative_alt = msg.relative_alt / 1000.0
        self._publish_status()

    def _handle_gps_raw(self, msg: Any) -> None:
        with self._state_lock:
            self._gps_fix = msg.fix_type

    def _handle_command_ack(self, msg: Any) -> None:
        with self._state_lock:
            category = self._pending_acks.pop(msg.command, None)
        if category is None:
            return
        if msg.result in _ACCEPTED_RESULTS:
            action = "Takeoff" if category is EventCategory.TAKEOFF_RESULT else "Landing"
            result = CommandResult.ok(f"{action} started successfully")
        else:
            result = CommandResult.failed(f"Command rejected (MAV_RESULT {msg.result})")
        self._bus.publish(category, result)

    def _handle_statustext(self, msg: Any) -> None:
        text = msg.text
        if isinstance(text, bytes):
            text = text.decode("utf-8", errors="replace")
        autopilot_logger.log(_severity_to_level(msg.severity), text.rstrip("\x00"))

    def _is_flying(self) -> bool:
        if self._landed_state is not None:
            return self._landed_state in _AIRBORNE_STATES
        return self._armed and (self._relative_alt or 0.0) > _AIRBORNE_ALTITUDE

    def _publish_status(self) -> None:
        status = self.get_flight_status()
        with self._state_lock:
            if status == self._published_status:
                return
            self._published_status = status
        self._bus.publish(EventCategory.FLIGHT_STATUS, status)

    # FlightControllerService

    def subscribe(self, category: EventCategory, handler: Callable[[Any], None]) -> Subscription:
        return self._bus.subscribe(category, handler)

    def get_flight_status(self) -> FlightStatus:
        connected = self.is_connected
        with self._state_lock:
            return FlightStatus(
                is_connected=connected,
                are_motors_on=self._armed,
                is_flying=self._is_flying(),
                flight_mode=self._mode,
            )

    def get_altitude(self) -> AltitudeInfo:
        with self._state_lock:
            altitude = self._relative_alt
        if altitude is None:
            raise ServiceError("Altitude not available")
        return AltitudeInfo(altitude=altitude)

    def is_ready_for_takeoff(self) -> ReadinessCheck:
        if self.master is None or not self.is_connected:
            return ReadinessCheck(False, "No drone connected")
        status = self.get_flight_status()
        if status.are_motors_on:
            return ReadinessCheck(False, "Motors are already running")
        if status.is_flying:
            return ReadinessCheck(False, "Aircraft is already flying")
        with self._state_lock:
            gps_fix = self._gps_fix
        if gps_fix is not None and gps_fix < GPS_FIX_3D:
            return ReadinessCheck(False, "Waiting for GPS fix")
        return ReadinessCheck(True, "Ready for takeoff")

    def request_takeoff(self) -> CommandResult:
        if not self.is_connected:
            return CommandResult.failed("No drone connected")
        self._set_mode("GUIDED")
        with self._write_lock:
            self.master.arducopter_arm()
        self._command_long(
            mavutil.mavlink.MAV_CMD_NAV_TAKEOFF,
            EventCategory.TAKEOFF_RESULT,
            0, 0, 0, 0, 0, 0, self._takeoff_altitude,
        )
        return CommandResult.ok("Takeoff started")

    def request_landing(self) -> CommandResult:
        if not self.is_connected:
            return CommandResult.failed("No drone connected")
        self._command_long(
            mavutil.mavlink.MAV_CMD_NAV_LAND,
            EventCategory.LANDING_RESULT,
            0, 0, 0, 0, 0, 0, 0,
        )
        return CommandResult.ok("Landing started")

    def cancel_landing(self) -> CommandResult:
        if not self.is_connected:
            return CommandResult.failed("No drone connected")
        self._set_mode("LOITER")
        return CommandResult.ok("Landing cancelled")

    def set_virtual_stick_control_mode(self, mode: VirtualStickControlMode) -> CommandResult:
        if mode.vertical is VerticalMode.POSITION:
            return CommandResult.failed("Vertical POSITION mode is not supported over RC override")
        self._control_mode = mode
        logger.debug("Virtual stick control mode set to %s", mode)
        return CommandResult.ok("Control mode configured")

    def set_virtual_stick_enabled(self, enabled: bool) -> CommandResult:
        if not self.is_connected:
            return CommandResult.failed("No drone connected")
        if enabled and self._control_mode is None:
            return CommandResult.failed("Control mode must be set before enabling virtual stick")

        if enabled:
            self._override.send(StickAxes.zero())
        else:
            self._override.release()
        self._virtual_stick_enabled = enabled

        self._bus.publish(
            EventCategory.VIRTUAL_STICK_STATE,
            VirtualStickState(
                enabled=enabled,
                authority_owner="GCS" if enabled else "RC",
                advanced_mode=False,
            ),
        )
        return CommandResult.ok("Virtual stick enabled" if enabled else "Virtual stick disabled")

    def send_stick_command(self, axes: StickAxes) -> CommandResult:
        if not self._virtual_stick_enabled:
            if axes.is_zero:
                return CommandResult.ok("Virtual stick not enabled, nothing to stop")
            return CommandResult.failed("Virtual stick not enabled")
        self._override.send(axes)
        return CommandResult.ok()

    # Helpers

    def _set_mode(self, mode_name: str) -> None:
        mapping = self.master.mode_mapping() or {}
        if mode_name not in mapping:
            raise ServiceError(f"Unknown mode: {mode_name}")
        with self._write_lock:
            self.master.set_mode(mapping[mode_name])

    def _command_long(self, command: int, category: EventCategory, *params: float) -> None:
        if self.master is None:
            raise APIException("No connection available")
        with self._state_lock:
            self._pending_acks[command] = category
        with self._write_lock:
            self.master.mav.command_long_send(
                self._target_system,
                self._target_component,
                command,
                0,  # confirmation
                *params,
            )
