import threading
import time

import pytest
from pymavlink import mavutil

from stickpilot.core.events import EventBus
from stickpilot.models.result import CommandResult
from stickpilot.models.status import AltitudeInfo, FlightStatus, ReadinessCheck


class FakeFlightService:
    """In-memory flight controller service.

    ``fail[name]`` makes the named call fail: a string gives a failed
    CommandResult, an exception instance is raised.
    """

    def __init__(self) -> None:
        self.bus = EventBus()
        self.calls: list[tuple] = []
        self.stick_commands: list = []
        self.fail: dict[str, object] = {}
        self.readiness = ReadinessCheck(True, "Ready for takeoff")
        self.status = FlightStatus(is_connected=True)
        self.altitude = AltitudeInfo(12.5)
        self._lock = threading.Lock()

    def _call(self, name: str, *args) -> CommandResult:
        with self._lock:
            self.calls.append((name,) + args)
        failure = self.fail.get(name)
        if isinstance(failure, BaseException):
            raise failure
        if failure is not None:
            return CommandResult.failed(str(failure))
        return CommandResult.ok()

    def names(self) -> list[str]:
        with self._lock:
            return [c[0] for c in self.calls]

    def is_ready_for_takeoff(self) -> ReadinessCheck:
        self._call("is_ready_for_takeoff")
        return self.readiness

    def request_takeoff(self) -> CommandResult:
        return self._call("request_takeoff")

    def request_landing(self) -> CommandResult:
        return self._call("request_landing")

    def cancel_landing(self) -> CommandResult:
        return self._call("cancel_landing")

    def set_virtual_stick_enabled(self, enabled: bool) -> CommandResult:
        return self._call("set_virtual_stick_enabled", enabled)

    def set_virtual_stick_control_mode(self, mode) -> CommandResult:
        return self._call("set_virtual_stick_control_mode", mode)

    def send_stick_command(self, axes) -> CommandResult:
        result = self._call("send_stick_command", axes)
        with self._lock:
            self.stick_commands.append(axes)
        return result

    def get_flight_status(self) -> FlightStatus:
        self._call("get_flight_status")
        return self.status

    def get_altitude(self) -> AltitudeInfo:
        self._call("get_altitude")
        return self.altitude

    def subscribe(self, category, handler):
        return self.bus.subscribe(category, handler)


class FakePlanner:
    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.fail: dict[str, object] = {}

    def _call(self, name: str, *args) -> CommandResult:
        self.calls.append((name,) + args)
        failure = self.fail.get(name)
        if isinstance(failure, BaseException):
            raise failure
        if failure is not None:
            return CommandResult.failed(str(failure))
        return CommandResult.ok()

    def names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def start_mission(self, handle: str) -> CommandResult:
        return self._call("start_mission", handle)

    def pause_mission(self) -> CommandResult:
        return self._call("pause_mission")

    def resume_mission(self) -> CommandResult:
        return self._call("resume_mission")

    def stop_mission(self) -> CommandResult:
        return self._call("stop_mission")


class FakeGate:
    def __init__(self, enabled: bool = True) -> None:
        self.virtual_stick_enabled = enabled


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeMav:
    def __init__(self) -> None:
        self.rc_override_calls: list[tuple] = []
        self.command_long_calls: list[tuple] = []

    def rc_channels_override_send(self, *args) -> None:
        self.rc_override_calls.append(args)

    def command_long_send(self, *args) -> None:
        self.command_long_calls.append(args)


class FakeMessage:
    def __init__(self, msg_type: str, src_system: int = 1, src_component: int = 1, **fields) -> None:
        self._type = msg_type
        self._src_system = src_system
        self._src_component = src_component
        self.__dict__.update(fields)

    def get_type(self) -> str:
        return self._type

    def get_srcSystem(self) -> int:
        return self._src_system

    def get_srcComponent(self) -> int:
        return self._src_component


def make_heartbeat(armed=False, custom_mode=4, vehicle_type=mavutil.mavlink.MAV_TYPE_QUADROTOR):
    """ArduCopter heartbeat, GUIDED by default."""
    base_mode = mavutil.mavlink.MAV_MODE_FLAG_CUSTOM_MODE_ENABLED
    if armed:
        base_mode |= mavutil.mavlink.MAV_MODE_FLAG_SAFETY_ARMED
    return FakeMessage(
        "HEARTBEAT",
        type=vehicle_type,
        autopilot=mavutil.mavlink.MAV_AUTOPILOT_ARDUPILOTMEGA,
        base_mode=base_mode,
        custom_mode=custom_mode,
        system_status=mavutil.mavlink.MAV_STATE_STANDBY,
    )


class FakeConnection:
    """Stands in for a pymavlink mavfile."""

    MODES = {"STABILIZE": 0, "GUIDED": 4, "LOITER": 5, "LAND": 9}

    def __init__(self, endpoint: str, heartbeat=None) -> None:
        self.endpoint = endpoint
        self.mav = FakeMav()
        self.closed = False
        self.heartbeat = heartbeat
        self.modes_set: list[int] = []
        self.arm_calls = 0
        self.connect_kwargs: dict = {}

    def wait_heartbeat(self, timeout=None):
        return self.heartbeat

    def recv_match(self, blocking=False, timeout=None):
        time.sleep(0.01)
        return None

    def mode_mapping(self):
        return dict(self.MODES)

    def set_mode(self, mode) -> None:
        self.modes_set.append(mode)

    def arducopter_arm(self) -> None:
        self.arm_calls += 1

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def service() -> FakeFlightService:
    return FakeFlightService()


@pytest.fixture
def planner() -> FakePlanner:
    return FakePlanner()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
