import pytest

from stickpilot.core.exceptions import ServiceError
from stickpilot.models.control_mode import (
    CoordinateSystem,
    RollPitchMode,
    VerticalMode,
    VirtualStickControlMode,
    YawMode,
)
from stickpilot.models.mission import MissionEvent, MissionEventType, MissionOutcome, MissionProgress
from stickpilot.models.result import CommandResult, call_service
from stickpilot.models.status import FlightStatus, ReadinessCheck, ReadinessLevel
from stickpilot.models.sticks import StickAssignment, StickAxes


def test_stick_axes_are_clamped():
    axes = StickAxes(yaw=3.0, throttle=-7.5, roll=0.25, pitch=-1.0)
    assert (axes.yaw, axes.throttle, axes.roll, axes.pitch) == (1.0, -1.0, 0.25, -1.0)


def test_stick_axes_reject_nan():
    with pytest.raises(ValueError):
        StickAxes(yaw=float("nan"))


def test_deadzone_zeroes_small_axes():
    axes = StickAxes(yaw=0.01, throttle=-0.019, roll=0.02, pitch=0.5).with_deadzone(0.02)
    assert axes == StickAxes(yaw=0.0, throttle=0.0, roll=0.02, pitch=0.5)


def test_stick_positions():
    assert StickAxes(yaw=1.0, throttle=-0.5, roll=0.0, pitch=0.25).to_stick_positions() == (
        660,
        -330,
        0,
        165,
    )


def test_stick_assignment_pairs():
    assert StickAssignment.LEFT.horizontal == "yaw"
    assert StickAssignment.LEFT.vertical == "throttle"
    assert StickAssignment.RIGHT.horizontal == "roll"
    assert StickAssignment.RIGHT.vertical == "pitch"


@pytest.mark.parametrize(
    "check,level",
    [
        (ReadinessCheck(True, "Ready for takeoff"), ReadinessLevel.READY),
        (ReadinessCheck(False, "Waiting for GPS fix"), ReadinessLevel.CAUTION),
        (ReadinessCheck(False, "Use caution near trees"), ReadinessLevel.CAUTION),
        (ReadinessCheck(False, "Flight controller not connected"), ReadinessLevel.CAUTION),
        (ReadinessCheck(False, "Motors are already running"), ReadinessLevel.NOT_READY),
        (ReadinessCheck(False, "gps weak"), ReadinessLevel.NOT_READY),
        (ReadinessCheck(False, "Caution: wind"), ReadinessLevel.NOT_READY),
    ],
)
def test_readiness_classification(check, level):
    assert check.level is level


def test_flight_status_from_payload():
    status = FlightStatus.from_payload(
        {"isConnected": True, "areMotorsOn": True, "isFlying": True, "flightMode": "GPS"}
    )
    assert status == FlightStatus(True, True, True, "GPS")
    assert FlightStatus.from_payload({}) == FlightStatus()


def test_unknown_distance_is_distinct_from_zero():
    waiting = MissionProgress.from_payload(
        {"currentWaypoint": 2, "totalWaypoints": 5, "progress": 0.4, "distanceToTarget": -1}
    )
    arrived = MissionProgress.from_payload(
        {"currentWaypoint": 2, "totalWaypoints": 5, "progress": 0.4, "distanceToTarget": 0.0}
    )

    assert waiting.distance_to_target is None
    assert waiting.awaiting_gps_lock
    assert arrived.distance_to_target == 0.0
    assert not arrived.awaiting_gps_lock
    assert "waiting for GPS lock" in waiting.describe()
    assert "0.0 m to target" in arrived.describe()


def test_progress_is_clamped_and_completion():
    assert MissionProgress(progress=1.7).progress == 1.0
    assert MissionProgress(3, 3, 1.0, 0.0).is_complete
    assert not MissionProgress(0, 0, 1.0, 0.0).is_complete


def test_mission_event_from_payload():
    event = MissionEvent.from_payload(
        {
            "type": "missionProgress",
            "data": {"currentWaypoint": 1, "totalWaypoints": 4, "progress": 0.25, "distanceToTarget": 12.0},
            "missionType": "waypoint",
        }
    )
    assert event.type is MissionEventType.PROGRESS
    assert event.progress == MissionProgress(1, 4, 0.25, 12.0)
    assert event.mission_type == "waypoint"

    failed = MissionEvent.from_payload({"type": "missionFailed", "error": "Lost link"})
    assert failed.type is MissionEventType.FAILED
    assert failed.error == "Lost link"


def test_mission_outcome_text():
    assert str(MissionOutcome(completed=True)) == "mission complete"
    assert str(MissionOutcome(completed=False, reason="Lost link")) == "mission failed: Lost link"


def test_command_result_reason_and_raise():
    assert CommandResult.ok("done").reason == "done"
    assert CommandResult.failed("nope").reason == "nope"
    assert CommandResult(success=False).reason == "unknown error"
    with pytest.raises(ServiceError) as exc:
        CommandResult.failed("nope").raise_for_failure()
    assert exc.value.reason == "nope"


def test_call_service_converts_exceptions():
    def boom():
        raise RuntimeError("link down")

    def rejected():
        raise ServiceError("rejected")

    assert call_service(boom) == CommandResult.failed("link down")
    assert call_service(rejected) == CommandResult.failed("rejected")
    assert call_service(lambda: None).success
    assert not call_service(lambda: False).success


def test_control_mode_from_names():
    mode = VirtualStickControlMode.from_names("angle", "Angle", "position", "body")
    assert mode == VirtualStickControlMode(
        RollPitchMode.ANGLE, YawMode.ANGLE, VerticalMode.POSITION, CoordinateSystem.BODY
    )


def test_control_mode_unknown_names_fall_back_to_defaults():
    assert VirtualStickControlMode.from_names("sideways", None, "", "moon") == VirtualStickControlMode()
