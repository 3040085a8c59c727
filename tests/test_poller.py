import time

import pytest

from stickpilot.core.exceptions import ConfigurationError
from stickpilot.health.poller import PollMode, TelemetryPoller
from stickpilot.models.status import AltitudeInfo, FlightStatus, ReadinessCheck

FLYING = FlightStatus(is_connected=True, are_motors_on=True, is_flying=True)
LANDED = FlightStatus(is_connected=True)


def wait_for(predicate, timeout=2.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture
def poller(service):
    p = TelemetryPoller(service, readiness_interval=0.02, altitude_interval=0.02)
    yield p
    p.stop()


def test_intervals_must_be_positive(service):
    with pytest.raises(ConfigurationError):
        TelemetryPoller(service, readiness_interval=0)
    with pytest.raises(ConfigurationError):
        TelemetryPoller(service, altitude_interval=-1)


def test_first_readiness_check_is_immediate(service):
    poller = TelemetryPoller(service, readiness_interval=60, altitude_interval=60)
    try:
        poller.start()
        assert wait_for(lambda: poller.readiness.get() is not None)
        assert poller.active_mode is PollMode.READINESS
        assert poller.readiness.get() == service.readiness
        assert "get_altitude" not in service.names()
    finally:
        poller.stop()


def test_flying_switches_to_altitude(service, poller):
    poller.start()
    poller.on_flight_status(FLYING)

    assert poller.active_mode is PollMode.ALTITUDE
    assert wait_for(lambda: poller.altitude.get() == AltitudeInfo(12.5))


def test_only_one_loop_runs_after_switch(service, poller):
    poller.start()
    assert wait_for(lambda: service.names().count("is_ready_for_takeoff") >= 2)

    poller.on_flight_status(FLYING)
    assert wait_for(lambda: service.names().count("get_altitude") >= 1)
    readiness_calls = service.names().count("is_ready_for_takeoff")
    time.sleep(0.15)

    # At most one tick of the cancelled loop was already in progress
    assert service.names().count("is_ready_for_takeoff") <= readiness_calls + 1
    assert service.names().count("get_altitude") >= 3


def test_landing_switches_back_to_readiness(service, poller):
    poller.start()
    poller.on_flight_status(FLYING)
    poller.on_flight_status(LANDED)
    assert poller.active_mode is PollMode.READINESS


def test_same_mode_does_not_restart_loop(service):
    poller = TelemetryPoller(service, readiness_interval=60, altitude_interval=60)
    try:
        poller.start()
        assert wait_for(lambda: "is_ready_for_takeoff" in service.names())
        poller.on_flight_status(LANDED)
        poller.on_flight_status(LANDED)
        time.sleep(0.05)
        assert service.names().count("is_ready_for_takeoff") == 1
    finally:
        poller.stop()


def test_poll_failure_keeps_cadence(service, poller):
    service.fail["is_ready_for_takeoff"] = RuntimeError("timeout")
    poller.start()

    assert wait_for(lambda: service.names().count("is_ready_for_takeoff") >= 3)
    assert poller.readiness.get() is None

    del service.fail["is_ready_for_takeoff"]
    assert wait_for(lambda: poller.readiness.get() is not None)


def test_status_before_start_only_records_state(service, poller):
    poller.on_flight_status(FLYING)
    assert poller.active_mode is None

    poller.start()
    assert poller.active_mode is PollMode.ALTITUDE


def test_stop_is_idempotent(service, poller):
    poller.start()
    poller.stop()
    poller.stop()
    assert poller.active_mode is None

    calls = len(service.calls)
    time.sleep(0.06)
    assert len(service.calls) == calls


def test_poll_once_runs_a_single_tick(service, poller):
    service.readiness = ReadinessCheck(False, "Waiting for GPS fix")
    poller.poll_once()
    assert poller.readiness.get() == service.readiness

    poller.poll_once(PollMode.ALTITUDE)
    assert poller.altitude.get() == AltitudeInfo(12.5)
