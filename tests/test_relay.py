import pytest

from stickpilot.core.events import EventCategory
from stickpilot.datalink.relay import EventRelay
from stickpilot.health.poller import PollMode, TelemetryPoller
from stickpilot.mission.lifecycle import MissionLifecycleController
from stickpilot.models.mission import MissionState
from stickpilot.models.result import CommandResult, LandingResult, TakeoffResult
from stickpilot.models.status import FlightStatus, VirtualStickState


@pytest.fixture
def parts(service, planner):
    lifecycle = MissionLifecycleController(service, planner)
    poller = TelemetryPoller(service, readiness_interval=60, altitude_interval=60)
    relay = EventRelay(service, lifecycle, poller)
    yield relay, lifecycle, poller
    relay.stop()
    poller.stop()


def test_start_subscribes_once_per_category(service, parts):
    relay, _, _ = parts
    relay.start()
    relay.start()

    assert set(relay.subscriptions) == set(EventCategory)
    for category in EventCategory:
        assert service.bus.handler_count(category) == 1


def test_stop_revokes_everything_once(service, parts):
    relay, _, _ = parts
    relay.start()
    subscriptions = list(relay.subscriptions.values())

    relay.stop()
    relay.stop()

    assert relay.subscriptions == {}
    assert not any(s.active for s in subscriptions)
    for category in EventCategory:
        assert service.bus.handler_count(category) == 0


def test_stop_after_partial_start(service, parts):
    relay, _, _ = parts
    real_subscribe = service.subscribe

    def flaky(category, handler):
        if category is EventCategory.FLIGHT_STATUS:
            raise RuntimeError("bridge not ready")
        return real_subscribe(category, handler)

    service.subscribe = flaky
    with pytest.raises(RuntimeError):
        relay.start()

    assert set(relay.subscriptions) == {EventCategory.TAKEOFF_RESULT, EventCategory.LANDING_RESULT}
    relay.stop()
    assert service.bus.handler_count(EventCategory.TAKEOFF_RESULT) == 0
    assert service.bus.handler_count(EventCategory.LANDING_RESULT) == 0


def test_results_go_to_their_owners(service, parts):
    relay, _, _ = parts
    relay.start()

    service.bus.publish(EventCategory.TAKEOFF_RESULT, CommandResult.ok("Takeoff started successfully"))
    service.bus.publish(EventCategory.LANDING_RESULT, {"success": False, "error": "Obstacle below"})

    assert relay.last_takeoff.get().success
    assert relay.last_landing.get() == CommandResult.failed("Obstacle below")


def test_result_payload_dicts_become_typed_results(service, parts):
    relay, _, _ = parts
    relay.start()

    service.bus.publish(EventCategory.TAKEOFF_RESULT, {"success": True, "message": "Taking off"})
    service.bus.publish(EventCategory.LANDING_RESULT, {"success": True})

    assert isinstance(relay.last_takeoff.get(), TakeoffResult)
    assert relay.last_takeoff.get().message == "Taking off"
    assert isinstance(relay.last_landing.get(), LandingResult)


def test_flight_status_feeds_owner_and_poller(service, parts):
    relay, _, poller = parts
    relay.start()
    poller.start()
    seen = []
    relay.flight_status.on_change(seen.append)

    service.bus.publish(
        EventCategory.FLIGHT_STATUS,
        {"isConnected": True, "areMotorsOn": True, "isFlying": True, "flightMode": "GUIDED"},
    )

    assert seen == [FlightStatus(True, True, True, "GUIDED")]
    assert poller.active_mode is PollMode.ALTITUDE


def test_virtual_stick_state_goes_to_lifecycle(service, parts):
    relay, lifecycle, _ = parts
    relay.start()

    service.bus.publish(
        EventCategory.VIRTUAL_STICK_STATE,
        {
            "state": {
                "isVirtualStickEnabled": True,
                "currentFlightControlAuthorityOwner": "MSDK",
                "isVirtualStickAdvancedModeEnabled": False,
            },
            "reason": None,
        },
    )

    assert lifecycle.reported_virtual_stick.get() == VirtualStickState(True, "MSDK", False)


def test_mission_events_go_to_lifecycle(service, parts):
    relay, lifecycle, _ = parts
    relay.start()
    lifecycle.start("survey")

    service.bus.publish(
        EventCategory.MISSION,
        {"type": "missionProgress", "data": {"currentWaypoint": 1, "totalWaypoints": 3, "progress": 0.3, "distanceToTarget": -1}},
    )
    assert lifecycle.progress.get().awaiting_gps_lock

    service.bus.publish(EventCategory.MISSION, {"type": "missionCompleted"})
    assert lifecycle.mission_state is MissionState.IDLE


def test_no_delivery_after_stop(service, parts):
    relay, _, _ = parts
    relay.start()
    relay.stop()

    service.bus.publish(EventCategory.TAKEOFF_RESULT, CommandResult.ok())
    assert relay.last_takeoff.get() is None
