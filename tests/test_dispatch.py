import logging
import threading
import time

import monotonic

from conftest import FakeGate
from stickpilot.channels.dispatch import DispatchLimiter
from stickpilot.models.sticks import StickAxes


def _limiter(service, clock, enabled=True):
    gate = FakeGate(enabled)
    return DispatchLimiter(service, gate, min_interval=0.1, clock=clock), gate


def test_commands_dropped_while_virtual_stick_disabled(service, clock):
    limiter, _ = _limiter(service, clock, enabled=False)

    assert limiter.on_input_change(StickAxes(pitch=0.5)) is False
    assert limiter.pending is None
    assert limiter.dispatch_pending() is False
    assert service.stick_commands == []


def test_pending_slot_keeps_only_the_latest(service, clock):
    limiter, _ = _limiter(service, clock)

    limiter.on_input_change(StickAxes(pitch=0.1))
    limiter.on_input_change(StickAxes(pitch=0.2))
    limiter.on_input_change(StickAxes(pitch=0.3))

    assert limiter.dispatch_pending() is True
    assert service.stick_commands == [StickAxes(pitch=0.3)]
    assert limiter.pending is None


def test_rate_window_holds_back_newer_commands(service, clock):
    limiter, _ = _limiter(service, clock)

    limiter.on_input_change(StickAxes(roll=0.1))
    assert limiter.dispatch_pending() is True

    clock.advance(0.05)
    limiter.on_input_change(StickAxes(roll=0.2))
    assert limiter.dispatch_pending() is False
    assert limiter.pending == StickAxes(roll=0.2)

    clock.advance(0.05)
    assert limiter.dispatch_pending() is True
    assert service.stick_commands == [StickAxes(roll=0.1), StickAxes(roll=0.2)]
    assert limiter.sent_count == 2


def test_gate_closing_before_dispatch_drops_command(service, clock):
    limiter, gate = _limiter(service, clock)
    limiter.on_input_change(StickAxes(yaw=0.4))
    gate.virtual_stick_enabled = False

    assert limiter.dispatch_pending() is False
    assert service.stick_commands == []


def test_send_failure_is_logged_not_raised(service, clock, caplog):
    limiter, _ = _limiter(service, clock)
    service.fail["send_stick_command"] = RuntimeError("link down")
    limiter.on_input_change(StickAxes(yaw=0.4))

    with caplog.at_level(logging.WARNING, logger="stickpilot.channels.dispatch"):
        assert limiter.dispatch_pending() is False

    assert "link down" in caplog.text


def test_release_sends_zero_immediately_and_ungated(service, clock):
    limiter, gate = _limiter(service, clock)
    limiter.on_input_change(StickAxes(pitch=0.8))
    assert limiter.dispatch_pending() is True

    # Inside the rate window, with a pending command and the gate closed
    limiter.on_input_change(StickAxes(pitch=0.9))
    gate.virtual_stick_enabled = False
    result = limiter.on_input_release()

    assert result.success
    assert service.stick_commands[-1] == StickAxes.zero()
    assert limiter.pending is None


def test_release_retries_once(service, clock):
    limiter, _ = _limiter(service, clock)
    attempts = []

    def flaky(axes):
        attempts.append(axes)
        if len(attempts) == 1:
            raise RuntimeError("busy")

    service.send_stick_command = flaky

    assert limiter.on_input_release().success
    assert attempts == [StickAxes.zero(), StickAxes.zero()]


def test_release_second_failure_logged_at_error(service, clock, caplog):
    limiter, _ = _limiter(service, clock)
    service.fail["send_stick_command"] = "busy"

    with caplog.at_level(logging.WARNING, logger="stickpilot.channels.dispatch"):
        result = limiter.on_input_release()

    assert not result.success
    assert service.names().count("send_stick_command") == 2
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert "busy" in errors[0].getMessage()


def test_worker_thread_drains_slot(service):
    limiter = DispatchLimiter(service, FakeGate(True), min_interval=0.01, clock=monotonic.monotonic)
    limiter.start()
    try:
        assert limiter.is_running
        limiter.on_input_change(StickAxes(throttle=0.6))
        deadline = time.time() + 2.0
        while not service.stick_commands and time.time() < deadline:
            time.sleep(0.01)
    finally:
        limiter.stop()

    assert service.stick_commands == [StickAxes(throttle=0.6)]
    assert not limiter.is_running
    limiter.stop()  # idempotent


class StallingGate:
    """Open gate that blocks on the read at ``stall_on``."""

    def __init__(self, stall_on: int) -> None:
        self.reads = 0
        self.stall_on = stall_on
        self.entered = threading.Event()
        self.resume = threading.Event()

    @property
    def virtual_stick_enabled(self) -> bool:
        self.reads += 1
        if self.reads == self.stall_on:
            self.entered.set()
            self.resume.wait(2.0)
        return True


def test_release_between_take_and_send_drops_command(service, clock):
    gate = StallingGate(stall_on=2)
    limiter = DispatchLimiter(service, gate, min_interval=0.1, clock=clock)
    limiter.on_input_change(StickAxes(pitch=0.9))

    worker = threading.Thread(target=limiter.dispatch_pending)
    worker.start()
    assert gate.entered.wait(2.0)

    limiter.on_input_release()
    gate.resume.set()
    worker.join(2.0)

    assert service.stick_commands == [StickAxes.zero()]


def test_release_during_in_flight_send_ends_with_stop(service, clock):
    limiter, _ = _limiter(service, clock)
    entered = threading.Event()
    resume = threading.Event()
    delivered = []

    def slow_send(axes):
        if not axes.is_zero:
            entered.set()
            resume.wait(2.0)
        delivered.append(axes)

    service.send_stick_command = slow_send
    limiter.on_input_change(StickAxes(pitch=0.9))

    worker = threading.Thread(target=limiter.dispatch_pending)
    worker.start()
    assert entered.wait(2.0)

    limiter.on_input_release()
    resume.set()
    worker.join(2.0)

    assert delivered == [StickAxes.zero(), StickAxes(pitch=0.9), StickAxes.zero()]
