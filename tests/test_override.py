import pytest

from conftest import FakeConnection
from stickpilot.channels.override import CHANNEL_COUNT, StickOverride, axes_to_pwm
from stickpilot.core.exceptions import APIException
from stickpilot.models.sticks import StickAxes


def test_centered_sticks():
    assert axes_to_pwm(StickAxes.zero()) == [1500, 1500, 1500, 1500, 0, 0, 0, 0]


def test_full_deflection():
    pwm = axes_to_pwm(StickAxes(yaw=-1.0, throttle=1.0, roll=1.0, pitch=1.0))
    # roll, pitch (forward lowers ch2), throttle, yaw
    assert pwm[:4] == [2000, 1000, 2000, 1000]


def test_send_applies_deadzone_and_target():
    conn = FakeConnection("test")
    override = StickOverride(conn, deadzone=0.02)
    override.set_target(1, 1)

    sent = override.send(StickAxes(yaw=0.01, throttle=0.5))

    assert sent[:4] == [1500, 1500, 1750, 1500]
    assert conn.mav.rc_override_calls == [(1, 1, *sent)]
    assert override.active


def test_release_returns_channels():
    conn = FakeConnection("test")
    override = StickOverride(conn)
    override.send(StickAxes(roll=0.3))
    override.release()

    assert conn.mav.rc_override_calls[-1] == (0, 0) + (0,) * CHANNEL_COUNT
    assert not override.active


def test_no_connection():
    with pytest.raises(APIException):
        StickOverride().send(StickAxes.zero())


def test_resend_repeats_last_override_until_released():
    conn = FakeConnection("test")
    override = StickOverride(conn)
    assert not override.resend()

    sent = override.send(StickAxes(pitch=0.4))
    assert override.resend()
    assert conn.mav.rc_override_calls[-2:] == [(0, 0, *sent), (0, 0, *sent)]

    override.release()
    assert not override.resend()
    assert conn.mav.rc_override_calls[-1] == (0, 0) + (0,) * CHANNEL_COUNT
