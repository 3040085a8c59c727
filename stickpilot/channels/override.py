"""
Stick Override.

This module maps virtual stick commands onto MAVLink RC channel
overrides, the way a ground station drives an ArduPilot vehicle in
place of the physical transmitter.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from stickpilot.core.exceptions import APIException
from stickpilot.models.sticks import StickAxes

logger = logging.getLogger(__name__)

PWM_CENTER = 1500
PWM_HALF_RANGE = 500

# RC channel numbers (1-based), AETR order
ROLL_CHANNEL = 1
PITCH_CHANNEL = 2
THROTTLE_CHANNEL = 3
YAW_CHANNEL = 4

CHANNEL_COUNT = 8  # Fixed by RC_CHANNELS_OVERRIDE


def axes_to_pwm(axes: StickAxes) -> list[int]:
    """
    Convert stick axes to the eight override values.

    Unused channels are 0, which leaves them to the transmitter.
    Pushing the pitch stick forward lowers channel 2.
    """
    overrides = [0] * CHANNEL_COUNT
    overrides[ROLL_CHANNEL - 1] = PWM_CENTER + round(axes.roll * PWM_HALF_RANGE)
    overrides[PITCH_CHANNEL - 1] = PWM_CENTER - round(axes.pitch * PWM_HALF_RANGE)
    overrides[THROTTLE_CHANNEL - 1] = PWM_CENTER + round(axes.throttle * PWM_HALF_RANGE)
    overrides[YAW_CHANNEL - 1] = PWM_CENTER + round(axes.yaw * PWM_HALF_RANGE)
    return overrides


class StickOverride:
    """
    Sends stick axes as RC_CHANNELS_OVERRIDE messages.

    Args:
        master: pymavlink connection (anything with ``mav.rc_channels_override_send``)
        deadzone: Axes below this magnitude are sent as centered
    """

    __slots__ = (
        "_master",
        "_deadzone",
        "_target_system",
        "_target_component",
        "_lock",
        "_active",
        "_last",
    )

    def __init__(self, master: Any = None, deadzone: float = 0.02) -> None:
        self._master = master
        self._deadzone = deadzone
        self._target_system = 0
        self._target_component = 0
        self._lock = threading.Lock()
        self._active = False
        self._last: list[int] | None = None

    def set_connection(self, master: Any) -> None:
        """Set the MAVLink connection."""
        self._master = master

    def set_target(self, target_system: int, target_component: int) -> None:
        self._target_system = target_system
        self._target_component = target_component

    @property
    def active(self) -> bool:
        """True while overrides are being sent."""
        return self._active

    def send(self, axes: StickAxes) -> list[int]:
        """
        Send the override for ``axes``.

        Returns:
            The PWM values sent
        """
        overrides = axes_to_pwm(axes.with_deadzone(self._deadzone))
        with self._lock:
            self._write_locked(overrides)
            self._active = True
            self._last = overrides
        return overrides

    def resend(self) -> bool:
        """
        Send the last override again.

        The flight controller drops overrides that are not refreshed
        (RC_OVERRIDE_TIME on ArduPilot), so they are repeated while active.

        Returns:
            True if an override was sent
        """
        with self._lock:
            if not self._active or self._last is None:
                return False
            self._write_locked(self._last)
        return True

    def release(self) -> None:
        """Hand every channel back to the transmitter."""
        with self._lock:
            self._write_locked([0] * CHANNEL_COUNT)
            self._active = False
            self._last = None
        logger.debug("RC overrides released")

    def _write_locked(self, overrides: list[int]) -> None:
        if self._master is None:
            raise APIException("No connection available")
        self._master.mav.rc_channels_override_send(
            self._target_system,
            self._target_component,
            *overrides,
        )
