"""
Readiness & Telemetry Poller.

This module runs one of two mutually exclusive polling loops, chosen by
whether the aircraft is flying:

- on the ground: takeoff readiness every ``readiness_interval`` seconds,
  first check immediately
- in the air: altitude every ``altitude_interval`` seconds
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING, Callable

from stickpilot.core.exceptions import ConfigurationError
from stickpilot.core.observer import ObservableValue
from stickpilot.models.status import AltitudeInfo, FlightStatus, ReadinessCheck

if TYPE_CHECKING:
    from stickpilot.core.types import FlightControllerService

logger = logging.getLogger(__name__)


class PollMode(Enum):
    """Which polling loop is active."""

    READINESS = "readiness"
    ALTITUDE = "altitude"


class _PollLoop:
    """
    One polling loop and its cancellation token.

    Args:
        mode: Loop mode, for logging
        interval: Seconds between ticks
        tick: Called with the loop's token on each tick
        immediate: Run the first tick before waiting
    """

    __slots__ = ("mode", "_interval", "_tick", "_immediate", "token", "_thread")

    def __init__(
        self,
        mode: PollMode,
        interval: float,
        tick: Callable[[threading.Event], None],
        immediate: bool,
    ) -> None:
        self.mode = mode
        self._interval = interval
        self._tick = tick
        self._immediate = immediate
        self.token = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        t = threading.Thread(target=self._run, name=f"stickpilot-poll-{self.mode.value}")
        t.daemon = True
        self._thread = t
        t.start()

    def cancel(self) -> None:
        self.token.set()

    def join(self, timeout: float = 2.0) -> None:
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def _run(self) -> None:
        if self._immediate and not self.token.is_set():
            self._tick(self.token)
        while not self.token.wait(self._interval):
            self._tick(self.token)


class TelemetryPoller:
    """
    Polls readiness on the ground and altitude in the air.

    At most one loop is active at any time. A flight state change
    cancels the active loop's token before the other loop starts, and
    results of a cancelled loop are discarded.

    Args:
        service: Flight controller service to poll
        readiness_interval: Seconds between readiness checks
        altitude_interval: Seconds between altitude reads
    """

    __slots__ = (
        "_service",
        "_readiness_interval",
        "_altitude_interval",
        "_lock",
        "_active",
        "_started",
        "_is_flying",
        "readiness",
        "altitude",
    )

    def __init__(
        self,
        service: "FlightControllerService",
        readiness_interval: float = 5.0,
        altitude_interval: float = 2.0,
    ) -> None:
        if readiness_interval <= 0 or altitude_interval <= 0:
            raise ConfigurationError("Polling intervals must be positive")
        self._service = service
        self._readiness_interval = readiness_interval
        self._altitude_interval = altitude_interval
        self._lock = threading.Lock()
        self._active: _PollLoop | None = None
        self._started = False
        self._is_flying = False
        self.readiness: ObservableValue[ReadinessCheck | None] = ObservableValue(
            "readiness", None
        )
        self.altitude: ObservableValue[AltitudeInfo | None] = ObservableValue(
            "altitude", None
        )

    @property
    def name(self) -> str:
        """Module name."""
        return "poller"

    @property
    def active_mode(self) -> PollMode | None:
        """Mode of the active loop, None when stopped."""
        with self._lock:
            return self._active.mode if self._active is not None else None

    def start(self) -> None:
        """Start polling in the mode matching the last known flight state."""
        with self._lock:
            self._started = True
        self._switch(self._mode_for(self._is_flying))

    def stop(self) -> None:
        """Cancel the active loop. Idempotent."""
        with self._lock:
            self._started = False
            loop = self._active
            self._active = None
        if loop is not None:
            loop.cancel()
            loop.join()
            logger.debug("Stopped %s polling", loop.mode.value)

    def on_flight_status(self, status: FlightStatus) -> None:
        """Flight state input; switches loops when ``is_flying`` changes."""
        with self._lock:
            self._is_flying = status.is_flying
            started = self._started
        if started:
            self._switch(self._mode_for(status.is_flying))

    def poll_once(self, mode: PollMode | None = None) -> None:
        """Run a single tick of ``mode`` (default: the active mode)."""
        if mode is None:
            mode = self.active_mode or self._mode_for(self._is_flying)
        token = threading.Event()
        if mode is PollMode.READINESS:
            self._poll_readiness(token)
        else:
            self._poll_altitude(token)

    @staticmethod
    def _mode_for(is_flying: bool) -> PollMode:
        return PollMode.ALTITUDE if is_flying else PollMode.READINESS

    def _switch(self, mode: PollMode) -> None:
        if mode is PollMode.READINESS:
            loop = _PollLoop(mode, self._readiness_interval, self._poll_readiness, True)
        else:
            loop = _PollLoop(mode, self._altitude_interval, self._poll_altitude, False)

        with self._lock:
            previous = self._active
            if not self._started or (previous is not None and previous.mode is mode):
                return
            if previous is not None:
                previous.cancel()
            self._active = loop
            loop.start()

        logger.info("Polling %s", mode.value)

    def _poll_readiness(self, token: threading.Event) -> None:
        try:
            check = self._service.is_ready_for_takeoff()
        except Exception as e:
            logger.warning("Readiness check failed: %s", e)
            return
        if token.is_set():
            return
        previous = self.readiness.get()
        self.readiness.set(check)
        if previous is None or previous.level != check.level:
            logger.info("Takeoff readiness: %s (%s)", check.level.value, check.reason)

    def _poll_altitude(self, token: threading.Event) -> None:
        try:
            info = self._service.get_altitude()
        except Exception as e:
            logger.warning("Altitude poll failed: %s", e)
            return
        if token.is_set():
            return
        self.altitude.set(info)
