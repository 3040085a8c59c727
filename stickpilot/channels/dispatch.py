"""
Dispatch Limiter.

This module throttles per-frame stick commands down to the rate the
flight controller accepts, and guarantees a stop command when the
operator lets go of the sticks.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Callable

import monotonic

from stickpilot.models.result import CommandResult, call_service
from stickpilot.models.sticks import StickAxes

if TYPE_CHECKING:
    from stickpilot.core.types import FlightControllerService, VirtualStickGate

logger = logging.getLogger(__name__)


class DispatchLimiter:
    """
    Rate limits and coalesces outgoing stick commands.

    Gesture updates land in a single "latest pending" slot: a newer
    update overwrites an older one that has not been sent yet. A worker
    thread drains the slot at most once per ``min_interval``.

    The release path bypasses the slot, the rate limit and the gate
    entirely; see :py:meth:`on_input_release`.

    Args:
        service: Flight controller service receiving the commands
        gate: Tells whether virtual stick mode is currently enabled
        min_interval: Minimum seconds between two gesture commands
        clock: Monotonic clock, injectable for tests
    """

    __slots__ = (
        "_service",
        "_gate",
        "_min_interval",
        "_clock",
        "_cond",
        "_pending",
        "_last_sent_at",
        "_alive",
        "_thread",
        "_sent_count",
        "_generation",
    )

    def __init__(
        self,
        service: "FlightControllerService",
        gate: "VirtualStickGate",
        min_interval: float = 0.1,
        clock: Callable[[], float] = monotonic.monotonic,
    ) -> None:
        self._service = service
        self._gate = gate
        self._min_interval = min_interval
        self._clock = clock
        self._cond = threading.Condition()
        self._pending: StickAxes | None = None
        self._last_sent_at: float | None = None
        self._alive = False
        self._thread: threading.Thread | None = None
        self._sent_count = 0
        # Bumped by every release; commands taken under an older value are stale
        self._generation = 0

    @property
    def pending(self) -> StickAxes | None:
        """The command waiting to be sent, if any."""
        with self._cond:
            return self._pending

    @property
    def sent_count(self) -> int:
        """Number of gesture commands handed to the service."""
        with self._cond:
            return self._sent_count

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def on_input_change(self, axes: StickAxes) -> bool:
        """
        Queue a gesture command.

        The command is dropped silently unless virtual stick mode is
        enabled. It replaces any command still waiting in the slot.

        Returns:
            True if the command was queued
        """
        if not self._gate.virtual_stick_enabled:
            logger.debug("Virtual stick disabled, dropping %s", axes)
            return False

        with self._cond:
            self._pending = axes
            self._cond.notify()
        return True

    def dispatch_pending(self) -> bool:
        """
        Send the pending command if the rate window allows it.

        A command overtaken by :py:meth:`on_input_release` is dropped if
        it has not gone out yet. If it was already in flight, the stop
        command is sent again once it returns, so the last command the
        service sees is the stop. Failures are logged and never raised.

        Returns:
            True if a command was sent successfully
        """
        with self._cond:
            if self._pending is None:
                return False
            if self._delay_locked() > 0:
                return False
            axes = self._pending
            generation = self._generation
            self._pending = None
            self._last_sent_at = self._clock()
            self._sent_count += 1

        if not self._gate.virtual_stick_enabled:
            logger.debug("Virtual stick disabled before dispatch, dropping %s", axes)
            return False

        with self._cond:
            if generation != self._generation:
                logger.debug("Sticks released before dispatch, dropping %s", axes)
                return False

        result = call_service(self._service.send_stick_command, axes)
        if not result.success:
            logger.warning("Failed to send stick command %s: %s", axes, result.reason)

        with self._cond:
            overtaken = generation != self._generation and self._pending is None
        if overtaken:
            logger.debug("Sticks released while %s was in flight, resending stop", axes)
            stop = call_service(self._service.send_stick_command, StickAxes.zero())
            if not stop.success:
                logger.error("Stop command resend failed: %s", stop.reason)
            return False
        return result.success

    def on_input_release(self) -> CommandResult:
        """
        Send the all-stop command.

        Always sent, straight away, on the caller's thread: it is not
        gated, not rate limited and not coalesced, and it goes out even
        if an earlier command is still in flight. Any pending gesture
        command is discarded. A failed send is retried once; a second
        failure is logged at ERROR level. Never raises.

        Returns:
            Result of the last attempt
        """
        with self._cond:
            self._pending = None
            self._generation += 1

        zero = StickAxes.zero()
        result = call_service(self._service.send_stick_command, zero)
        if not result.success:
            logger.warning("Stop command failed (%s), retrying", result.reason)
            result = call_service(self._service.send_stick_command, zero)
            if not result.success:
                logger.error("Stop command failed after retry: %s", result.reason)
        return result

    def _delay_locked(self) -> float:
        """Seconds until the next gesture command may go out."""
        if self._last_sent_at is None:
            return 0.0
        elapsed = self._clock() - self._last_sent_at
        return max(0.0, self._min_interval - elapsed)

    def _run(self) -> None:
        """Worker thread - drains the pending slot."""
        while True:
            with self._cond:
                while self._alive and self._pending is None:
                    self._cond.wait(0.1)
                if not self._alive:
                    return
                delay = self._delay_locked()
                if delay > 0:
                    self._cond.wait(delay)
                    continue
            try:
                self.dispatch_pending()
            except Exception:
                logger.exception("Exception in dispatch loop")

    def start(self) -> None:
        """Start the worker thread."""
        with self._cond:
            if self._alive:
                return
            self._alive = True
        t = threading.Thread(target=self._run, name="stickpilot-dispatch")
        t.daemon = True
        self._thread = t
        t.start()
        logger.debug("DispatchLimiter started (%.3fs interval)", self._min_interval)

    def stop(self) -> None:
        """Stop the worker thread and drop any pending command. Idempotent."""
        with self._cond:
            self._alive = False
            self._pending = None
            self._cond.notify_all()
        thread = self._thread
        self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2.0)
            logger.debug("DispatchLimiter stopped")
