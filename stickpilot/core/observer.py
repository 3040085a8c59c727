"""
Observer Pattern Implementation.

This module provides the state owner and subscription primitives used
by every component that exposes state upward:

- :py:class:`Subscription` is a revocable listener registration.
- :py:class:`ObservableValue` owns a single value and notifies
  listeners when it is replaced.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Type alias for observer callbacks
ObserverCallback = Callable[[Any], None]


class Subscription:
    """
    A live listener registration.

    Calling :py:meth:`revoke` removes the registration. Revoking more
    than once is a no-op, so teardown code can revoke blindly.

    Example:
        >>> sub = status.on_change(print)
        >>> sub.revoke()
        >>> sub.revoke()  # safe
    """

    __slots__ = ("_revoke_fn", "_lock", "_name")

    def __init__(self, revoke_fn: Callable[[], None], name: str = "") -> None:
        self._revoke_fn: Callable[[], None] | None = revoke_fn
        self._lock = threading.Lock()
        self._name = name

    @property
    def active(self) -> bool:
        """True until the subscription has been revoked."""
        return self._revoke_fn is not None

    @property
    def name(self) -> str:
        return self._name

    def revoke(self) -> None:
        """Remove the registration. Idempotent."""
        with self._lock:
            fn = self._revoke_fn
            self._revoke_fn = None
        if fn is not None:
            fn()

    def __repr__(self) -> str:
        state = "active" if self.active else "revoked"
        return f"Subscription({self._name!r}, {state})"


class Observers(Generic[T]):
    """
    An ordered list of callbacks receiving one argument.

    Exceptions raised by a callback are logged and do not prevent the
    remaining callbacks from running.
    """

    __slots__ = ("_callbacks", "_lock", "_name")

    def __init__(self, name: str = "") -> None:
        self._callbacks: list[Callable[[T], None]] = []
        self._lock = threading.Lock()
        self._name = name

    def add(self, callback: Callable[[T], None]) -> Subscription:
        with self._lock:
            self._callbacks.append(callback)

        def remove() -> None:
            with self._lock:
                try:
                    self._callbacks.remove(callback)
                except ValueError:
                    pass  # Already removed

        return Subscription(remove, self._name)

    def notify(self, value: T) -> None:
        with self._lock:
            callbacks = list(self._callbacks)

        # Invoke callbacks outside the lock
        for fn in callbacks:
            try:
                fn(value)
            except Exception:
                logger.exception("Exception in observer for %s", self._name)

    def __len__(self) -> int:
        with self._lock:
            return len(self._callbacks)


class ObservableValue(Generic[T]):
    """
    Single owner of a piece of state.

    Readers call :py:meth:`get`; interested parties register with
    :py:meth:`on_change`. Writes are last-write-wins and serialized by
    a lock so readers never see a torn value.

    Args:
        name: Name used in log messages
        initial: Initial value
        cache: If True, listeners are only notified when the new value
               differs from the current one.
    """

    __slots__ = ("_name", "_value", "_cache", "_lock", "_observers")

    def __init__(self, name: str, initial: T, cache: bool = False) -> None:
        self._name = name
        self._value = initial
        self._cache = cache
        self._lock = threading.Lock()
        self._observers: Observers[T] = Observers(name)

    @property
    def name(self) -> str:
        return self._name

    def get(self) -> T:
        """Return the current value."""
        with self._lock:
            return self._value

    def set(self, value: T) -> bool:
        """
        Replace the value and notify listeners.

        Returns:
            True if listeners were notified.
        """
        with self._lock:
            if self._cache and self._value == value:
                return False
            self._value = value

        self._observers.notify(value)
        return True

    def on_change(self, callback: Callable[[T], None]) -> Subscription:
        """
        Register a callback invoked with the new value on every change.

        Returns:
            Subscription that removes the callback when revoked.
        """
        return self._observers.add(callback)

    def __repr__(self) -> str:
        return f"ObservableValue({self._name!r}, {self.get()!r})"
