"""
Debug Log Buffer.

A bounded, append-only ring of diagnostic entries for operator
inspection.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Iterator

from stickpilot.core.exceptions import ConfigurationError

CLEARED_MESSAGE = "Debug logs cleared"


@dataclass(frozen=True)
class DebugLogEntry:
    """
    One diagnostic entry.

    Attributes:
        timestamp: Wall-clock time in seconds since the epoch
        level: Level name (e.g., 'INFO')
        message: The message text
    """

    message: str
    level: str = "INFO"
    timestamp: float = field(default_factory=time.time)

    def format(self) -> str:
        """Render as ``HH:MM:SS [LEVEL] message``."""
        clock = time.strftime("%H:%M:%S", time.localtime(self.timestamp))
        return f"{clock} [{self.level}] {self.message}"

    def __str__(self) -> str:
        return self.format()


class DebugLogBuffer:
    """
    Fixed-capacity ring of :py:class:`DebugLogEntry`.

    Appending to a full buffer evicts the oldest entry. Entries can be
    read oldest-first or newest-first; both come straight off the ring
    without sorting.

    Args:
        capacity: Maximum number of entries kept
    """

    __slots__ = ("_entries", "_lock")

    def __init__(self, capacity: int = 100) -> None:
        if capacity < 1:
            raise ConfigurationError(f"Log buffer capacity must be at least 1, got {capacity}")
        self._entries: deque[DebugLogEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def append(self, entry: DebugLogEntry) -> None:
        """Add an entry, evicting the oldest one when full."""
        with self._lock:
            self._entries.append(entry)

    def log(self, message: str, level: str = "INFO") -> DebugLogEntry:
        """Create an entry stamped now and append it."""
        entry = DebugLogEntry(message=message, level=level)
        self.append(entry)
        return entry

    def clear(self) -> None:
        """Empty the buffer, leaving only a "cleared" marker entry."""
        with self._lock:
            self._entries.clear()
            self._entries.append(DebugLogEntry(message=CLEARED_MESSAGE))

    def entries(self, newest_first: bool = False) -> list[DebugLogEntry]:
        """
        Return a snapshot of the entries.

        Args:
            newest_first: Reverse chronological order if True
        """
        with self._lock:
            if newest_first:
                return list(reversed(self._entries))
            return list(self._entries)

    def formatted(self, newest_first: bool = False) -> list[str]:
        """Return the entries rendered with :py:meth:`DebugLogEntry.format`."""
        return [entry.format() for entry in self.entries(newest_first)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[DebugLogEntry]:
        return iter(self.entries())
