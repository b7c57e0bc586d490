"""Single-slot deadline scheduler for debounced catalog writes.

Responsibilities:
- Track one pending write deadline and one cancellable event-loop timer.
- Coalesce bursts of write requests, never pushing a pending write later.
- Fall back to immediate writes when no event loop is running; timed
  retries after a failed write need a running loop.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True, slots=True)
class WriteDeadline:
    """Absolute event-loop time at which a pending write must run."""

    at: float

    def is_sooner_than(self, other: WriteDeadline | None) -> bool:
        """Return whether this deadline should replace `other`."""

        return other is None or self.at < other.at

    def has_passed(self, now: float) -> bool:
        """Return whether the deadline is already due at `now`."""

        return self.at <= now


class DebouncedWriter:
    """Run a write callback no later than the tightest requested deadline."""

    def __init__(self, write: Callable[[], object]) -> None:
        """Initialize the scheduler around a synchronous write callback."""

        self._write = write
        self._pending: WriteDeadline | None = None
        self._handle: asyncio.TimerHandle | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def pending(self) -> WriteDeadline | None:
        """Return the currently scheduled deadline, if any."""

        return self._pending

    @property
    def is_stale(self) -> bool:
        """Return whether the pending timer belongs to an event loop that has closed."""

        return self._loop is not None and self._loop.is_closed()

    def schedule(self, max_delay: float) -> None:
        """Request a write within `max_delay` seconds.

        A non-positive delay, or a call made outside a running event loop, writes
        immediately. Otherwise the pending timer is replaced only when the new
        deadline is sooner than the current one.
        """

        if max_delay <= 0 or not self.defer(max_delay):
            self.run_now()

    def defer(self, max_delay: float) -> bool:
        """Schedule a write on the running loop; return `False` when no loop is running."""

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return False

        self._discard_stale_loop()
        deadline = WriteDeadline(loop.time() + max(0.0, max_delay))
        if deadline.has_passed(loop.time()):
            self.run_now()
            return True
        if not deadline.is_sooner_than(self._pending):
            return True

        self.cancel()
        self._pending = deadline
        self._loop = loop
        self._handle = loop.call_at(deadline.at, self._fire)
        return True

    def run_now(self) -> None:
        """Cancel any pending timer and write synchronously."""

        self.cancel()
        self._write()

    def cancel(self) -> None:
        """Cancel the pending timer without writing."""

        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._pending = None
        self._loop = None

    def _fire(self) -> None:
        """Timer callback: clear the slot, then write."""

        self._handle = None
        self._pending = None
        self._loop = None
        self._write()

    def _discard_stale_loop(self) -> None:
        """Write out a pending timer that belongs to a closed event loop."""

        if self.is_stale:
            self._fire()
