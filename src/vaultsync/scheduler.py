"""
Timer sources for periodic sync triggers.

The coordinator never sleeps on its own; it asks a ``Scheduler`` to call
it back every N seconds. ``AsyncioScheduler`` uses the running event
loop, ``ManualScheduler`` runs on a virtual clock that tests advance by
hand.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

logger = logging.getLogger("vaultsync.scheduler")

Callback = Callable[[], None]


class Timer(ABC):
    """Handle for a repeating timer."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop future firings. Safe to call more than once."""

    @property
    @abstractmethod
    def active(self) -> bool:
        """True until the timer is cancelled."""


class Scheduler(ABC):
    """Clock and repeating-timer source."""

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds on this scheduler's clock."""

    @abstractmethod
    def call_every(self, interval: float, callback: Callback) -> Timer:
        """Call *callback* every *interval* seconds until cancelled."""


class _AsyncioTimer(Timer):
    def __init__(self, loop: asyncio.AbstractEventLoop, interval: float, callback: Callback):
        self._loop = loop
        self._interval = interval
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self._active = True
        self._arm()

    def _arm(self) -> None:
        self._handle = self._loop.call_later(self._interval, self._fire)

    def _fire(self) -> None:
        if not self._active:
            return
        try:
            self._callback()
        except Exception:
            logger.exception("Timer callback failed")
        if self._active:
            self._arm()

    def cancel(self) -> None:
        self._active = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    @property
    def active(self) -> bool:
        return self._active


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running asyncio event loop."""

    def now(self) -> float:
        return time.monotonic()

    def call_every(self, interval: float, callback: Callback) -> Timer:
        if interval <= 0:
            raise ValueError("interval must be positive")
        return _AsyncioTimer(asyncio.get_running_loop(), interval, callback)


class _ManualTimer(Timer):
    def __init__(self, interval: float, callback: Callback):
        self.interval = interval
        self.callback = callback
        self._active = True

    def cancel(self) -> None:
        self._active = False

    @property
    def active(self) -> bool:
        return self._active


class ManualScheduler(Scheduler):
    """Virtual-time scheduler. Nothing fires until ``advance`` is called.

    Example:
        >>> sched = ManualScheduler()
        >>> ticks = []
        >>> _ = sched.call_every(60, lambda: ticks.append(sched.now()))
        >>> sched.advance(150)
        >>> ticks
        [60.0, 120.0]
    """

    def __init__(self, start: float = 0.0):
        self._now = float(start)
        self._heap: list[tuple[float, int, _ManualTimer]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_every(self, interval: float, callback: Callback) -> Timer:
        if interval <= 0:
            raise ValueError("interval must be positive")
        timer = _ManualTimer(interval, callback)
        heapq.heappush(self._heap, (self._now + interval, next(self._seq), timer))
        return timer

    @property
    def active_timers(self) -> int:
        """Number of timers that will still fire."""
        return sum(1 for _, _, t in self._heap if t.active)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers in time order."""
        deadline = self._now + seconds
        while self._heap and self._heap[0][0] <= deadline:
            due, _, timer = heapq.heappop(self._heap)
            if not timer.active:
                continue
            self._now = due
            timer.callback()
            if timer.active:
                heapq.heappush(self._heap, (due + timer.interval, next(self._seq), timer))
        self._now = deadline
