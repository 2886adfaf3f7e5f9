"""
Timer scheduling - injectable clock for cadence, auto-dismiss and debounce timers.

AsyncioScheduler backs timers with the running event loop. ManualScheduler is a
virtual clock: nothing fires until ``advance()`` is called, which makes timer
behaviour deterministic in tests and replays.
"""
import asyncio
import heapq
import itertools
import logging
from typing import Any, Callable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Any]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    """Minimal timer interface used by the engine."""

    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle: ...

    def now(self) -> float: ...


class AsyncioScheduler:
    """Timers on the running event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: TimerCallback) -> asyncio.TimerHandle:
        return self._get_loop().call_later(max(0.0, delay), callback)

    def now(self) -> float:
        return self._get_loop().time()


class ManualTimer:
    """Handle returned by ManualScheduler."""

    def __init__(self, when: float, callback: TimerCallback) -> None:
        self.when = when
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """Virtual clock. Timers fire in deadline order during ``advance()``."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._seq = itertools.count()
        self._queue: List[Tuple[float, int, ManualTimer]] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: TimerCallback) -> ManualTimer:
        timer = ManualTimer(self._now + max(0.0, delay), callback)
        heapq.heappush(self._queue, (timer.when, next(self._seq), timer))
        return timer

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due timers. Returns how many fired.

        Timers scheduled by a firing callback are honoured if they fall inside
        the window.
        """
        deadline = self._now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= deadline:
            when, _, timer = heapq.heappop(self._queue)
            if timer.cancelled():
                continue
            self._now = when
            timer.callback()
            fired += 1
        self._now = deadline
        return fired

    def pending(self) -> int:
        return sum(1 for _, _, timer in self._queue if not timer.cancelled())
