"""
Schedulers - Deferred callbacks without blocking waits.

The engine never sleeps. The mismatch reveal and the match highlight
are handed to a scheduler, which calls back later:
- AsyncioScheduler runs them on the event loop (the HTTP app)
- ManualScheduler runs them when virtual time is advanced (CLI, tests)
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable
import asyncio
import heapq
import itertools
import time


Callback = Callable[[], None]


def system_clock() -> int:
    """Wall-clock milliseconds."""
    return int(time.time() * 1000)


class ManualClock:
    """A clock that only moves when told to."""

    def __init__(self, start: int = 0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class Scheduler(ABC):

    @abstractmethod
    def call_later(self, delay_ms: int, callback: Callback) -> Any:
        """Run `callback` after `delay_ms`. Returns a cancellable handle."""
        raise NotImplementedError

    def cancel(self, handle: Any) -> None:
        cancel = getattr(handle, "cancel", None)
        if cancel is not None:
            cancel()


@dataclass(order=True)
class _Timer:
    due: int
    seq: int
    callback: Callback = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler(Scheduler):
    """
    Runs callbacks against a ManualClock.

    Usage:
        clock = ManualClock()
        scheduler = ManualScheduler(clock)
        scheduler.call_later(1000, resolve)
        scheduler.advance(1000)  # resolve() runs here
    """

    def __init__(self, clock: ManualClock | None = None):
        self.clock = clock or ManualClock()
        self._queue: list[_Timer] = []
        self._seq = itertools.count()

    @property
    def pending(self) -> int:
        return sum(1 for t in self._queue if not t.cancelled)

    def call_later(self, delay_ms: int, callback: Callback) -> _Timer:
        timer = _Timer(due=self.clock() + max(0, delay_ms), seq=next(self._seq), callback=callback)
        heapq.heappush(self._queue, timer)
        return timer

    def advance(self, ms: int) -> int:
        """Move time forward, firing due callbacks in order. Returns how many ran."""
        target = self.clock() + ms
        fired = 0
        while self._queue and self._queue[0].due <= target:
            timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self.clock.now = max(self.clock.now, timer.due)
            timer.callback()
            fired += 1
        self.clock.now = target
        return fired

    def run_all(self) -> int:
        """Fire everything queued, including callbacks scheduled meanwhile."""
        fired = 0
        while self._queue:
            timer = self._queue[0]
            fired += self.advance(max(0, timer.due - self.clock()))
        return fired


class AsyncioScheduler(Scheduler):
    """Schedules on the running event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    def call_later(self, delay_ms: int, callback: Callback) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay_ms / 1000, callback)
