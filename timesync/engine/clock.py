"""Clock implementations handed to SyncScheduler.

AsyncioClock is the live one: host time from ``whenever`` and timers on the
running asyncio event loop. ManualClock is simulated time for deterministic
tests; nothing fires until ``advance()`` is called.
"""
from __future__ import annotations

import asyncio
import math
from collections.abc import Callable
from dataclasses import dataclass, field

import whenever


@dataclass(slots=True)
class _LoopTimeout:
    handle: asyncio.TimerHandle | None = None
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True
        if self.handle:
            self.handle.cancel()
            self.handle = None


@dataclass(slots=True)
class _LoopInterval:
    """Recurring loop timer anchored at ``start + k * interval``.

    Re-arming from the previous deadline (not from "now") keeps the period
    from stretching by however long each callback took.
    """

    loop: asyncio.AbstractEventLoop
    intervalSec: float
    fn: Callable[[], None]
    nextAt: float = 0.0
    handle: asyncio.TimerHandle | None = None
    cancelled: bool = False

    def start(self) -> None:
        self.nextAt = self.loop.time() + self.intervalSec
        self.handle = self.loop.call_at(self.nextAt, self._fire)

    def _fire(self) -> None:
        if self.cancelled:
            return

        self.nextAt += self.intervalSec

        # if the loop stalled past one or more deadlines, skip them instead of bursting
        now = self.loop.time()
        if self.nextAt <= now:
            behind = math.floor((now - self.nextAt) / self.intervalSec) + 1
            self.nextAt += behind * self.intervalSec

        # re-arm before running so fn() is free to cancel us
        self.handle = self.loop.call_at(self.nextAt, self._fire)
        self.fn()

    def cancel(self) -> None:
        self.cancelled = True
        if self.handle:
            self.handle.cancel()
            self.handle = None


@dataclass(slots=True)
class AsyncioClock:
    """Live clock: wall time from whenever.Instant, timers on an asyncio loop.

    If no loop is given, timers go on the loop running at the moment they are
    started, so the scheduler must be driven from inside that loop.
    """

    loop: asyncio.AbstractEventLoop | None = None

    def nowMillis(self) -> int:
        return whenever.Instant.now().timestamp_millis()

    def _loop(self) -> asyncio.AbstractEventLoop:
        return self.loop or asyncio.get_running_loop()

    def callLater(self, delayMs: int, fn: Callable[[], None]) -> _LoopTimeout:
        timeout = _LoopTimeout()

        def fire() -> None:
            timeout.handle = None
            if not timeout.cancelled:
                fn()

        timeout.handle = self._loop().call_later(delayMs / 1000, fire)
        return timeout

    def callEvery(self, intervalMs: int, fn: Callable[[], None]) -> _LoopInterval:
        interval = _LoopInterval(self._loop(), intervalMs / 1000, fn)
        interval.start()
        return interval


@dataclass(slots=True, eq=False)
class _ManualTimer:
    clock: ManualClock
    dueAt: int
    fn: Callable[[], None]
    intervalMs: int | None
    seq: int
    cancelled: bool = False

    def cancel(self) -> None:
        if self.cancelled:
            return

        self.cancelled = True
        if self in self.clock._timers:
            self.clock._timers.remove(self)


@dataclass(slots=True, eq=False)
class ManualClock:
    """Simulated time for tests.

    Timers only fire from ``advance()``, in deadline order (ties broken by
    creation order), with ``nowMillis()`` moved to each deadline as it fires.
    """

    now: int = 0
    _timers: list[_ManualTimer] = field(default_factory=list)
    _seq: int = 0

    def nowMillis(self) -> int:
        return self.now

    def _add(self, dueAt: int, fn: Callable[[], None], intervalMs: int | None) -> _ManualTimer:
        self._seq += 1
        timer = _ManualTimer(self, dueAt, fn, intervalMs, self._seq)
        self._timers.append(timer)
        return timer

    def callLater(self, delayMs: int, fn: Callable[[], None]) -> _ManualTimer:
        return self._add(self.now + delayMs, fn, None)

    def callEvery(self, intervalMs: int, fn: Callable[[], None]) -> _ManualTimer:
        if intervalMs <= 0:
            raise ValueError(f"Interval must be positive (received {intervalMs} ms)")

        return self._add(self.now + intervalMs, fn, intervalMs)

    @property
    def pendingTimers(self) -> int:
        return len(self._timers)

    def setTime(self, ms: int) -> None:
        """Jump the clock without firing anything (host clock adjustments)."""
        self.now = ms

    def advance(self, ms: int) -> None:
        """Move time forward by ``ms``, firing every timer that comes due."""
        if ms < 0:
            raise ValueError(f"Cannot advance a clock backwards (received {ms} ms)")

        target = self.now + ms
        while True:
            due = [t for t in self._timers if t.dueAt <= target]
            if not due:
                break

            timer = min(due, key=lambda t: (t.dueAt, t.seq))
            self.now = timer.dueAt
            if timer.intervalMs is None:
                self._timers.remove(timer)
            else:
                self._seq += 1
                timer.dueAt += timer.intervalMs
                timer.seq = self._seq

            timer.fn()

        self.now = target
