"""Narrow protocols for the capabilities the scheduler needs from its host.

The scheduler never touches the system clock or the event loop directly;
it only calls through these, so tests can swap in simulated time.
"""
from __future__ import annotations

from collections.abc import Callable
from typing import Protocol, runtime_checkable


@runtime_checkable
class TimerHandle(Protocol):
    """A started timer. Cancelling more than once is a no-op."""

    @property
    def cancelled(self) -> bool: ...
    def cancel(self) -> None: ...


@runtime_checkable
class Clock(Protocol):
    """Host time plus one-shot and recurring timers, all in milliseconds."""

    def nowMillis(self) -> int: ...
    def callLater(self, delayMs: int, fn: Callable[[], None]) -> TimerHandle: ...
    def callEvery(self, intervalMs: int, fn: Callable[[], None]) -> TimerHandle: ...
