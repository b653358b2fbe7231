"""timesync engine layer — the scheduler and the values it publishes.

All modules use ``from __future__ import annotations`` and modern
Python typing (``str | None``, ``@dataclass(slots=True)``, etc.).

Modules
-------
primitives
    Pure types, constants, and validators (stdlib-only).
    - Constants: ``UNBOUNDED``, ``REFRESH_*`` cadences, ``DEFAULT_MINIMUM_CADENCE_MS``
    - Type aliases: ``Milliseconds``, ``Cadence``
    - ``NotificationPolicy``: ``onChange`` / ``never`` / ``always`` string enum
    - Errors: ``TimeSyncError``, ``InvalidInterval``, ``InvalidInput``, ``UnsupportedPolicy``

readonlydate
    - ``TimeValue``: frozen millisecond instant backed by ``whenever.Instant``

protocols
    - ``Clock``, ``TimerHandle``: the host capabilities the scheduler calls through

clock
    - ``AsyncioClock``: wall time plus timers on the running asyncio loop
    - ``ManualClock``: simulated time; timers fire only from ``advance()``

session
    - ``SchedulerConfig``: write-once options (frozen, minimum cadence, duplicate calls)
    - ``Snapshot``: immutable published state, stable by identity between changes

scheduler
    - ``SyncScheduler``: one shared timer at the fastest requested cadence
    - ``SubscriptionContext``: per-subscription details passed to callbacks
"""

# Convenience re-exports for common usage:
# from timesync.engine import SyncScheduler, TimeValue
from timesync.engine.primitives import (
    DEFAULT_MINIMUM_CADENCE_MS,
    REFRESH_FIVE_MINUTES,
    REFRESH_HALF_SECOND,
    REFRESH_IDLE,
    REFRESH_ONE_HOUR,
    REFRESH_ONE_MINUTE,
    REFRESH_ONE_SECOND,
    REFRESH_THIRTY_SECONDS,
    UNBOUNDED,
    InvalidInput,
    InvalidInterval,
    NotificationPolicy,
    TimeSyncError,
    UnsupportedPolicy,
)
from timesync.engine.readonlydate import TimeValue
from timesync.engine.protocols import Clock, TimerHandle
from timesync.engine.clock import AsyncioClock, ManualClock
from timesync.engine.session import SchedulerConfig, Snapshot
from timesync.engine.scheduler import SubscriptionContext, SyncScheduler

__all__ = [
    "DEFAULT_MINIMUM_CADENCE_MS",
    "REFRESH_FIVE_MINUTES",
    "REFRESH_HALF_SECOND",
    "REFRESH_IDLE",
    "REFRESH_ONE_HOUR",
    "REFRESH_ONE_MINUTE",
    "REFRESH_ONE_SECOND",
    "REFRESH_THIRTY_SECONDS",
    "UNBOUNDED",
    "InvalidInput",
    "InvalidInterval",
    "NotificationPolicy",
    "TimeSyncError",
    "UnsupportedPolicy",
    "TimeValue",
    "Clock",
    "TimerHandle",
    "AsyncioClock",
    "ManualClock",
    "SchedulerConfig",
    "Snapshot",
    "SubscriptionContext",
    "SyncScheduler",
]
