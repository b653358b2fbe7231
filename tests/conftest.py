"""Shared test fixtures for the timesync test suite.

Every scheduler test runs on ManualClock, so no test ever waits on real time.
Callbacks are MagicMocks: they hash by identity, which is exactly how the
scheduler keys its subscription registry.
"""

from unittest.mock import MagicMock

import pytest

from timesync.engine.clock import ManualClock
from timesync.engine.readonlydate import TimeValue
from timesync.engine.scheduler import SyncScheduler
from timesync.engine.session import SchedulerConfig

# Fixed starting point so failures print readable timestamps
START = TimeValue("2025-10-27T00:00:00+00:00")
START_MS = START.timestampMillis()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(now=START_MS)


@pytest.fixture
def make_scheduler(clock):
    """Factory: build a SyncScheduler on the shared manual clock.

    Keyword arguments go straight to SchedulerConfig. ``initialValue``
    defaults to START so snapshots are deterministic.
    """

    def make(**config) -> SyncScheduler:
        config.setdefault("initialValue", START)
        return SyncScheduler(SchedulerConfig(**config), clock=clock)

    return make


@pytest.fixture
def scheduler(make_scheduler) -> SyncScheduler:
    return make_scheduler()


@pytest.fixture
def on_update() -> MagicMock:
    return MagicMock(name="onUpdate")


def values_seen(mock: MagicMock) -> list[TimeValue]:
    """Test helper: the TimeValue passed on each call, in call order."""
    return [c.args[0] for c in mock.call_args_list]
