"""Write-once scheduler configuration and the published state snapshot."""
from __future__ import annotations

import dataclasses
from collections.abc import Mapping

from timesync.engine.primitives import (
    DEFAULT_MINIMUM_CADENCE_MS,
    Milliseconds,
    validateMinimumCadence,
)
from timesync.engine.readonlydate import TimeValue


@dataclasses.dataclass(slots=True, frozen=True)
class SchedulerConfig:
    """Options fixed for the whole lifetime of a SyncScheduler.

    ``frozen`` is one-way: a frozen scheduler never advances or notifies, and
    there is no way to thaw it. Pair it with ``initialValue`` for
    deterministic snapshot tests.

    When ``initialValue`` is None, the scheduler reads its clock once at
    construction time.
    """

    initialValue: TimeValue | None = None
    frozen: bool = False
    minimumCadenceMs: Milliseconds = DEFAULT_MINIMUM_CADENCE_MS
    allowDuplicateCallbackInvocation: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "minimumCadenceMs", validateMinimumCadence(self.minimumCadenceMs)
        )

        if self.initialValue is not None and not isinstance(self.initialValue, TimeValue):
            object.__setattr__(self, "initialValue", TimeValue(self.initialValue))

    @classmethod
    def fromEnv(cls, env: Mapping[str, str | None] | None = None, **overrides) -> SchedulerConfig:
        """Build a config from TIMESYNC_* settings (see timesync.helpers.loadConfig)."""
        from timesync.helpers import configFromMapping, loadConfig

        fields = configFromMapping(loadConfig() if env is None else env)
        fields.update(overrides)
        return cls(**fields)


@dataclasses.dataclass(slots=True, frozen=True)
class Snapshot:
    """Immutable view of scheduler state, replaced wholesale on every change.

    Readers may compare snapshots by identity: between two changes the
    scheduler keeps returning the very same object.
    """

    value: TimeValue
    subscriberCount: int
    frozen: bool
    disposed: bool
    minimumCadenceMs: Milliseconds
    allowDuplicateCallbackInvocation: bool

    @classmethod
    def initial(cls, value: TimeValue, config: SchedulerConfig) -> Snapshot:
        return cls(
            value=value,
            subscriberCount=0,
            frozen=config.frozen,
            disposed=False,
            minimumCadenceMs=config.minimumCadenceMs,
            allowDuplicateCallbackInvocation=config.allowDuplicateCallbackInvocation,
        )

    def evolve(self, **changes) -> Snapshot:
        return dataclasses.replace(self, **changes)
