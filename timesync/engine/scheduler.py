"""Interval-consolidation scheduler: one shared timer for every time consumer.

Instead of each consumer running its own timer (and slowly drifting out of
phase with everybody else), consumers subscribe with the cadence they need and
the scheduler runs a single timer at the fastest requested cadence. Every
subscriber receives the exact same TimeValue object on each tick, so readers
can use ``is`` as a cheap "same tick?" check.

Timer lifecycle
---------------
At most one timer handle is owned at any time; every path that starts a timer
cancels the previous handle first. When the fastest cadence changes mid-cycle
the timer is re-phased with a one-shot bridging timeout so the next tick lands
at ``lastValue + fastestCadence`` instead of restarting the countdown from
zero.
"""
from __future__ import annotations

import bisect
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from timesync.engine.primitives import (
    UNBOUNDED,
    Cadence,
    NotificationPolicy,
    validateCadence,
    validatePolicy,
    validateThreshold,
)
from timesync.engine.readonlydate import TimeValue
from timesync.engine.session import SchedulerConfig, Snapshot

if TYPE_CHECKING:
    from timesync.engine.protocols import Clock, TimerHandle


def noOp() -> None:
    pass


@dataclass(slots=True, eq=False)
class SubscriptionContext:
    """Per-subscription details passed to onUpdate alongside the new value.

    ``intervalLastFulfilledAt`` tracks which dispatched value actually
    satisfied this subscription's own cadence; a five-minute subscriber riding
    along with a one-second subscriber gets called every second, but this only
    moves every five minutes.
    """

    cadenceMs: Cadence
    registeredAt: TimeValue
    scheduler: SyncScheduler
    unsubscribe: Callable[[], None] = noOp
    isSubscribed: bool = True
    intervalLastFulfilledAt: TimeValue | None = None


type OnUpdate = Callable[[TimeValue, SubscriptionContext], object]


class SyncScheduler:
    """Centralized "current time" authority shared by many consumers.

    The public surface is ``subscribe()``, ``getStateSnapshot()``,
    ``invalidateState()``, and ``dispose()``. Everything runs synchronously on
    the caller's thread or inside the single timer callback.
    """

    def __init__(
        self, config: SchedulerConfig | None = None, *, clock: Clock | None = None
    ) -> None:
        if config is None:
            config = SchedulerConfig()

        if clock is None:
            from timesync.engine.clock import AsyncioClock

            clock = AsyncioClock()

        self.config = config
        self.clock = clock

        # callback -> contexts, each list kept ascending by cadence.
        # Lists are replaced (never edited in place) so a dispatch round can
        # iterate a stable copy while callbacks subscribe/unsubscribe.
        self._subscriptions: dict[OnUpdate, list[SubscriptionContext]] = {}

        # derived from _subscriptions; never edited on its own
        self._fastestCadenceMs: Cadence = UNBOUNDED

        self._timer: TimerHandle | None = None
        self._notificationOwed = False
        self._disposed = False

        initialValue = config.initialValue or TimeValue(clock.nowMillis())
        self._snapshot = Snapshot.initial(initialValue, config)

    @property
    def fastestCadenceMs(self) -> Cadence:
        return self._fastestCadenceMs

    @property
    def isTimerActive(self) -> bool:
        return self._timer is not None

    @property
    def _inert(self) -> bool:
        return self._disposed or self.config.frozen

    def getStateSnapshot(self) -> Snapshot:
        return self._snapshot

    # ── Value refresh and dispatch ─────────────────────────────────────────

    def _refreshValue(self) -> bool:
        """Read the clock; publish a new snapshot only if the value moved."""
        if self._inert:
            return False

        fresh = TimeValue(self.clock.nowMillis())
        if fresh == self._snapshot.value:
            return False

        self._snapshot = self._snapshot.evolve(value=fresh)
        return True

    def _notifyAll(self) -> None:
        # grab the value up front so a callback calling invalidateState()
        # can't hand later callbacks in this round a different object
        value = self._snapshot.value
        if self._inert or not self._subscriptions:
            return

        allowDuplicates = self.config.allowDuplicateCallbackInvocation
        valueMs = value.timestampMillis()

        # callbacks may add or remove subscriptions while we iterate, so work
        # from a copy taken before the round starts
        entries = list(self._subscriptions.items())
        for onUpdate, contexts in entries:
            shouldCall = True
            for ctx in contexts:
                if self._disposed:
                    return

                # cancelled earlier in this same round
                if not ctx.isSubscribed:
                    continue

                since = ctx.intervalLastFulfilledAt or ctx.registeredAt
                if valueMs - since.timestampMillis() >= ctx.cadenceMs:
                    ctx.intervalLastFulfilledAt = value

                if shouldCall:
                    try:
                        onUpdate(value, ctx)
                    except Exception:
                        logger.exception("[{}] onUpdate callback failed", onUpdate)

                    shouldCall = allowDuplicates

    def _onTick(self) -> None:
        if self._inert:
            # a stale handle somehow survived cancellation
            self._cancelTimer()
            return

        changed = self._refreshValue()
        logger.trace("Tick at {} (changed: {})", self._snapshot.value, changed)
        if changed or self._notificationOwed:
            self._notificationOwed = False
            self._notifyAll()

    # ── Timer management ───────────────────────────────────────────────────

    def _cancelTimer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _startInterval(self) -> None:
        self._cancelTimer()
        self._timer = self.clock.callEvery(int(self._fastestCadenceMs), self._onTick)

    def _onBridgeElapsed(self) -> None:
        # The bridge only re-phases; the tick itself goes through the normal
        # handler. Start the interval first in case ticking disposes us.
        self._startInterval()
        self._onTick()

    def _onFastestCadenceChange(self) -> None:
        fastest = self._fastestCadenceMs
        if self._inert or fastest == UNBOUNDED:
            self._cancelTimer()
            logger.debug("No live cadence; shared timer stopped")
            return

        elapsed = max(0, self.clock.nowMillis() - self._snapshot.value.timestampMillis())
        remaining = fastest - elapsed

        self._cancelTimer()

        if remaining <= 0:
            logger.debug("Value is {} ms stale for new cadence {} ms; refreshing now", elapsed, fastest)
            self._startInterval()
            if self._refreshValue() or self._notificationOwed:
                self._notificationOwed = False
                self._notifyAll()

            return

        if remaining == fastest:
            logger.debug("Starting shared timer at {} ms", fastest)
            self._startInterval()
            return

        logger.debug("Re-phasing shared timer: {} ms until first tick at {} ms cadence", remaining, fastest)
        self._timer = self.clock.callLater(int(remaining), self._onBridgeElapsed)

    def _updateFastestCadence(self) -> None:
        previous = self._fastestCadenceMs

        # buckets are sorted, so each one's fastest entry is its first
        fastest: Cadence = UNBOUNDED
        for contexts in self._subscriptions.values():
            if contexts and contexts[0].cadenceMs < fastest:
                fastest = contexts[0].cadenceMs

        self._fastestCadenceMs = fastest
        if fastest != previous:
            self._onFastestCadenceChange()

    # ── Public API ─────────────────────────────────────────────────────────

    def subscribe(self, cadenceMs: Cadence, onUpdate: OnUpdate) -> Callable[[], None]:
        """Register ``onUpdate`` to receive values at least every ``cadenceMs``.

        The same callback may be registered any number of times, with the
        same or different cadences. Unless the scheduler was configured with
        ``allowDuplicateCallbackInvocation``, it is still only called once per
        tick.

        Returns an unsubscribe function; calling it more than once is a no-op.

        Raises InvalidInterval if ``cadenceMs`` is neither UNBOUNDED nor a
        positive integer.
        """
        requested = validateCadence(cadenceMs)
        if self._inert:
            return noOp

        ctx = SubscriptionContext(
            cadenceMs=max(requested, self.config.minimumCadenceMs),
            registeredAt=self._snapshot.value,
            scheduler=self,
        )

        # consumers can write to ctx; only this flag gates removal
        subscribed = True

        def unsubscribe() -> None:
            nonlocal subscribed
            if not subscribed or self._disposed:
                subscribed = False
                ctx.isSubscribed = False
                return

            subscribed = False
            ctx.isSubscribed = False
            contexts = self._subscriptions.get(onUpdate)
            if contexts is None or ctx not in contexts:
                return

            remaining = [c for c in contexts if c is not ctx]
            if remaining:
                # no re-sort needed; removal keeps the order
                self._subscriptions[onUpdate] = remaining
            else:
                del self._subscriptions[onUpdate]

            self._snapshot = self._snapshot.evolve(
                subscriberCount=max(0, self._snapshot.subscriberCount - 1)
            )
            self._updateFastestCadence()

        ctx.unsubscribe = unsubscribe

        previousContexts = self._subscriptions.get(onUpdate)
        previousSnapshot = self._snapshot
        previousFastest = self._fastestCadenceMs

        contexts = list(previousContexts or ())
        bisect.insort(contexts, ctx, key=lambda c: c.cadenceMs)
        self._subscriptions[onUpdate] = contexts

        # An unknown amount of time may have passed since construction or
        # since the last subscriber left, so the first one always gets a
        # fresh value regardless of the cadence it asked for.
        isFirst = self._snapshot.subscriberCount == 0
        if isFirst:
            self._refreshValue()
            ctx.registeredAt = self._snapshot.value

        self._snapshot = self._snapshot.evolve(
            subscriberCount=self._snapshot.subscriberCount + 1
        )

        try:
            self._updateFastestCadence()
        except Exception:
            # the timer could not be started (e.g. AsyncioClock with no
            # running loop); undo the registration so the caller can retry
            logger.error("Failed to start shared timer for {} ms subscription", ctx.cadenceMs)
            if previousContexts is None:
                del self._subscriptions[onUpdate]
            else:
                self._subscriptions[onUpdate] = previousContexts

            self._snapshot = previousSnapshot
            self._fastestCadenceMs = previousFastest
            subscribed = False
            ctx.isSubscribed = False
            raise

        return unsubscribe

    def invalidateState(
        self,
        stalenessThresholdMs: int = 0,
        notificationPolicy: NotificationPolicy | str = NotificationPolicy.ON_CHANGE,
    ) -> Snapshot:
        """Refresh the value on demand, outside the timer's cadence.

        The value is only re-read if at least ``stalenessThresholdMs`` has
        passed since the current one. ``notificationPolicy`` decides who hears
        about it:

        - ``onChange``: notify if the value changed or a notification is owed
        - ``never``: stay quiet, but owe subscribers a notification if the
          value changed, delivered at the next tick or non-silent invalidation
        - ``always``: notify even if nothing changed

        On a disposed or frozen scheduler this is a pure read. Arguments are
        still validated first, so malformed calls always raise.
        """
        threshold = validateThreshold(stalenessThresholdMs)
        policy = validatePolicy(notificationPolicy)
        if self._inert:
            return self._snapshot

        changed = False
        elapsed = max(0, self.clock.nowMillis() - self._snapshot.value.timestampMillis())
        if elapsed >= threshold:
            changed = self._refreshValue()

        match policy:
            case NotificationPolicy.NEVER:
                if changed:
                    self._notificationOwed = True
            case NotificationPolicy.ALWAYS:
                self._notificationOwed = False
                self._notifyAll()
            case NotificationPolicy.ON_CHANGE:
                if changed or self._notificationOwed:
                    self._notificationOwed = False
                    self._notifyAll()

        return self._snapshot

    def dispose(self) -> None:
        """Stop the timer and drop every subscription. Safe to call repeatedly.

        Afterwards ``subscribe()`` only hands out no-op unsubscribers and
        ``invalidateState()`` only reads.
        """
        if self._disposed:
            return

        self._cancelTimer()
        self._disposed = True

        # flipping the flag is all each context's unsubscribe() would need to
        # do once the registry itself is gone
        for contexts in self._subscriptions.values():
            for ctx in contexts:
                ctx.isSubscribed = False

        self._subscriptions = {}
        self._fastestCadenceMs = UNBOUNDED
        self._notificationOwed = False
        self._snapshot = self._snapshot.evolve(subscriberCount=0, disposed=True)
        logger.debug("Scheduler disposed")
