"""Pure types, constants, and validators shared by the engine modules — stdlib only."""

from __future__ import annotations

import enum
import math
from typing import Final

# A subscriber using this cadence does not strictly need updates, but will still
# ride along with whatever cadence the other subscribers request.
# If every subscriber uses it, the scheduler never dispatches anything.
UNBOUNDED: Final = math.inf

REFRESH_IDLE: Final = UNBOUNDED
REFRESH_HALF_SECOND: Final = 500
REFRESH_ONE_SECOND: Final = 1000
REFRESH_THIRTY_SECONDS: Final = 30 * 1000
REFRESH_ONE_MINUTE: Final = 60 * 1000
REFRESH_FIVE_MINUTES: Final = 5 * 60 * 1000
REFRESH_ONE_HOUR: Final = 60 * 60 * 1000

# Setting this much lower makes the event loop run hot for no visible benefit.
DEFAULT_MINIMUM_CADENCE_MS: Final = 200

type Milliseconds = int
type Cadence = int | float  # positive int, or UNBOUNDED


class NotificationPolicy(enum.StrEnum):
    """How invalidateState() treats subscribers after refreshing the value."""

    ON_CHANGE = "onChange"
    NEVER = "never"
    ALWAYS = "always"


class TimeSyncError(Exception):
    """Base class for every error raised by timesync."""


class InvalidInterval(TimeSyncError, ValueError):
    """A cadence or threshold is neither a valid integer nor UNBOUNDED."""


class InvalidInput(TimeSyncError, ValueError):
    """A TimeValue was requested for an instant that cannot be represented."""


class UnsupportedPolicy(TimeSyncError, ValueError):
    """An unrecognized notification policy was provided."""


def _asInteger(value) -> int | None:
    # bool is an int subclass, but True is never a sensible number of milliseconds
    if isinstance(value, bool):
        return None

    if isinstance(value, int):
        return value

    if isinstance(value, float) and value.is_integer():
        return int(value)

    return None


def validateCadence(cadenceMs) -> Cadence:
    """Return a normalized cadence: UNBOUNDED or a positive int.

    Integral floats (1000.0) are accepted and converted to int.
    """
    if cadenceMs == UNBOUNDED and not isinstance(cadenceMs, bool):
        return UNBOUNDED

    ms = _asInteger(cadenceMs)
    if ms is None or ms <= 0:
        raise InvalidInterval(
            f"Cadence must be UNBOUNDED or a positive integer (received {cadenceMs!r} ms)"
        )

    return ms


def validateMinimumCadence(minimumCadenceMs) -> Milliseconds:
    ms = _asInteger(minimumCadenceMs)
    if ms is None or ms <= 0:
        raise InvalidInterval(
            f"Minimum cadence must be a positive integer (received {minimumCadenceMs!r} ms)"
        )

    return ms


def validateThreshold(stalenessThresholdMs) -> Milliseconds:
    ms = _asInteger(stalenessThresholdMs)
    if ms is None or ms < 0:
        raise InvalidInterval(
            f"Staleness threshold must be zero or a positive integer (received {stalenessThresholdMs!r} ms)"
        )

    return ms


def validatePolicy(policy) -> NotificationPolicy:
    """Resolve a policy from an enum member or its string value.

    Values may come from untyped callers, so this is checked at runtime.
    """
    try:
        return NotificationPolicy(policy)
    except ValueError:
        raise UnsupportedPolicy(
            f"Notification policy must be one of {[p.value for p in NotificationPolicy]} (received {policy!r})"
        ) from None
