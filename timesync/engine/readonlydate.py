"""Immutable point-in-time value shared by reference across subscribers.

A TimeValue is handed to every subscriber in a dispatch round, so it must not
be possible for one subscriber to change what the others see. Attribute
assignment raises, and the one mutator-shaped method (``replace()``) returns a
new value instead of touching the receiver.

If a consumer really needs something mutable, ``toDatetime()`` gives back a
fresh stdlib datetime that can be handled however they like.
"""

from __future__ import annotations

import datetime
import functools
import math
from dataclasses import dataclass

import dateutil.parser
import whenever

from timesync.engine.primitives import InvalidInput

_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)
_ONE_MS = datetime.timedelta(milliseconds=1)


def _millisFromDatetime(dt: datetime.datetime) -> int:
    # naive datetimes are treated as local wall time, same as datetime.timestamp()
    try:
        if dt.tzinfo is None:
            dt = dt.astimezone()

        return (dt - _EPOCH) // _ONE_MS
    except (OverflowError, OSError):
        raise InvalidInput(f"Cannot represent {dt!r} as a timestamp") from None


def _millisFrom(source) -> int:
    if source is None:
        return whenever.Instant.now().timestamp_millis()

    if isinstance(source, TimeValue):
        return source.timestampMillis()

    if isinstance(source, whenever.Instant):
        return source.timestamp_millis()

    if isinstance(source, datetime.datetime):
        return _millisFromDatetime(source)

    if isinstance(source, bool):
        raise InvalidInput(f"Cannot build a TimeValue from a bool ({source!r})")

    if isinstance(source, int):
        return source

    if isinstance(source, float):
        if not math.isfinite(source):
            raise InvalidInput(f"Cannot build a TimeValue from non-finite number {source!r}")

        return int(source)

    if isinstance(source, str):
        try:
            parsed = dateutil.parser.isoparse(source.strip())
        except (ValueError, OverflowError):
            raise InvalidInput(f"Cannot parse {source!r} as an ISO 8601 timestamp") from None

        return _millisFromDatetime(parsed)

    raise InvalidInput(f"Cannot build a TimeValue from {type(source).__name__}")


@functools.total_ordering
@dataclass(frozen=True, slots=True, init=False, eq=False, repr=False)
class TimeValue:
    """A frozen millisecond-precision instant.

    Accepts nothing (reads the host clock), another TimeValue, a
    ``whenever.Instant``, a ``datetime.datetime``, a millisecond timestamp, or
    an ISO 8601 string.

    Two TimeValues compare (and hash) equal when their millisecond timestamps
    match, regardless of how they were constructed.
    """

    _ms: int
    _instant: whenever.Instant

    def __init__(self, source=None) -> None:
        ms = _millisFrom(source)
        try:
            instant = whenever.Instant.from_timestamp_millis(ms)
        except (ValueError, OverflowError):
            raise InvalidInput(f"Timestamp {ms} ms is outside the representable range") from None

        object.__setattr__(self, "_ms", ms)
        object.__setattr__(self, "_instant", instant)

    def timestampMillis(self) -> int:
        return self._ms

    @property
    def instant(self) -> whenever.Instant:
        return self._instant

    def toDatetime(self) -> datetime.datetime:
        """Return a new, independent UTC datetime for this instant."""
        return _EPOCH + self._ms * _ONE_MS

    def toZoned(self, tz: str) -> whenever.ZonedDateTime:
        return self._instant.to_tz(tz)

    def isoformat(self) -> str:
        return self.toDatetime().isoformat(timespec="milliseconds")

    def replace(self, **fields) -> TimeValue:
        """Build a new TimeValue with some UTC fields swapped out.

        Takes the same keywords as ``datetime.replace()``. The receiver is
        never modified.
        """
        try:
            return TimeValue(self.toDatetime().replace(**fields))
        except ValueError as e:
            raise InvalidInput(str(e)) from None

    # UTC component accessors
    @property
    def year(self) -> int:
        return self.toDatetime().year

    @property
    def month(self) -> int:
        return self.toDatetime().month

    @property
    def day(self) -> int:
        return self.toDatetime().day

    @property
    def hour(self) -> int:
        return self.toDatetime().hour

    @property
    def minute(self) -> int:
        return self.toDatetime().minute

    @property
    def second(self) -> int:
        return self.toDatetime().second

    @property
    def millisecond(self) -> int:
        return self._ms % 1000

    def __eq__(self, other) -> bool:
        if not isinstance(other, TimeValue):
            return NotImplemented

        return self._ms == other._ms

    def __lt__(self, other) -> bool:
        if not isinstance(other, TimeValue):
            return NotImplemented

        return self._ms < other._ms

    def __hash__(self) -> int:
        return hash(self._ms)

    def __repr__(self) -> str:
        return f"TimeValue({self.isoformat()!r})"

    def __str__(self) -> str:
        return self.isoformat()
