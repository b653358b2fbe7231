"""Tests for timesync/engine/primitives.py validators and constants."""

from __future__ import annotations

import math

import pytest

from timesync.engine.primitives import (
    REFRESH_IDLE,
    REFRESH_ONE_HOUR,
    REFRESH_ONE_MINUTE,
    UNBOUNDED,
    InvalidInterval,
    NotificationPolicy,
    TimeSyncError,
    UnsupportedPolicy,
    validateCadence,
    validateMinimumCadence,
    validatePolicy,
    validateThreshold,
)

INVALID_INTERVALS = [math.nan, -math.inf, 0, -42, 470.53, True, "1000", None]


class TestConstants:
    def test_idle_is_unbounded(self):
        assert REFRESH_IDLE == UNBOUNDED == math.inf

    def test_refresh_rates_in_milliseconds(self):
        assert REFRESH_ONE_MINUTE == 60_000
        assert REFRESH_ONE_HOUR == 3_600_000


class TestValidateCadence:
    def test_accepts_positive_int(self):
        assert validateCadence(1000) == 1000

    def test_accepts_unbounded(self):
        assert validateCadence(UNBOUNDED) == UNBOUNDED

    def test_integral_float_becomes_int(self):
        result = validateCadence(1000.0)
        assert result == 1000
        assert isinstance(result, int)

    @pytest.mark.parametrize("bad", INVALID_INTERVALS)
    def test_rejects_everything_else(self, bad):
        with pytest.raises(InvalidInterval):
            validateCadence(bad)


class TestValidateMinimumCadence:
    def test_accepts_positive_int(self):
        assert validateMinimumCadence(1) == 1

    @pytest.mark.parametrize("bad", [*INVALID_INTERVALS, math.inf])
    def test_rejects_unbounded_and_invalid(self, bad):
        with pytest.raises(InvalidInterval):
            validateMinimumCadence(bad)


class TestValidateThreshold:
    def test_zero_allowed(self):
        assert validateThreshold(0) == 0

    @pytest.mark.parametrize("bad", [-1, 0.5, math.inf, math.nan, False])
    def test_rejects_negative_and_fractional(self, bad):
        with pytest.raises(InvalidInterval):
            validateThreshold(bad)


class TestValidatePolicy:
    @pytest.mark.parametrize("raw,expected", [
        ("onChange", NotificationPolicy.ON_CHANGE),
        ("never", NotificationPolicy.NEVER),
        ("always", NotificationPolicy.ALWAYS),
        (NotificationPolicy.ALWAYS, NotificationPolicy.ALWAYS),
    ])
    def test_accepts_known_policies(self, raw, expected):
        assert validatePolicy(raw) is expected

    @pytest.mark.parametrize("bad", ["sometimes", "ONCHANGE", "", None, 1, ["always"]])
    def test_rejects_unknown_policies(self, bad):
        with pytest.raises(UnsupportedPolicy):
            validatePolicy(bad)


class TestErrorTaxonomy:
    @pytest.mark.parametrize("err", [InvalidInterval, UnsupportedPolicy])
    def test_errors_are_value_errors_and_timesync_errors(self, err):
        assert issubclass(err, ValueError)
        assert issubclass(err, TimeSyncError)
