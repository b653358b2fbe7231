"""Tests for timesync/helpers.py — config loading and logging setup."""

from __future__ import annotations

import pytest
from loguru import logger

from timesync.engine.primitives import DEFAULT_MINIMUM_CADENCE_MS, InvalidInterval
from timesync.helpers import TS_DEFAULT, configFromMapping, envFlag, loadConfig, setupLogging


@pytest.fixture
def clean_env(monkeypatch):
    for key in TS_DEFAULT:
        monkeypatch.delenv(key, raising=False)

    return monkeypatch


class TestLoadConfig:
    def test_defaults_when_nothing_configured(self, clean_env, tmp_path):
        config = loadConfig(tmp_path / "missing.env")
        for key, value in TS_DEFAULT.items():
            assert config[key] == value

    def test_env_file_overrides_defaults(self, clean_env, tmp_path):
        envFile = tmp_path / ".env.timesync"
        envFile.write_text("TIMESYNC_MINIMUM_CADENCE_MS=1000\nTIMESYNC_FROZEN=yes\n")

        config = loadConfig(envFile)
        assert config["TIMESYNC_MINIMUM_CADENCE_MS"] == "1000"
        assert config["TIMESYNC_FROZEN"] == "yes"
        assert config["TIMESYNC_LOG_LEVEL"] == "INFO"

    def test_process_environment_wins(self, clean_env, tmp_path):
        envFile = tmp_path / ".env.timesync"
        envFile.write_text("TIMESYNC_MINIMUM_CADENCE_MS=1000\n")
        clean_env.setenv("TIMESYNC_MINIMUM_CADENCE_MS", "250")

        assert loadConfig(envFile)["TIMESYNC_MINIMUM_CADENCE_MS"] == "250"


class TestEnvFlag:
    @pytest.mark.parametrize("raw", ["1", "true", "YES", " on "])
    def test_truthy(self, raw):
        assert envFlag({"X": raw}, "X") is True

    @pytest.mark.parametrize("raw", ["0", "false", "No", "off", "", None])
    def test_falsy(self, raw):
        assert envFlag({"X": raw}, "X") is False

    def test_missing_key_is_false(self):
        assert envFlag({}, "X") is False

    def test_garbage_raises(self):
        with pytest.raises(ValueError, match="X must be a boolean flag"):
            envFlag({"X": "maybe"}, "X")


class TestConfigFromMapping:
    def test_empty_mapping_gives_defaults(self):
        assert configFromMapping({}) == dict(
            minimumCadenceMs=DEFAULT_MINIMUM_CADENCE_MS,
            frozen=False,
            allowDuplicateCallbackInvocation=False,
        )

    def test_values_parsed(self):
        kwargs = configFromMapping({
            "TIMESYNC_MINIMUM_CADENCE_MS": " 50 ",
            "TIMESYNC_FROZEN": "true",
            "TIMESYNC_ALLOW_DUPLICATE_CALLBACKS": "on",
        })
        assert kwargs == dict(minimumCadenceMs=50, frozen=True, allowDuplicateCallbackInvocation=True)

    @pytest.mark.parametrize("bad", ["0", "-5", "fast", "1.5"])
    def test_invalid_minimum_cadence_raises(self, bad):
        with pytest.raises(InvalidInterval):
            configFromMapping({"TIMESYNC_MINIMUM_CADENCE_MS": bad})


class TestSetupLogging:
    def test_returns_console_handler_id(self):
        handlerId = setupLogging(level="WARNING", config={})
        try:
            assert isinstance(handlerId, int)
        finally:
            logger.remove(handlerId)

    def test_logdir_creates_session_file(self, tmp_path):
        setupLogging(level="ERROR", logdir=tmp_path, config={})
        logger.trace("tick detail")
        logger.remove()

        logs = list(tmp_path.rglob("timesync-*.log"))
        assert len(logs) == 1
        assert "tick detail" in logs[0].read_text()

    def test_config_supplies_level_and_logdir(self, tmp_path):
        setupLogging(config={"TIMESYNC_LOG_LEVEL": "DEBUG", "TIMESYNC_LOGDIR": str(tmp_path)})
        logger.remove()
        assert list(tmp_path.rglob("timesync-*.log"))
