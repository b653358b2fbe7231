"""Configuration loading and logging setup shared by anything embedding timesync."""

from __future__ import annotations

import os
import pathlib
import sys
from collections.abc import Mapping
from typing import Any, Final

from dotenv import dotenv_values
from loguru import logger

from timesync.engine.primitives import DEFAULT_MINIMUM_CADENCE_MS, validateMinimumCadence
from timesync.engine.readonlydate import TimeValue

ENV_FILE: Final = ".env.timesync"

TS_DEFAULT: Final = dict(
    TIMESYNC_MINIMUM_CADENCE_MS=str(DEFAULT_MINIMUM_CADENCE_MS),
    TIMESYNC_FROZEN="0",
    TIMESYNC_ALLOW_DUPLICATE_CALLBACKS="0",
    TIMESYNC_LOG_LEVEL="INFO",
    TIMESYNC_LOGDIR="",
)

_TRUTHY: Final = {"1", "true", "yes", "on"}
_FALSY: Final = {"0", "false", "no", "off", ""}


def loadConfig(envFile: str | os.PathLike = ENV_FILE) -> dict[str, str | None]:
    """Merge defaults, the dotenv file, and the process environment (last wins)."""
    return {**TS_DEFAULT, **dotenv_values(envFile), **os.environ}


def envFlag(config: Mapping[str, str | None], key: str) -> bool:
    raw = (config.get(key) or "").strip().lower()
    if raw in _TRUTHY:
        return True

    if raw in _FALSY:
        return False

    raise ValueError(f"{key} must be a boolean flag (received {config.get(key)!r})")


def configFromMapping(config: Mapping[str, str | None]) -> dict[str, Any]:
    """Extract SchedulerConfig keyword arguments from TIMESYNC_* settings.

    Missing keys fall back to the built-in defaults.
    """
    merged = {**TS_DEFAULT, **config}
    rawMinimum = (merged.get("TIMESYNC_MINIMUM_CADENCE_MS") or "").strip()
    try:
        minimum: Any = int(rawMinimum)
    except ValueError:
        # let the validator produce the usual InvalidInterval message
        minimum = rawMinimum

    return dict(
        minimumCadenceMs=validateMinimumCadence(minimum),
        frozen=envFlag(merged, "TIMESYNC_FROZEN"),
        allowDuplicateCallbackInvocation=envFlag(merged, "TIMESYNC_ALLOW_DUPLICATE_CALLBACKS"),
    )


def setupLogging(
    level: str | None = None,
    logdir: str | os.PathLike | None = None,
    config: Mapping[str, str | None] | None = None,
) -> int:
    """Route loguru output to stderr (and optionally a per-session log file).

    Explicit arguments win over TIMESYNC_LOG_LEVEL / TIMESYNC_LOGDIR.

    Returns the console handler id so callers can swap the level later.
    """
    if config is None:
        config = loadConfig()

    level = level or config.get("TIMESYNC_LOG_LEVEL") or "INFO"
    logdir = logdir or config.get("TIMESYNC_LOGDIR") or None

    logger.remove()
    consoleId = logger.add(sys.stderr, colorize=True, level=level)

    if logdir:
        now = TimeValue()
        stamp = now.toDatetime().strftime("%Y%m%dT%H%M%S")
        LOGDIR = pathlib.Path(logdir) / f"{now.year}" / f"{now.month:02}"
        LOGDIR.mkdir(exist_ok=True, parents=True)

        # the file keeps everything, including per-tick TRACE lines the console hides
        logfile = LOGDIR / f"timesync-{stamp}.log"
        logger.add(sink=logfile, level="TRACE", colorize=False)
        logger.info("Logging session to: {}", logfile)

    return consoleId
