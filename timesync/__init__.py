"""Keep every consumer of "now" on the same value and the same tick."""

from timesync.engine import *  # noqa: F401,F403
from timesync.engine import __all__ as _engine_all
from timesync.helpers import loadConfig, setupLogging

__all__ = [*_engine_all, "loadConfig", "setupLogging"]
