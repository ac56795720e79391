# src/consensusbridge/config.py
from __future__ import annotations
import logging
import os
from contextlib import contextmanager
from typing import Iterator

ENV_DEBUG = "CONSENSUSBRIDGE_DEBUG"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}

logger = logging.getLogger("consensusbridge.config")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    if val in _TRUTHY:
        return True
    if val in _FALSY:
        return False
    logger.warning("ignoring unrecognised value %r for %s", raw, name)
    return default


_debug_assertions = _env_flag(ENV_DEBUG, __debug__)


def debug_assertions() -> bool:
    """
    Return True when writer/reader consistency checks are active.

    Defaults to $CONSENSUSBRIDGE_DEBUG, falling back to `__debug__`
    (i.e. on unless Python runs with -O).
    """
    return _debug_assertions


def set_debug(enabled: bool) -> None:
    """Turn consistency checks on or off for the whole process."""
    global _debug_assertions
    _debug_assertions = bool(enabled)
    logger.debug("debug assertions %s", "enabled" if _debug_assertions else "disabled")


@contextmanager
def debug_mode(enabled: bool) -> Iterator[None]:
    """Temporarily override `debug_assertions()`; restores the previous value on exit."""
    previous = _debug_assertions
    set_debug(enabled)
    try:
        yield
    finally:
        set_debug(previous)
