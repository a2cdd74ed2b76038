"""Central debug/logging policy plumbing for browserd."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

_LOCAL_HANDLER_TAG = "_browserd_local"
_LOG_FORMAT = "[%(asctime)s] %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class LoggingToggles:
    log_signaling: bool = False
    log_negotiation: bool = False
    log_input: bool = False
    log_session: bool = False


@dataclass(frozen=True)
class DebugPolicy:
    enabled: bool = False
    logging: LoggingToggles = field(default_factory=LoggingToggles)
    quiet_loggers: tuple[str, ...] = ("aioice", "aiortc")


_LOG_FLAG_MAP: dict[str, Iterable[str]] = {
    "signaling": ("log_signaling",),
    "negotiation": ("log_negotiation",),
    "input": ("log_input",),
    "session": ("log_session",),
    "all": ("log_signaling", "log_negotiation", "log_input", "log_session"),
}

_TRUTHY = {"1", "true", "yes", "on", "dbg", "debug"}
_FALSY = {"0", "false", "no", "off", ""}


def _coerce_bool(value: object, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        val = value.strip().lower()
        if val in _TRUTHY:
            return True
        if val in _FALSY:
            return False
    return default


def _split_flags(raw: object) -> set[str]:
    result: set[str] = set()
    items: Iterable[object]
    if raw is None:
        return result
    if isinstance(raw, str):
        items = raw.split(",")
    elif isinstance(raw, Iterable):
        items = raw
    else:
        return result
    for item in items:
        token = str(item).strip().lower()
        if token:
            result.add(token)
    return result


def _load_debug_config(env: Mapping[str, str]) -> tuple[bool, dict[str, object]]:
    raw = env.get("BROWSERD_DEBUG")
    if raw is None:
        return False, {}
    raw_str = raw.strip()
    if raw_str.lower() in _FALSY:
        return False, {}
    if raw_str.lower() in _TRUTHY:
        return True, {}
    try:
        parsed = json.loads(raw_str)
    except ValueError:
        logger.debug("BROWSERD_DEBUG is not JSON; treating as flag list")
        return True, {"flags": raw_str}
    if isinstance(parsed, dict):
        enabled = _coerce_bool(parsed.get("enabled", True), True)
        return enabled, parsed
    if isinstance(parsed, (list, tuple)):
        return True, {"flags": parsed}
    return True, {"flags": raw_str}


def load_debug_policy(env: Optional[Mapping[str, str]] = None) -> DebugPolicy:
    env = os.environ if env is None else env
    enabled, cfg = _load_debug_config(env)

    flags = _split_flags(cfg.get("flags"))
    log_kwargs = {name: False for name in LoggingToggles.__annotations__.keys()}
    for flag, attrs in _LOG_FLAG_MAP.items():
        if flag in flags:
            for attr in attrs:
                log_kwargs[attr] = True

    quiet = DebugPolicy().quiet_loggers
    raw_quiet = cfg.get("quiet")
    if raw_quiet is not None:
        quiet = tuple(sorted(_split_flags(raw_quiet)))

    return DebugPolicy(
        enabled=enabled,
        logging=LoggingToggles(**log_kwargs),
        quiet_loggers=quiet,
    )


def configure_logging(policy: DebugPolicy, *, debug: bool = False) -> None:
    """Install the root INFO handler and, when asked, a DEBUG handler for browserd only."""

    logging.basicConfig(level=logging.INFO, format=_LOG_FORMAT)
    for name in policy.quiet_loggers:
        logging.getLogger(name).setLevel(logging.INFO)
    if not (debug or policy.enabled):
        return
    pkg_logger = logging.getLogger("browserd")
    if any(getattr(h, _LOCAL_HANDLER_TAG, False) for h in pkg_logger.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    handler.setLevel(logging.DEBUG)
    setattr(handler, _LOCAL_HANDLER_TAG, True)
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(logging.DEBUG)
    # Records already reach our handler; keep them off the INFO root.
    pkg_logger.propagate = False


__all__ = [
    "DebugPolicy",
    "LoggingToggles",
    "configure_logging",
    "load_debug_policy",
]
