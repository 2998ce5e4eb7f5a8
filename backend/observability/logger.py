"""
JSONL event logger.

- Write one JSON object per line
- Output to stdout
- No buffering, no batching
- No side effects beyond logging
"""

from __future__ import annotations

import json
import sys
from typing import Any, Mapping, Callable

from policy import LOG_LEVELS


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print

_min_level: int = LOG_LEVELS.index("INFO")
_enabled: bool = True


def configure(*, level: str = "INFO", enabled: bool = True) -> None:
    """
    Set the minimum level and the global on/off switch.

    Unknown level names fall back to INFO.
    """
    global _min_level, _enabled  # pylint: disable=global-statement
    name = level.upper()
    _min_level = LOG_LEVELS.index(name) if name in LOG_LEVELS else LOG_LEVELS.index("INFO")
    _enabled = enabled


def _level_of(event: Mapping[str, Any]) -> int:
    name = str(event.get("level", "INFO")).upper()
    if name not in LOG_LEVELS:
        return LOG_LEVELS.index("INFO")
    return LOG_LEVELS.index(name)


def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single JSONL event to stdout.

    The caller is responsible for:
    - Supplying a fully-formed event dict
    - Including ts_ms, session_id, state, etc.

    This function:
    - Drops records below the configured level
    - Serializes to JSON
    - Writes exactly one line
    - Never raises
    """
    if not _enabled or _level_of(event) < _min_level:
        return

    try:
        line = json.dumps(event, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        # Logging must never crash the engine
        fallback: dict[str, Any] = {
            "ts_ms": event.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)
