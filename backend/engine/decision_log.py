"""
Reducer decision logging helpers.

Pure: build LogEvent commands, never write anything.
"""

from __future__ import annotations

from typing import Any

from engine.commands import Command, LogEvent
from engine.events import Event
from engine.state_dataclass import ConversationState
from policy import STALE_EVENT_LOG_LEVEL


def log(
    state: ConversationState,
    event: Event,
    decision: str,
    details: dict[str, Any] | None = None,
    *,
    level: str = "INFO",
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "level": level,
            "state": state.turn.state.value,
            "event_type": event.event_type.value,
            "decision": decision,
            "turn_id": state.turn.turn_id,
            "run_ids": {
                "primary": state.active_runs.primary,
                "fallback": state.active_runs.fallback,
            },
            "phase": state.turn.phase.value if state.turn.phase else None,
            "details": details or {},
        }
    )


def state_changed(
    old: ConversationState,
    new: ConversationState,
    event: Event,
    source: str,
) -> LogEvent:
    return log(
        new,
        event,
        "state_changed",
        {
            "from_state": old.turn.state.value,
            "to_state": new.turn.state.value,
            "source": source,
        },
    )


def logs_last(commands: tuple[Command, ...]) -> tuple[Command, ...]:
    """Side effects first, then logs, then state_changed logs."""
    non_logs: list[Command] = []
    logs: list[Command] = []
    state_change_logs: list[Command] = []

    for command in commands:
        if isinstance(command, LogEvent):
            if command.event.get("decision") == "state_changed":
                state_change_logs.append(command)
            else:
                logs.append(command)
        else:
            non_logs.append(command)

    return tuple(non_logs + logs + state_change_logs)


def ignore(
    state: ConversationState, event: Event, reason: str
) -> tuple[ConversationState, tuple[Command, ...]]:
    return state, (
        log(state, event, "ignore", {"reason": reason}, level=STALE_EVENT_LOG_LEVEL),
    )
