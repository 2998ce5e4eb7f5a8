"""
Side-effect command definitions for the conversation engine.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from engine.enums.channel import Channel
from engine.events import EventType

# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    Stable discriminants used for logging and runtime dispatch.
    """

    # Channels
    OPEN_PRIMARY = "OPEN_PRIMARY"
    OPEN_FALLBACK = "OPEN_FALLBACK"
    DISPOSE_CHANNEL = "DISPOSE_CHANNEL"

    # Turn lifecycle
    SETTLE_TURN = "SETTLE_TURN"

    # Timers
    START_TIMER = "START_TIMER"
    CANCEL_TIMER = "CANCEL_TIMER"

    # Observability
    LOG_EVENT = "LOG_EVENT"


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


# =============================================================================
# Channel Commands
# =============================================================================

@dataclass(frozen=True)
class OpenPrimary(Command):
    """
    Subscribe to the primary channel, then issue the query.

    The runtime must register listeners BEFORE issuing the request.
    """
    run_id: int
    message_id: str
    conversation_id: str
    question: str
    command_type: CommandType = CommandType.OPEN_PRIMARY


@dataclass(frozen=True)
class OpenFallback(Command):
    """
    Subscribe fresh listeners to the fallback channel, then stream.

    context is the fully rendered system context; options are passed
    through to the channel untouched.
    """
    run_id: int
    message_id: str
    question: str
    context: str
    options: tuple[tuple[str, Any], ...] = ()
    command_type: CommandType = CommandType.OPEN_FALLBACK


@dataclass(frozen=True)
class DisposeChannel(Command):
    """
    Tear down every listener of one phase and drop its in-flight request.

    Idempotent: disposing an unknown or already-disposed run is a no-op.
    """
    channel: Channel
    run_id: int
    command_type: CommandType = CommandType.DISPOSE_CHANNEL


# =============================================================================
# Turn Lifecycle Commands
# =============================================================================

@dataclass(frozen=True)
class SettleTurn(Command):
    """
    Request that the runtime emit TurnSettled(turn_id) once the terminal
    snapshot has been published to observers.
    """
    turn_id: int
    command_type: CommandType = CommandType.SETTLE_TURN


# =============================================================================
# Timer Commands
# =============================================================================

@dataclass(frozen=True)
class StartTimer(Command):
    """
    Request to start a named timer.

    On expiration, the runtime must inject the specified timeout event.
    """
    timer_id: str
    duration_ms: int
    timeout_event_type: EventType
    turn_id: int
    command_type: CommandType = CommandType.START_TIMER


@dataclass(frozen=True)
class CancelTimer(Command):
    """Request to cancel a previously scheduled timer."""
    timer_id: str
    command_type: CommandType = CommandType.CANCEL_TIMER


# =============================================================================
# Observability Commands
# =============================================================================

@dataclass(frozen=True)
class LogEvent(Command):
    """Request to emit a structured observability event."""
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT
