"""
Unified event definitions for the conversation reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- All reducer decisions are based on these events.
- No clocks, no timers, no async, no side effects.

Timer events are not ChannelEvents, but carry turn_id for stale gating.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from context.meeting import MeetingContext
from engine.enums.channel import Channel


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """
    Canonical event types understood by the reducer.

    Every (turn state, event_type) pair must be explicitly handled
    or explicitly ignored by the reducer.
    """

    # ------------------------------------------------------------------
    # User control
    # ------------------------------------------------------------------
    SUBMIT = "SUBMIT"
    CANCEL = "CANCEL"
    SESSION_RESET = "SESSION_RESET"
    NO_SPEECH_DETECTED = "NO_SPEECH_DETECTED"

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------
    MEETING_CONTEXT_SET = "MEETING_CONTEXT_SET"
    TRANSCRIPT_COMMITTED = "TRANSCRIPT_COMMITTED"

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------
    CHANNEL_UNAVAILABLE = "CHANNEL_UNAVAILABLE"
    CHANNEL_CHUNK = "CHANNEL_CHUNK"
    CHANNEL_DONE = "CHANNEL_DONE"
    CHANNEL_ERROR = "CHANNEL_ERROR"

    # ------------------------------------------------------------------
    # Timers / internal control
    # ------------------------------------------------------------------
    RESPONSE_TIMEOUT = "RESPONSE_TIMEOUT"
    TURN_SETTLED = "TURN_SETTLED"


# =============================================================================
# Base Event
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: EventType
    ts_ms: int


# =============================================================================
# Channel-Scoped Events
# =============================================================================

@dataclass(frozen=True)
class ChannelEvent(Event):
    """
    Base class for events delivered by a response channel subscription.

    The reducer MUST ignore events whose run_id does not match the
    currently active run for that channel, or whose channel is not the
    live phase of the current turn.

    message_id is the placeholder the subscription was opened for.
    """

    channel: Channel
    run_id: int
    message_id: str


@dataclass(frozen=True)
class ChannelUnavailable(ChannelEvent):
    """
    The channel cannot serve this request at all.

    Structural signal, distinct from ChannelError. Triggers fallback.
    """
    reason: str = ""


@dataclass(frozen=True)
class ChannelChunk(ChannelEvent):
    """Streaming token delta."""
    delta: str


@dataclass(frozen=True)
class ChannelDone(ChannelEvent):
    """Channel completed the response successfully."""


@dataclass(frozen=True)
class ChannelError(ChannelEvent):
    """Channel failed before or during streaming."""
    reason: str


# =============================================================================
# User Control Events
# =============================================================================

@dataclass(frozen=True)
class Submit(Event):
    """User asked a question (typed or captured by voice)."""
    question: str
    source: str = "typed"


@dataclass(frozen=True)
class Cancel(Event):
    """User cancelled the turn in flight."""


@dataclass(frozen=True)
class SessionReset(Event):
    """Conversation surface was reset (new meeting, cleared chat)."""


@dataclass(frozen=True)
class NoSpeechDetected(Event):
    """Voice capture stopped with nothing captured."""


# =============================================================================
# Context Events
# =============================================================================

@dataclass(frozen=True)
class MeetingContextSet(Event):
    """Meeting identity and notes changed."""
    context: MeetingContext


@dataclass(frozen=True)
class TranscriptCommitted(Event):
    """A finalized transcript segment landed on the displayed line."""
    speaker: str
    text: str


# =============================================================================
# Timer / Internal Events
# =============================================================================

@dataclass(frozen=True)
class ResponseTimeout(Event):
    """No token arrived within the configured waiting window."""
    turn_id: int


@dataclass(frozen=True)
class TurnSettled(Event):
    """
    Terminal turn state has been published to observers.

    Injected by the runtime in response to a SettleTurn command.
    """
    turn_id: int
